"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Fetch coordinator: one observed completion event per fetch attempt.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial

from .contracts import LoadingPolicy
from .handles.base import FetchHandle, FetchHandleRegistry, LoadEvent, Observer
from .metrics import METRIC_HANDLES_TOTAL, METRIC_OUTCOMES_TOTAL, LoaderMetrics, NoOpLoaderMetrics
from .types import ChunkId

logger = logging.getLogger("chunkload.coordinator")


class _Attempt:
    """One-shot settlement guard shared by the load, error and timeout paths."""

    __slots__ = ("chunk_id", "handle", "done", "watchdog", "settled", "_owner")

    def __init__(
        self,
        owner: FetchCoordinator,
        chunk_id: ChunkId,
        handle: FetchHandle,
        done: Observer,
    ) -> None:
        self._owner = owner
        self.chunk_id = chunk_id
        self.handle = handle
        self.done = done
        self.watchdog: asyncio.TimerHandle | None = None
        self.settled = False

    def complete(self, prev: Observer | None, event: LoadEvent) -> None:
        if self.settled:
            return
        self.settled = True

        handle = self.handle
        handle.on_load = None
        handle.on_error = None
        handle.loading = False
        if self.watchdog is not None:
            self.watchdog.cancel()
            self.watchdog = None
        if event.type != "load":
            self._owner.registry.remove(handle)
        self._owner._finish(self, event)

        self.done(event)
        if prev is not None:
            prev(event)


class FetchCoordinator:
    """
    Turn a chunk id and URL into exactly one observed completion event.

    Existing handles for the same URL or tag are adopted instead of starting
    a second fetch. Adopted handles are observed, never destroyed, unless
    their fetch fails.
    """

    def __init__(
        self,
        registry: FetchHandleRegistry,
        *,
        policy: LoadingPolicy | None = None,
        metrics: LoaderMetrics | None = None,
    ) -> None:
        self.registry = registry
        self._policy = policy or LoadingPolicy()
        self._metrics: LoaderMetrics = metrics or NoOpLoaderMetrics()
        self._active: set[_Attempt] = set()

    @property
    def policy(self) -> LoadingPolicy:
        return self._policy

    @property
    def active_count(self) -> int:
        """Number of attempts still awaiting a completion signal."""
        return len(self._active)

    def tag_for(self, chunk_id: ChunkId) -> str:
        return f"{self._policy.unique_name}:chunk-{chunk_id}"

    def find(self, chunk_id: ChunkId, url: str) -> FetchHandle | None:
        """Look up an existing handle for the chunk without loading anything."""
        return self.registry.find(url=url, tag=self.tag_for(chunk_id))

    def load(self, chunk_id: ChunkId, url: str, done: Observer) -> FetchHandle:
        """
        Start or adopt the fetch for `chunk_id` and report one outcome to `done`.

        `done` may run synchronously when an already complete handle is
        adopted. Otherwise it runs from a handle signal or the watchdog.
        """
        tag = self.tag_for(chunk_id)
        handle = self.registry.find(url=url, tag=tag)
        needs_attach = handle is None
        if handle is None:
            handle = self.registry.create(url=url, tag=tag)
            handle.loading = True
            mode = "created"
        elif handle.loading:
            mode = "adopted_loading"
        else:
            mode = "adopted_complete"
        self._metrics.incr(METRIC_HANDLES_TOTAL, tags={"mode": mode})

        attempt = _Attempt(self, chunk_id, handle, done)
        if handle.loading:
            loop = asyncio.get_running_loop()
            attempt.watchdog = loop.call_later(
                self._policy.timeout_s,
                attempt.complete,
                None,
                LoadEvent(type="timeout", target=handle),
            )
            handle.on_error = partial(attempt.complete, handle.on_error)
            handle.on_load = partial(attempt.complete, handle.on_load)
            self._active.add(attempt)
            if needs_attach:
                logger.info("Fetching %s chunk %s from %s", self._policy.asset_kind, chunk_id, url)
            else:
                logger.info("Adopted in-flight fetch for chunk %s (%s)", chunk_id, handle.url)
        else:
            logger.debug("Adopted completed fetch for chunk %s (%s)", chunk_id, handle.url)
            attempt.complete(None, LoadEvent(type="load", target=handle))

        if needs_attach:
            self.registry.attach(handle)
        return handle

    def settle(self, chunk_id: ChunkId, event: LoadEvent) -> bool:
        """
        Report an outcome for `chunk_id` from outside the handle.

        Goes through the same one-shot guard as the handle signals and the
        watchdog. Returns False when no attempt for the chunk is active.
        """
        for attempt in self._active:
            if attempt.chunk_id == chunk_id:
                attempt.complete(None, event)
                return True
        return False

    def close(self) -> None:
        """Settle every attempt still in flight with an `abort` event."""
        for attempt in list(self._active):
            attempt.complete(None, LoadEvent(type="abort", target=attempt.handle))

    def _finish(self, attempt: _Attempt, event: LoadEvent) -> None:
        self._active.discard(attempt)
        self._metrics.incr(METRIC_OUTCOMES_TOTAL, tags={"outcome": event.type})
        if event.type == "load":
            logger.debug("Chunk %s loaded from %s", attempt.chunk_id, event.request)
        else:
            logger.info(
                "Chunk %s fetch ended with %s (%s)",
                attempt.chunk_id,
                event.type,
                event.request,
            )
