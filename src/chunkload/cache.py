"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-chunk load state cache with single-flight request coordination.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from functools import partial

from .contracts import LoadingPolicy
from .errors import ChunkLoadAbortedError, classify_load_event
from .handles.base import LoadEvent, Observer
from .metrics import METRIC_REQUESTS_TOTAL, LoaderMetrics, NoOpLoaderMetrics
from .types import TERMINAL_STATES, ChunkId, LoadState, PendingLoad

logger = logging.getLogger("chunkload.cache")

# Starter signature: begin one fetch for a chunk and report exactly once to `done`.
FetchStarter = Callable[[ChunkId, Observer], object]
# Settler signature: push an external outcome through the fetch layer; False when nothing is active.
FetchSettler = Callable[[ChunkId, LoadEvent], bool]


class LoadCache:
    """
    Authoritative chunk-id to load-state mapping.

    Entries are absent (`unknown`), `skipped`, in flight (a `PendingLoad`)
    or `loaded`. Failures remove the entry so the next request starts a
    fresh attempt; the cache never retries on its own.

    Every transition is synchronous and must run on the event loop thread.
    """

    def __init__(
        self,
        start_fetch: FetchStarter,
        *,
        policy: LoadingPolicy | None = None,
        installed: Mapping[ChunkId, LoadState] | None = None,
        metrics: LoaderMetrics | None = None,
        settle_fetch: FetchSettler | None = None,
    ) -> None:
        self._start_fetch = start_fetch
        self._settle_fetch = settle_fetch
        self._policy = policy or LoadingPolicy()
        self._metrics: LoaderMetrics = metrics or NoOpLoaderMetrics()
        self._entries: dict[ChunkId, LoadState | PendingLoad] = {}
        self._attempts: dict[ChunkId, int] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        for chunk_id, state in (installed or {}).items():
            if state not in TERMINAL_STATES:
                raise ValueError(
                    f"Chunk {chunk_id!r} can only be seeded as one of {TERMINAL_STATES}, got {state!r}"
                )
            self._entries[chunk_id] = state

    def state(self, chunk_id: ChunkId) -> LoadState:
        entry = self._entries.get(chunk_id)
        if entry is None:
            return "unknown"
        if isinstance(entry, PendingLoad):
            return "in_flight"
        return entry

    def snapshot(self) -> dict[ChunkId, LoadState]:
        """Return a point-in-time copy of every known chunk state."""
        return {chunk_id: self.state(chunk_id) for chunk_id in self._entries}

    @property
    def pending_count(self) -> int:
        return sum(1 for entry in self._entries.values() if isinstance(entry, PendingLoad))

    def attempts(self, chunk_id: ChunkId) -> int:
        """Number of fetch attempts started for `chunk_id` so far."""
        return self._attempts.get(chunk_id, 0)

    def request_load(self, chunk_id: ChunkId) -> asyncio.Future[None]:
        """
        Return a future that settles once `chunk_id` is loaded.

        Terminal entries resolve immediately. An in-flight entry hands back its
        shared future. Otherwise one fetch is started before returning.
        """
        loop = asyncio.get_running_loop()
        self._loop = loop
        entry = self._entries.get(chunk_id)

        if entry in TERMINAL_STATES:
            self._metrics.incr(METRIC_REQUESTS_TOTAL, tags={"result": "hit"})
            future: asyncio.Future[None] = loop.create_future()
            future.set_result(None)
            return future

        if isinstance(entry, PendingLoad):
            entry.waiters += 1
            self._metrics.incr(METRIC_REQUESTS_TOTAL, tags={"result": "join"})
            return entry.future

        attempt = self._attempts.get(chunk_id, 0) + 1
        self._attempts[chunk_id] = attempt
        pending = PendingLoad(future=loop.create_future(), attempt=attempt)
        self._entries[chunk_id] = pending
        self._metrics.incr(METRIC_REQUESTS_TOTAL, tags={"result": "start"})
        logger.debug("Starting load of chunk %s (attempt %d)", chunk_id, attempt)

        try:
            self._start_fetch(chunk_id, partial(self._settle, chunk_id, pending))
        except Exception:
            if self._entries.get(chunk_id) is pending:
                del self._entries[chunk_id]
            raise
        return pending.future

    def mark_skipped(self, chunk_id: ChunkId) -> None:
        """Record that `chunk_id` needs no fetch. No-op unless the chunk is unknown."""
        if chunk_id not in self._entries:
            self._entries[chunk_id] = "skipped"

    def mark_loaded(self, chunk_id: ChunkId) -> None:
        """Seed `chunk_id` as already loaded. No-op unless the chunk is unknown."""
        if chunk_id not in self._entries:
            self._entries[chunk_id] = "loaded"

    def report_outcome(self, chunk_id: ChunkId, event: LoadEvent) -> None:
        """
        Settle the attempt currently in flight for `chunk_id`.

        The outcome is routed through `settle_fetch` first, so the fetch layer
        disarms its watchdog and observers and clears the loading marker.
        Ignored when nothing is in flight, so duplicate completion signals
        (a timeout followed by a late load, for example) have no effect.
        """
        entry = self._entries.get(chunk_id)
        if not isinstance(entry, PendingLoad):
            logger.debug("Ignoring %s signal for chunk %s: not in flight", event.type, chunk_id)
            return
        if self._settle_fetch is not None:
            self._settle_fetch(chunk_id, event)
        if self._entries.get(chunk_id) is entry:
            self._settle(chunk_id, entry, event)

    def report_outcome_threadsafe(self, chunk_id: ChunkId, event: LoadEvent) -> None:
        """Marshal `report_outcome` onto the loop that owns this cache."""
        if self._loop is None:
            raise RuntimeError("LoadCache has not been used from an event loop yet")
        self._loop.call_soon_threadsafe(self.report_outcome, chunk_id, event)

    def close(self) -> None:
        """Reject every waiter still in flight and forget those entries."""
        for chunk_id, entry in list(self._entries.items()):
            if not isinstance(entry, PendingLoad):
                continue
            del self._entries[chunk_id]
            entry.reject(
                ChunkLoadAbortedError(
                    chunk_id,
                    type="abort",
                    asset_kind=self._policy.asset_kind,
                )
            )

    def _settle(self, chunk_id: ChunkId, pending: PendingLoad, event: LoadEvent) -> None:
        if self._entries.get(chunk_id) is not pending:
            logger.debug(
                "Ignoring %s signal for chunk %s: attempt %d already settled",
                event.type,
                chunk_id,
                pending.attempt,
            )
            return

        if event.type == "load":
            self._entries[chunk_id] = "loaded"
            pending.resolve()
            return

        del self._entries[chunk_id]
        error = classify_load_event(
            chunk_id,
            event,
            asset_kind=self._policy.asset_kind,
            timeout_s=self._policy.timeout_s,
        )
        logger.warning("%s", error)
        pending.reject(error)
