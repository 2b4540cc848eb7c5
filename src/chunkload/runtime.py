"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Scheduler-facing chunk loading runtime.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Mapping
from typing import Any

from .cache import LoadCache
from .coordinator import FetchCoordinator
from .handles.base import FetchHandle, FetchHandleRegistry, LoadEvent, Observer
from .handles.factory import create_handle_registry
from .metrics import LoaderMetrics, create_loader_metrics
from .settings import LoaderSettings
from .types import ChunkId, LoadState
from .urls import ChunkUrlResolver

UrlResolver = Callable[[ChunkId], str]
ChunkMatcher = Callable[[ChunkId], bool]


class ChunkLoadingRuntime:
    """
    Compose the load cache, fetch coordinator and handle registry.

    One instance per session or compilation unit; instances share nothing.

    Args:
        registry: Handle backend. Defaults to the backend named in settings.
        settings: Loader settings. Defaults to `LoaderSettings()`.
        resolve_url: Chunk id to URL mapping. Defaults to `ChunkUrlResolver`.
        chunk_matcher: Returns False for chunks with no asset of this kind;
            those are marked skipped instead of fetched.
        installed: Seed states (`loaded` or `skipped`) for chunks already
            satisfied, e.g. inlined at build time.
        metrics: Metrics sink. Defaults to the backend named in settings.
    """

    def __init__(
        self,
        registry: FetchHandleRegistry | None = None,
        *,
        settings: LoaderSettings | None = None,
        resolve_url: UrlResolver | None = None,
        chunk_matcher: ChunkMatcher | None = None,
        installed: Mapping[ChunkId, LoadState] | None = None,
        metrics: LoaderMetrics | None = None,
        http_client: Any | None = None,
    ) -> None:
        self._settings = settings or LoaderSettings()
        policy = self._settings.to_policy()
        self._metrics = metrics or create_loader_metrics(self._settings.metrics_backend)
        self._registry = registry or create_handle_registry(
            self._settings.handle_backend,
            http_client=http_client,
            http_timeout_s=self._settings.http_timeout_s,
        )
        self._resolve_url = resolve_url or ChunkUrlResolver(
            public_path=self._settings.public_path,
            filename_template=self._settings.filename_template,
        )
        self._chunk_matcher = chunk_matcher
        self.coordinator = FetchCoordinator(
            self._registry,
            policy=policy,
            metrics=self._metrics,
        )
        self.cache = LoadCache(
            self._start_fetch,
            policy=policy,
            installed=installed,
            metrics=self._metrics,
            settle_fetch=self.coordinator.settle,
        )
        self._closed = False

    @classmethod
    def from_env(cls, **kwargs: Any) -> "ChunkLoadingRuntime":
        """Build a runtime from `CHUNKLOAD_*` environment variables."""
        return cls(settings=LoaderSettings.from_env(), **kwargs)

    @property
    def registry(self) -> FetchHandleRegistry:
        return self._registry

    @property
    def settings(self) -> LoaderSettings:
        return self._settings

    def resolve_url(self, chunk_id: ChunkId) -> str:
        return self._resolve_url(chunk_id)

    def request_load(self, chunk_id: ChunkId) -> asyncio.Future[None]:
        """Return the shared future for `chunk_id`, starting a fetch when needed."""
        if self._closed:
            raise RuntimeError("ChunkLoadingRuntime is closed")
        if self._chunk_matcher is not None and not self._chunk_matcher(chunk_id):
            self.cache.mark_skipped(chunk_id)
        return self.cache.request_load(chunk_id)

    def collect(self, chunk_id: ChunkId, promises: list[asyncio.Future[None]]) -> None:
        """Append the load future for `chunk_id` to a caller-owned batch."""
        promises.append(self.request_load(chunk_id))

    async def ensure_chunk(self, *chunk_ids: ChunkId) -> None:
        """Wait until every chunk in `chunk_ids` is loaded; the first failure propagates."""
        promises: list[asyncio.Future[None]] = []
        for chunk_id in chunk_ids:
            self.collect(chunk_id, promises)
        await asyncio.gather(*promises)

    def report_outcome(self, chunk_id: ChunkId, event: LoadEvent) -> None:
        """Settle the in-flight load for `chunk_id` with an externally observed event."""
        self.cache.report_outcome(chunk_id, event)

    def mark_skipped(self, chunk_id: ChunkId) -> None:
        self.cache.mark_skipped(chunk_id)

    def mark_loaded(self, chunk_id: ChunkId) -> None:
        self.cache.mark_loaded(chunk_id)

    def state(self, chunk_id: ChunkId) -> LoadState:
        return self.cache.state(chunk_id)

    def find_handle(self, chunk_id: ChunkId) -> FetchHandle | None:
        """Return the handle already present for `chunk_id`, without loading it."""
        return self.coordinator.find(chunk_id, self._resolve_url(chunk_id))

    async def aclose(self) -> None:
        """Settle in-flight loads as aborted and release the handle backend."""
        if self._closed:
            return
        self._closed = True
        self.coordinator.close()
        self.cache.close()
        closer = getattr(self._registry, "aclose", None)
        if closer is not None:
            result = closer()
            if inspect.isawaitable(result):
                await result

    async def __aenter__(self) -> "ChunkLoadingRuntime":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _start_fetch(self, chunk_id: ChunkId, done: Observer) -> None:
        self.coordinator.load(chunk_id, self._resolve_url(chunk_id), done)
