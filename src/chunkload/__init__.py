"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

On-demand chunk loading with single-flight coordination.

A ``LoadCache`` records one state per chunk id and shares each in-flight
load among all requesters; a ``FetchCoordinator`` starts or adopts exactly
one fetch handle per attempt and reports one outcome.

Quick start::

    from chunkload import ChunkLoadingRuntime, LoaderSettings

    settings = LoaderSettings(
        public_path="https://cdn.example.com/static/",
        handle_backend="http",
    )
    async with ChunkLoadingRuntime(settings=settings) as runtime:
        await runtime.ensure_chunk("main", "vendors")
"""

from .cache import FetchSettler, FetchStarter, LoadCache
from .contracts import LoadingPolicy
from .coordinator import FetchCoordinator
from .errors import (
    ChunkLoadAbortedError,
    ChunkLoadError,
    ChunkLoaderError,
    ChunkLoadFailedError,
    ChunkLoadTimeoutError,
    HandleRegistryError,
    classify_load_event,
)
from .handles import (
    FetchHandle,
    FetchHandleRegistry,
    InMemoryHandleRegistry,
    LoadEvent,
    create_handle_registry,
    create_handle_registry_from_env,
)
from .metrics import (
    InMemoryLoaderMetrics,
    LoaderMetrics,
    NoOpLoaderMetrics,
    PrometheusLoaderMetrics,
    create_loader_metrics,
)
from .runtime import ChunkLoadingRuntime
from .settings import LoaderSettings
from .types import ChunkId, LoadState, PendingLoad
from .urls import ChunkUrlResolver

__all__ = [
    "ChunkId",
    "LoadState",
    "PendingLoad",
    "LoadCache",
    "FetchStarter",
    "FetchSettler",
    "FetchCoordinator",
    "LoadingPolicy",
    "LoaderSettings",
    "ChunkLoadingRuntime",
    "ChunkUrlResolver",
    "FetchHandle",
    "FetchHandleRegistry",
    "InMemoryHandleRegistry",
    "LoadEvent",
    "create_handle_registry",
    "create_handle_registry_from_env",
    "ChunkLoaderError",
    "ChunkLoadError",
    "ChunkLoadFailedError",
    "ChunkLoadTimeoutError",
    "ChunkLoadAbortedError",
    "HandleRegistryError",
    "classify_load_event",
    "LoaderMetrics",
    "NoOpLoaderMetrics",
    "InMemoryLoaderMetrics",
    "PrometheusLoaderMetrics",
    "create_loader_metrics",
]
