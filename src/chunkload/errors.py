"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error taxonomy for chunk loading.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .handles.base import LoadEvent
    from .types import ChunkId


class ChunkLoaderError(Exception):
    """Base error for the chunk loading runtime."""


class HandleRegistryError(ChunkLoaderError):
    """Raised when a fetch handle registry backend cannot be resolved."""


class ChunkLoadError(ChunkLoaderError):
    """
    One failed load attempt for one chunk.

    Every waiter of the attempt receives the same instance.

    Attributes:
        chunk_id: Identifier of the chunk that failed.
        type: Event kind that ended the attempt (`error`, `timeout`, `abort`).
        request: Resolved source address when known.
    """

    name = "ChunkLoadError"

    def __init__(
        self,
        chunk_id: ChunkId,
        *,
        type: str,
        request: str | None = None,
        asset_kind: str = "css",
    ) -> None:
        self.chunk_id = chunk_id
        self.type = type
        self.request = request
        self.asset_kind = asset_kind
        super().__init__(
            f"Loading {asset_kind} chunk {chunk_id} failed.\n({type}: {request})"
        )


class ChunkLoadFailedError(ChunkLoadError):
    """The fetch handle signalled an error event."""


class ChunkLoadTimeoutError(ChunkLoadError):
    """No completion signal arrived within the watchdog window."""

    def __init__(
        self,
        chunk_id: ChunkId,
        *,
        timeout_s: float,
        request: str | None = None,
        asset_kind: str = "css",
    ) -> None:
        self.timeout_s = timeout_s
        super().__init__(
            chunk_id,
            type="timeout",
            request=request,
            asset_kind=asset_kind,
        )


class ChunkLoadAbortedError(ChunkLoadError):
    """The runtime was closed while the load was still in flight."""


def classify_load_event(
    chunk_id: ChunkId,
    event: LoadEvent,
    *,
    asset_kind: str = "css",
    timeout_s: float = 120.0,
) -> ChunkLoadError:
    """Map a non-`load` completion event onto the matching error class."""
    request = event.request
    if event.type == "timeout":
        return ChunkLoadTimeoutError(
            chunk_id,
            timeout_s=timeout_s,
            request=request,
            asset_kind=asset_kind,
        )
    if event.type == "abort":
        return ChunkLoadAbortedError(
            chunk_id,
            type="abort",
            request=request,
            asset_kind=asset_kind,
        )
    return ChunkLoadFailedError(
        chunk_id,
        type=event.type or "error",
        request=request,
        asset_kind=asset_kind,
    )
