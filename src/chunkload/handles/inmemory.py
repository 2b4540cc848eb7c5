"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Process-local handle registry driven by explicit completion signals.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .base import FetchHandle


@dataclass(slots=True)
class InMemoryHandleRegistry:
    """
    Document-like handle registry suitable for development/test workloads.

    Attached handles stay pending until `complete` (or `FetchHandle.dispatch`)
    delivers a signal for them.
    """

    backend_id: str = "inmemory"
    handles: list[FetchHandle] = field(default_factory=list)
    attach_count: int = 0

    def find(self, *, url: str, tag: str | None) -> FetchHandle | None:
        for handle in self.handles:
            if handle.matches(url=url, tag=tag):
                return handle
        return None

    def create(self, *, url: str, tag: str | None) -> FetchHandle:
        return FetchHandle(url=url, tag=tag)

    def attach(self, handle: FetchHandle) -> None:
        self.attach_count += 1
        self.handles.append(handle)

    def remove(self, handle: FetchHandle) -> None:
        if handle in self.handles:
            self.handles.remove(handle)

    def add_external(
        self,
        url: str,
        *,
        tag: str | None = None,
        loading: bool = False,
    ) -> FetchHandle:
        """Plant a handle created outside the coordinator, e.g. server-rendered markup."""
        handle = FetchHandle(url=url, tag=tag, loading=loading)
        self.handles.append(handle)
        return handle

    def complete(self, url: str, event_type: str = "load") -> FetchHandle:
        """Deliver one completion signal to the handle registered for `url`."""
        handle = self.find(url=url, tag=None)
        if handle is None:
            raise KeyError(url)
        handle.dispatch(event_type)
        return handle
