"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Fetch handle model and the registry protocol backends implement.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

Observer = Callable[["LoadEvent"], None]


@dataclass(frozen=True, slots=True)
class LoadEvent:
    """One completion signal delivered by a fetch handle or the watchdog."""

    type: str
    target: FetchHandle | None = None

    @property
    def request(self) -> str | None:
        """Source address of the handle that produced the event."""
        if self.target is None:
            return None
        return self.target.url


@dataclass(slots=True, eq=False)
class FetchHandle:
    """
    Asynchronous I/O primitive performing one resource fetch.

    Attributes:
        url: Fetch target.
        tag: Namespaced discovery tag (`<unique_name>:chunk-<id>`).
        loading: Marker set while a coordinator awaits the outcome.
        on_load: Success observer slot.
        on_error: Failure observer slot.
    """

    url: str
    tag: str | None = None
    loading: bool = False
    on_load: Observer | None = None
    on_error: Observer | None = None

    def matches(self, *, url: str, tag: str | None) -> bool:
        if self.url == url:
            return True
        return tag is not None and self.tag == tag

    def dispatch(self, event_type: str) -> None:
        """Deliver one signal to the matching observer slot, if any."""
        observer = self.on_load if event_type == "load" else self.on_error
        if observer is not None:
            observer(LoadEvent(type=event_type, target=self))


class FetchHandleRegistry(Protocol):
    """Protocol implemented by handle backends used in the fetch coordinator."""

    backend_id: str

    def find(self, *, url: str, tag: str | None) -> FetchHandle | None:
        """Return an existing handle matching `url` or `tag`."""
        ...

    def create(self, *, url: str, tag: str | None) -> FetchHandle:
        """Build a detached handle; no I/O starts until `attach`."""
        ...

    def attach(self, handle: FetchHandle) -> None:
        """Make the handle discoverable and start its fetch."""
        ...

    def remove(self, handle: FetchHandle) -> None:
        """Forget a handle so the next attempt starts clean."""
        ...
