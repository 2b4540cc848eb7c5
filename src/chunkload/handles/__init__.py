"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: handles/__init__.py.
"""

from .base import FetchHandle, FetchHandleRegistry, LoadEvent, Observer
from .factory import create_handle_registry, create_handle_registry_from_env
from .inmemory import InMemoryHandleRegistry

__all__ = [
    "FetchHandle",
    "FetchHandleRegistry",
    "LoadEvent",
    "Observer",
    "InMemoryHandleRegistry",
    "create_handle_registry",
    "create_handle_registry_from_env",
]


# Lazy import for the httpx-backed registry
def __getattr__(name: str):
    """Lazily expose handle backends that require extra dependencies."""
    if name in ("HttpHandleRegistry", "HttpFetchHandle"):
        from . import http

        return getattr(http, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
