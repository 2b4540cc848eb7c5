"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Factory helpers for selecting handle registry backends.
"""

from __future__ import annotations

from typing import Any

from ..errors import HandleRegistryError
from ..settings import LoaderSettings
from .base import FetchHandleRegistry
from .inmemory import InMemoryHandleRegistry


def create_handle_registry(
    backend: str | FetchHandleRegistry | None = None,
    *,
    http_client: Any | None = None,
    http_timeout_s: float | None = 30.0,
) -> FetchHandleRegistry:
    """
    Resolve a handle registry from id/instance/default.

    Backends:
    - `inmemory` (default)
    - `http`
    """
    if backend is None:
        return InMemoryHandleRegistry()
    if not isinstance(backend, str):
        return backend

    key = backend.strip().lower()
    if key in ("mem", "memory", "inmemory", "in_memory"):
        return InMemoryHandleRegistry()

    if key in ("http", "httpx"):
        from .http import HttpHandleRegistry

        return HttpHandleRegistry(http_client, timeout_s=http_timeout_s)

    raise HandleRegistryError(f"Unknown handle registry backend '{backend}'")


def create_handle_registry_from_env(*, http_client: Any | None = None) -> FetchHandleRegistry:
    """Create a handle registry from the backend named in `LoaderSettings.from_env()`."""
    settings = LoaderSettings.from_env()
    return create_handle_registry(
        settings.handle_backend,
        http_client=http_client,
        http_timeout_s=settings.http_timeout_s,
    )
