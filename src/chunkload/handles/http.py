"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

HTTP handle registry backed by `httpx`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from .base import FetchHandle

logger = logging.getLogger("chunkload.handles.http")


@dataclass(slots=True, eq=False)
class HttpFetchHandle(FetchHandle):
    """Fetch handle that keeps the downloaded body once loaded."""

    content: bytes | None = None
    status_code: int | None = None
    error: str | None = None


class HttpHandleRegistry:
    """
    Handle registry that performs each fetch as one HTTP GET.

    Handles are keyed by URL. A loaded handle stays registered, so later
    requests for the same URL adopt it without another round trip.
    """

    backend_id = "http"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout_s: float | None = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout_s),
            follow_redirects=True,
        )
        self._handles: dict[str, HttpFetchHandle] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def handles(self) -> list[HttpFetchHandle]:
        return list(self._handles.values())

    def find(self, *, url: str, tag: str | None) -> HttpFetchHandle | None:
        handle = self._handles.get(url)
        if handle is not None:
            return handle
        if tag is None:
            return None
        for candidate in self._handles.values():
            if candidate.tag == tag:
                return candidate
        return None

    def create(self, *, url: str, tag: str | None) -> HttpFetchHandle:
        return HttpFetchHandle(url=url, tag=tag)

    def attach(self, handle: FetchHandle) -> None:
        if not isinstance(handle, HttpFetchHandle):
            raise TypeError("HttpHandleRegistry only attaches HttpFetchHandle instances")
        self._handles[handle.url] = handle
        task = asyncio.get_running_loop().create_task(self._fetch(handle))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def remove(self, handle: FetchHandle) -> None:
        if self._handles.get(handle.url) is handle:
            del self._handles[handle.url]

    async def _fetch(self, handle: HttpFetchHandle) -> None:
        try:
            response = await self._client.get(handle.url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            response_obj = getattr(exc, "response", None)
            handle.status_code = getattr(response_obj, "status_code", None)
            handle.error = str(exc)
            logger.warning(
                "Fetch of %s failed (status=%s): %s",
                handle.url,
                handle.status_code,
                exc,
            )
            handle.dispatch("error")
            return
        except Exception as exc:
            # InvalidURL and other request-building errors are not HTTPError subclasses.
            handle.error = str(exc) or type(exc).__name__
            logger.exception("Fetch of %r could not be issued", handle.url)
            handle.dispatch("error")
            return

        handle.status_code = response.status_code
        handle.content = response.content
        handle.dispatch("load")

    async def aclose(self) -> None:
        """Cancel outstanding fetches and close the client when owned."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._owns_client:
            await self._client.aclose()
