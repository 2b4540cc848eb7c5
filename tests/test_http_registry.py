from __future__ import annotations

import asyncio

import httpx
import pytest

from chunkload import ChunkLoadFailedError, ChunkLoadingRuntime, LoaderSettings
from chunkload.handles import HttpFetchHandle, HttpHandleRegistry


def _client(calls: list[str], *, status_by_path: dict[str, int] | None = None):
    status_by_path = status_by_path or {}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        status = status_by_path.get(request.url.path, 200)
        return httpx.Response(status, content=b".a{color:red}")

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def run_async(coro):
    return asyncio.run(coro)


def test_http_registry_fetches_once_for_concurrent_requests():
    async def scenario() -> None:
        calls: list[str] = []
        client = _client(calls)
        registry = HttpHandleRegistry(client)
        runtime = ChunkLoadingRuntime(
            registry,
            settings=LoaderSettings(public_path="https://cdn.test/static/"),
        )

        await asyncio.gather(runtime.request_load("a"), runtime.request_load("a"))

        assert calls == ["https://cdn.test/static/a.css"]
        handle = runtime.find_handle("a")
        assert isinstance(handle, HttpFetchHandle)
        assert handle.content == b".a{color:red}"
        assert handle.status_code == 200
        assert handle.loading is False

        await runtime.request_load("a")
        assert len(calls) == 1

        await runtime.aclose()
        assert not client.is_closed
        await client.aclose()

    run_async(scenario())


def test_http_registry_failure_is_retriable_on_next_request():
    async def scenario() -> None:
        calls: list[str] = []
        client = _client(calls, status_by_path={"/static/b.css": 404})
        registry = HttpHandleRegistry(client)
        runtime = ChunkLoadingRuntime(
            registry,
            settings=LoaderSettings(public_path="https://cdn.test/static/"),
        )

        with pytest.raises(ChunkLoadFailedError) as exc_info:
            await runtime.request_load("b")
        assert exc_info.value.request == "https://cdn.test/static/b.css"
        assert registry.handles == []

        with pytest.raises(ChunkLoadFailedError):
            await runtime.request_load("b")
        assert len(calls) == 2

        await client.aclose()

    run_async(scenario())


def test_http_registry_adopts_handle_by_tag():
    async def scenario() -> None:
        calls: list[str] = []
        client = _client(calls)
        registry = HttpHandleRegistry(client)
        runtime = ChunkLoadingRuntime(
            registry,
            settings=LoaderSettings(public_path="https://cdn.test/static/"),
        )
        await runtime.request_load("a")

        assert registry.find(url="https://other.test/a.css", tag="webpack:chunk-a") is not None
        assert registry.find(url="https://other.test/a.css", tag=None) is None

        await client.aclose()

    run_async(scenario())


def test_http_registry_rejects_foreign_handles():
    async def scenario() -> None:
        from chunkload import FetchHandle

        client = _client([])
        registry = HttpHandleRegistry(client)
        with pytest.raises(TypeError):
            registry.attach(FetchHandle(url="https://cdn.test/x.css"))
        await registry.aclose()
        await client.aclose()

    run_async(scenario())


def test_http_registry_reports_unissuable_request_as_load_failure():
    async def scenario() -> None:
        calls: list[str] = []
        client = _client(calls)
        runtime = ChunkLoadingRuntime(
            HttpHandleRegistry(client),
            settings=LoaderSettings(timeout_s=5.0),
            resolve_url=lambda chunk_id: f"https://cdn.test/\x00{chunk_id}.css",
        )

        with pytest.raises(ChunkLoadFailedError) as exc_info:
            await asyncio.wait_for(runtime.request_load("a"), timeout=1.0)
        assert exc_info.value.type == "error"
        assert exc_info.value.request == "https://cdn.test/\x00a.css"
        assert calls == []
        assert runtime.state("a") == "unknown"

        await runtime.aclose()
        await client.aclose()

    run_async(scenario())
