from __future__ import annotations

import asyncio

import pytest

from chunkload import (
    ChunkLoadAbortedError,
    ChunkLoadFailedError,
    ChunkLoadTimeoutError,
    FetchHandle,
    LoadCache,
    LoadEvent,
    LoadingPolicy,
)


class _Starter:
    def __init__(self, *, settle_with: str | None = None, fail: bool = False) -> None:
        self.calls = []
        self._settle_with = settle_with
        self._fail = fail

    def __call__(self, chunk_id, done):
        if self._fail:
            raise RuntimeError("starter exploded")
        self.calls.append((chunk_id, done))
        if self._settle_with is not None:
            done(LoadEvent(type=self._settle_with))


def _event(event_type: str, url: str = "/static/x.css") -> LoadEvent:
    return LoadEvent(type=event_type, target=FetchHandle(url=url))


def run_async(coro):
    return asyncio.run(coro)


def test_concurrent_requests_share_one_fetch():
    async def scenario() -> None:
        starter = _Starter()
        cache = LoadCache(starter)

        first = cache.request_load("a")
        second = cache.request_load("a")

        assert first is second
        assert len(starter.calls) == 1
        assert cache.state("a") == "in_flight"
        assert cache.pending_count == 1

        _, done = starter.calls[0]
        done(_event("load"))
        await asyncio.gather(first, second)

        assert cache.state("a") == "loaded"
        assert cache.pending_count == 0

    run_async(scenario())


def test_loaded_chunk_resolves_immediately_without_fetch():
    async def scenario() -> None:
        starter = _Starter(settle_with="load")
        cache = LoadCache(starter)

        await cache.request_load("a")
        again = cache.request_load("a")

        assert again.done()
        assert again.result() is None
        assert len(starter.calls) == 1
        assert cache.attempts("a") == 1

    run_async(scenario())


def test_failure_clears_entry_and_next_request_starts_new_attempt():
    async def scenario() -> None:
        starter = _Starter()
        cache = LoadCache(starter)

        future = cache.request_load("b")
        starter.calls[0][1](_event("error", "/static/b.css"))

        with pytest.raises(ChunkLoadFailedError) as exc_info:
            await future
        error = exc_info.value
        assert error.chunk_id == "b"
        assert error.type == "error"
        assert error.request == "/static/b.css"
        assert error.name == "ChunkLoadError"
        assert str(error) == "Loading css chunk b failed.\n(error: /static/b.css)"

        assert cache.state("b") == "unknown"
        assert "b" not in cache.snapshot()

        retry = cache.request_load("b")
        assert len(starter.calls) == 2
        assert cache.attempts("b") == 2
        starter.calls[1][1](_event("load"))
        await retry
        assert cache.state("b") == "loaded"

    run_async(scenario())


def test_timeout_event_rejects_with_timeout_error():
    async def scenario() -> None:
        starter = _Starter()
        cache = LoadCache(starter, policy=LoadingPolicy(timeout_s=5.0, asset_kind="js"))

        future = cache.request_load(7)
        starter.calls[0][1](_event("timeout", "/static/7.js"))

        with pytest.raises(ChunkLoadTimeoutError) as exc_info:
            await future
        assert exc_info.value.timeout_s == 5.0
        assert exc_info.value.type == "timeout"
        assert "Loading js chunk 7 failed." in str(exc_info.value)
        assert cache.state(7) == "unknown"

    run_async(scenario())


def test_duplicate_outcome_signals_are_ignored():
    async def scenario() -> None:
        starter = _Starter()
        cache = LoadCache(starter)

        future = cache.request_load("a")
        done = starter.calls[0][1]
        done(_event("load"))
        done(_event("error"))
        cache.report_outcome("a", _event("timeout"))

        await future
        assert cache.state("a") == "loaded"

        cache.report_outcome("never-requested", _event("load"))
        assert cache.state("never-requested") == "unknown"

    run_async(scenario())


def test_stale_attempt_signal_cannot_settle_newer_attempt():
    async def scenario() -> None:
        starter = _Starter()
        cache = LoadCache(starter)

        first = cache.request_load("a")
        stale_done = starter.calls[0][1]
        stale_done(_event("error"))
        with pytest.raises(ChunkLoadFailedError):
            await first

        second = cache.request_load("a")
        stale_done(_event("load"))
        assert cache.state("a") == "in_flight"
        assert not second.done()

        starter.calls[1][1](_event("load"))
        await second
        assert cache.state("a") == "loaded"

    run_async(scenario())


def test_report_outcome_settles_current_attempt():
    async def scenario() -> None:
        cache = LoadCache(_Starter())
        future = cache.request_load("a")
        cache.report_outcome("a", _event("load"))
        await future
        assert cache.state("a") == "loaded"

    run_async(scenario())


def test_mark_skipped_only_applies_to_unknown_chunks():
    async def scenario() -> None:
        starter = _Starter()
        cache = LoadCache(starter)

        cache.mark_skipped("c")
        cache.mark_skipped("c")
        future = cache.request_load("c")
        assert future.done()
        assert starter.calls == []
        assert cache.state("c") == "skipped"

        pending = cache.request_load("d")
        cache.mark_skipped("d")
        assert cache.state("d") == "in_flight"
        starter.calls[0][1](_event("load"))
        await pending
        cache.mark_skipped("d")
        assert cache.state("d") == "loaded"

    run_async(scenario())


def test_seeded_states_bypass_fetching():
    async def scenario() -> None:
        starter = _Starter()
        cache = LoadCache(starter, installed={"main": "loaded", "inline": "skipped"})
        cache.mark_loaded("late")

        await cache.request_load("main")
        await cache.request_load("inline")
        await cache.request_load("late")

        assert starter.calls == []
        assert cache.snapshot() == {
            "main": "loaded",
            "inline": "skipped",
            "late": "loaded",
        }

    run_async(scenario())


def test_seeding_rejects_non_terminal_states():
    with pytest.raises(ValueError):
        LoadCache(_Starter(), installed={"a": "in_flight"})


def test_synchronous_settlement_returns_resolved_future():
    async def scenario() -> None:
        cache = LoadCache(_Starter(settle_with="load"))
        future = cache.request_load("a")
        assert future.done()
        assert cache.state("a") == "loaded"

    run_async(scenario())


def test_starter_exception_leaves_no_entry_behind():
    async def scenario() -> None:
        cache = LoadCache(_Starter(fail=True))
        with pytest.raises(RuntimeError, match="starter exploded"):
            cache.request_load("a")
        assert cache.state("a") == "unknown"
        assert cache.pending_count == 0

    run_async(scenario())


def test_close_rejects_pending_waiters_and_keeps_terminal_states():
    async def scenario() -> None:
        starter = _Starter()
        cache = LoadCache(starter, installed={"done": "loaded"})
        future = cache.request_load("a")

        cache.close()

        with pytest.raises(ChunkLoadAbortedError) as exc_info:
            await future
        assert exc_info.value.type == "abort"
        assert cache.snapshot() == {"done": "loaded"}

        starter.calls[0][1](_event("load"))
        assert cache.state("a") == "unknown"

    run_async(scenario())


def test_report_outcome_threadsafe_marshals_onto_loop():
    async def scenario() -> None:
        cache = LoadCache(_Starter())
        future = cache.request_load("a")

        await asyncio.to_thread(cache.report_outcome_threadsafe, "a", _event("load"))
        await future
        assert cache.state("a") == "loaded"

    run_async(scenario())


def test_report_outcome_threadsafe_requires_loop():
    cache = LoadCache(_Starter())
    with pytest.raises(RuntimeError):
        cache.report_outcome_threadsafe("a", _event("load"))


def test_report_outcome_goes_through_settle_hook_first():
    async def scenario() -> None:
        starter = _Starter()
        settled = []

        def settle_fetch(chunk_id, event):
            settled.append((chunk_id, event.type))
            starter.calls[-1][1](event)
            return True

        cache = LoadCache(starter, settle_fetch=settle_fetch)
        future = cache.request_load("a")
        cache.report_outcome("a", _event("load"))

        await future
        assert settled == [("a", "load")]
        assert cache.state("a") == "loaded"

        cache.report_outcome("a", _event("error"))
        assert settled == [("a", "load")]

    run_async(scenario())


def test_report_outcome_settles_cache_when_hook_finds_nothing_active():
    async def scenario() -> None:
        cache = LoadCache(_Starter(), settle_fetch=lambda chunk_id, event: False)
        future = cache.request_load("b")
        cache.report_outcome("b", _event("error", "/static/b.css"))

        with pytest.raises(ChunkLoadFailedError):
            await future
        assert cache.state("b") == "unknown"

    run_async(scenario())
