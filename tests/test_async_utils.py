"""Tests for async_utils.run_sync."""

import threading

from vault_sync.core.async_utils import run_sync


def _sync_add(a: int, b: int) -> int:
    return a + b


async def test_run_sync_calls_function():
    assert await run_sync(_sync_add, 3, 4) == 7


async def test_run_sync_passes_kwargs():
    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    assert await run_sync(_kw_func, name="world") == "hello world"


async def test_run_sync_uses_worker_thread():
    caller = threading.get_ident()
    worker = await run_sync(threading.get_ident)
    assert worker != caller


async def test_run_sync_propagates_exceptions():
    def _boom():
        raise OSError("disk gone")

    try:
        await run_sync(_boom)
    except OSError as e:
        assert str(e) == "disk gone"
    else:
        raise AssertionError("expected OSError")
