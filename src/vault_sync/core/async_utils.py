"""Async utilities for bridging the blocking GitHub client to async callers."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    The GitHub client and the local file store are plain blocking code;
    the sync engine awaits them through this helper one call at a time.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        client = GitHubClient(config)
        ok = await run_sync(client.verify_access)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
