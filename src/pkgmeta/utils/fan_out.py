"""Concurrent fan-out with first-error-wins join."""

import asyncio
import inspect
from typing import Awaitable, Iterable, List, TypeVar

T = TypeVar("T")


async def gather_fail_fast(awaitables: Iterable[Awaitable[T]], concurrency: int = 0) -> List[T]:
    """
    Run awaitables concurrently and return their results in order.

    The first exception raised by any of them is re-raised once it occurs;
    siblings that have not finished are then cancelled, and coroutines that
    never started are closed.

    Args:
        awaitables: Coroutines to run, one per independent key
        concurrency: Maximum number running at once, 0 for unbounded

    Returns:
        List[T]: Results in the order the awaitables were given
    """
    semaphore = asyncio.Semaphore(concurrency) if concurrency > 0 else None

    async def _bounded(aw: Awaitable[T]) -> T:
        if semaphore is None:
            return await aw
        async with semaphore:
            return await aw

    awaitables = list(awaitables)
    tasks = [asyncio.ensure_future(_bounded(aw)) for aw in awaitables]
    if not tasks:
        return []
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        for aw in awaitables:
            if inspect.iscoroutine(aw) and inspect.getcoroutinestate(aw) == inspect.CORO_CREATED:
                aw.close()
        raise
