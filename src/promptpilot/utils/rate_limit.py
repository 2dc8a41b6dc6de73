"""Scheduling helpers that govern when and how often expensive calls fire.

All helpers run on the asyncio event loop; none of them start threads.
Exceptions from the wrapped callables pass through unchanged, except for
debounced calls, which have no caller left to receive them and are logged.
"""

import asyncio
import functools
import inspect
import json
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)


def debounce(fn: Callable[..., Any], wait_ms: float) -> Callable[..., None]:
    """Coalesce bursts of calls into one trailing call.

    Each call cancels the pending one and schedules fn wait_ms after
    itself, so only the last call of a burst runs, with that call's
    arguments. Coroutine functions are started as tasks. The wrapper
    returns nothing and must be called while an event loop is running.

    Args:
        fn: Callable or coroutine function to run.
        wait_ms: Quiet period in milliseconds.

    Returns:
        The debounced wrapper.
    """
    pending: asyncio.TimerHandle | None = None
    running: set[asyncio.Task] = set()

    def _task_done(task: asyncio.Task) -> None:
        running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Debounced call to {getattr(fn, '__name__', fn)!r} failed",
                exc_info=task.exception(),
            )

    def _fire(args: tuple, kwargs: dict) -> None:
        nonlocal pending
        pending = None
        if inspect.iscoroutinefunction(fn):
            task = asyncio.ensure_future(fn(*args, **kwargs))
            running.add(task)
            task.add_done_callback(_task_done)
        else:
            fn(*args, **kwargs)

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        nonlocal pending
        if pending is not None:
            pending.cancel()
        loop = asyncio.get_running_loop()
        pending = loop.call_later(wait_ms / 1000, _fire, args, kwargs)

    return wrapper


def throttle(
    fn: Callable[..., R],
    limit_ms: float,
    clock: Callable[[], float] | None = None,
) -> Callable[..., R | None]:
    """Let at most one call through per limit_ms window.

    The first call runs immediately and opens a window; calls inside the
    window are dropped (not queued) and return None. The first call after
    the window runs immediately and opens the next one.

    Args:
        fn: Callable to throttle.
        limit_ms: Window length in milliseconds.
        clock: Millisecond clock; defaults to a monotonic clock.

    Returns:
        The throttled wrapper.
    """
    clock = clock or (lambda: time.monotonic() * 1000)
    window_start: float | None = None

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> R | None:
        nonlocal window_start
        now = clock()
        if window_start is not None and now - window_start < limit_ms:
            return None
        window_start = now
        return fn(*args, **kwargs)

    return wrapper


async def delay(ms: float) -> None:
    """Cooperatively pause the current task for ms milliseconds."""
    await asyncio.sleep(ms / 1000)


def memoize(
    fn: Callable[..., R],
    key_fn: Callable[..., str] | None = None,
) -> Callable[..., R]:
    """Cache results of a pure function forever.

    There is no eviction, so only use it for small, stable input domains.
    Exceptions are not cached.

    Args:
        fn: Pure function.
        key_fn: Builds the cache key from the call arguments. Defaults to a
            JSON serialization of the arguments.

    Returns:
        The memoized wrapper, with a cache_clear() method.
    """
    cache: dict[str, R] = {}

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> R:
        key = key_fn(*args, **kwargs) if key_fn else _structural_key(args, kwargs)
        if key in cache:
            return cache[key]
        result = fn(*args, **kwargs)
        cache[key] = result
        return result

    wrapper.cache_clear = cache.clear  # type: ignore[attr-defined]
    return wrapper


def _structural_key(args: tuple, kwargs: dict) -> str:
    return json.dumps([args, kwargs], sort_keys=True, default=repr)


async def batch_process(
    items: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    batch_size: int = 10,
) -> list[R]:
    """Process items in sequential chunks, each chunk concurrently.

    A failing item fails its whole chunk and the exception propagates;
    later chunks are not started. Callers that need partial-failure
    tolerance must catch inside fn.

    Args:
        items: Items to process.
        fn: Async function applied to each item.
        batch_size: Items per chunk.

    Returns:
        Results in input order.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    items = list(items)
    results: list[R] = []
    for start in range(0, len(items), batch_size):
        chunk = items[start : start + batch_size]
        results.extend(await asyncio.gather(*(fn(item) for item in chunk)))
    return results
