# utils/async_utils.py
"""
Bridging Flask's sync handlers and the asyncio pipeline

A streaming request drains the pipeline on a daemon thread; that thread
gets an event loop of its own, kept in a per-thread registry so it can be
torn down once the request is over.
"""

import asyncio
import threading
from typing import Any, Awaitable, Callable, Coroutine, Dict, List, Sequence, TypeVar

from utils.logger import risk_logger

_THREAD_LOOPS: Dict[int, asyncio.AbstractEventLoop] = {}
_LOOP_LOCK = threading.Lock()

T = TypeVar('T')
R = TypeVar('R')


def get_or_create_event_loop() -> asyncio.AbstractEventLoop:
    """Loop owned by the calling thread, created on first use"""
    thread_id = threading.get_ident()

    with _LOOP_LOCK:
        loop = _THREAD_LOOPS.get(thread_id)
        if loop is not None and not loop.is_closed():
            return loop

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _THREAD_LOOPS[thread_id] = loop
        return loop


def run_async_in_thread(coro: Coroutine[Any, Any, T]) -> T:
    """
    Block the calling thread until coro finishes on that thread's loop.

    Must not be called from inside a running loop. Pair with
    cleanup_thread_loop() once the thread is done:

        try:
            run_async_in_thread(pump())
        finally:
            cleanup_thread_loop()
    """
    return get_or_create_event_loop().run_until_complete(coro)


def cleanup_thread_loop():
    """Cancel whatever is left on this thread's loop and close it"""
    with _LOOP_LOCK:
        loop = _THREAD_LOOPS.pop(threading.get_ident(), None)

    if loop is None or loop.is_closed():
        return

    leftovers = asyncio.all_tasks(loop)
    for task in leftovers:
        task.cancel()

    try:
        if leftovers:
            loop.run_until_complete(asyncio.gather(*leftovers, return_exceptions=True))
        loop.run_until_complete(loop.shutdown_asyncgens())
    except Exception as e:
        risk_logger.log_component_error("EventLoopCleanup", e)
    finally:
        loop.close()


async def gather_in_chunks(
    items: Sequence[T],
    func: Callable[[T], Awaitable[R]],
    chunk_size: int
) -> List[R]:
    """
    Await func(item) for every item, chunk_size at a time.

    Results come back in input order.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    results: List[R] = []
    for start in range(0, len(items), chunk_size):
        chunk = items[start:start + chunk_size]
        results.extend(await asyncio.gather(*(func(item) for item in chunk)))
    return results


def safe_float(value, default=0.0):
    """LLMs sometimes send numbers as strings"""
    if isinstance(value, (bool, int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default
