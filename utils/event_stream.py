# utils/event_stream.py
"""
Server-Sent Events bridge between the async pipeline and Flask

The pipeline yields events on its own event loop in a daemon thread; the
Flask response generator reads them from a queue and frames them as SSE:

    data: {"type": "row", ...}\n\n

While nothing arrives a ": heartbeat" comment keeps proxies from closing the
connection. Hosts with a response time limit can set max_seconds; past it
the stream ends with an "error" event saying how many rows were sent.
"""

import json
import queue
import threading
import time
from typing import Any, AsyncIterator, Callable, Dict, Iterator, Optional

from utils.async_utils import cleanup_thread_loop, run_async_in_thread
from utils.logger import risk_logger

HEARTBEAT = ": heartbeat\n\n"
HEARTBEAT_INTERVAL = 15.0
STREAM_TIME_LIMIT_ERROR = "stream time limit reached"

_DONE = object()


def format_sse(event: Dict[str, Any]) -> str:
    """One event as an SSE data frame"""
    return f"data: {json.dumps(event)}\n\n"


def stream_events(
    make_events: Callable[[], AsyncIterator[Dict[str, Any]]],
    max_seconds: Optional[float] = None,
    heartbeat_interval: float = HEARTBEAT_INTERVAL,
    on_event: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
) -> Iterator[str]:
    """
    Run an async event source on a background thread and yield SSE frames.

    Args:
        make_events: Returns the async iterator to drain (called on the worker thread)
        max_seconds: Optional hard limit for hosts that kill long responses;
            None streams until the source is exhausted
        heartbeat_interval: Seconds of silence before a heartbeat comment is sent
        on_event: Optional hook applied to each event before it is framed

    A pipeline failure after the first event, or hitting max_seconds, ends
    the stream with an "error" event.
    """
    events: "queue.Queue[Any]" = queue.Queue()
    stop = threading.Event()

    async def pump():
        source = make_events()
        try:
            async for event in source:
                events.put(event)
                if stop.is_set():
                    break
        finally:
            await source.aclose()

    def worker():
        try:
            run_async_in_thread(pump())
        except Exception as e:
            risk_logger.log_component_error("EventStream", e)
            events.put({"type": "error", "error": str(e) or type(e).__name__})
        finally:
            cleanup_thread_loop()
            events.put(_DONE)

    def emit(event: Dict[str, Any]) -> str:
        if on_event is not None:
            event = on_event(event)
        return format_sse(event)

    threading.Thread(target=worker, daemon=True).start()
    deadline = time.monotonic() + max_seconds if max_seconds else None
    rows_sent = 0

    try:
        while True:
            wait = heartbeat_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    risk_logger.logger.warning(
                        f"⏱️ Stream stopped after {max_seconds:.0f}s ({rows_sent} rows sent)",
                        extra={"max_seconds": max_seconds, "completed": rows_sent}
                    )
                    yield emit({"type": "error", "error": STREAM_TIME_LIMIT_ERROR, "completed": rows_sent})
                    return
                wait = min(wait, remaining)

            try:
                item = events.get(timeout=wait)
            except queue.Empty:
                yield HEARTBEAT
                continue

            if item is _DONE:
                return

            if item.get("type") == "row":
                rows_sent += 1
            yield emit(item)
    finally:
        stop.set()
