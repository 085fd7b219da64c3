"""Keep a chunked response alive while one slow operation runs.

``keepalive_stream`` turns a single awaitable into an async iterator of
chunks: one heartbeat per elapsed interval while the operation is pending,
then exactly one terminal chunk (its result) or its exception. Nothing is
produced after the terminal chunk.

The iterator is pull-driven. The next chunk is only computed once the
consumer asks for it, so at most one heartbeat is ever waiting for delivery.
Closing the iterator early (client disconnect, ``aclose()``, task
cancellation) cancels the wrapped operation and waits for it to unwind.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

# An XML comment is ignored by feed readers and by anything parsing the body
KEEPALIVE_CHUNK = b"<!-- keepalive -->"


async def keepalive_stream(
    operation: Awaitable[T],
    *,
    heartbeat: bytes = KEEPALIVE_CHUNK,
    interval: float = 1.0,
) -> AsyncIterator[Union[bytes, T]]:
    """Yield ``heartbeat`` every ``interval`` seconds until ``operation`` resolves.

    Ticks fall on ``start + k * interval``. Ticks missed while the consumer
    was busy are skipped rather than replayed, so a prompt consumer sees
    exactly ``floor(duration / interval)`` heartbeats. When the operation and
    a tick are ready together, the operation wins.
    """
    if interval <= 0:
        if asyncio.iscoroutine(operation):
            operation.close()
        raise ValueError(f"interval must be positive, got {interval!r}")

    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(operation)
    heartbeats = 0
    try:
        next_tick = loop.time() + interval
        while True:
            await asyncio.wait({task}, timeout=max(0.0, next_tick - loop.time()))
            if task.done():
                break
            heartbeats += 1
            yield heartbeat

            now = loop.time()
            next_tick += interval
            if next_tick <= now:
                missed = int((now - next_tick) // interval) + 1
                next_tick += missed * interval
    finally:
        if not task.done():
            logger.info("Stream closed after %d heartbeats; cancelling pending operation", heartbeats)
            task.cancel()
            # Let the operation finish tearing down; wait() never re-raises its outcome
            await asyncio.wait({task})

    logger.debug("Operation settled after %d heartbeats", heartbeats)
    # Re-raises the operation's exception as the terminal event
    yield task.result()
