"""Caller deadlines visible to the retry engine.

asyncio cancels a task when its timeout expires but does not tell the code
running inside when that will happen. The retry engine needs to know, so it
can fail fast instead of sleeping past the deadline. deadline_scope() does
both: it cancels the enclosed block on expiry (raising TimeoutError) and
publishes the absolute deadline through a context variable that
current_deadline() reads.

Nested scopes never extend an enclosing deadline.

Examples:
    Bounding a call::

        async with deadline_scope(5.0):
            response = await retryer.execute(request)

    Reading the deadline::

        deadline = current_deadline()
        if deadline is not None and deadline < next_try:
            raise DeadlineBeforeNextTryError("deadline is before next try")
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar

_deadline: ContextVar[float | None] = ContextVar("resilient_requests_deadline", default=None)


def current_deadline() -> float | None:
    """Return the active deadline as a time.monotonic() timestamp, or None."""
    return _deadline.get()


@asynccontextmanager
async def deadline_scope(timeout: float | None) -> AsyncIterator[float | None]:
    """Bound the enclosed block by ``timeout`` seconds.

    Args:
        timeout: Seconds from now, or None to only inherit the enclosing
            deadline.

    Yields:
        The effective deadline (time.monotonic() timestamp), or None.

    Raises:
        TimeoutError: If the block is still running when the deadline passes.
    """
    parent = _deadline.get()
    if timeout is None:
        yield parent
        return

    when = time.monotonic() + timeout
    if parent is not None and parent < when:
        when = parent

    token = _deadline.set(when)
    try:
        async with asyncio.timeout(max(0.0, when - time.monotonic())):
            yield when
    finally:
        _deadline.reset(token)
