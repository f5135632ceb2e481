"""Shared throttle deadline of a retry engine.

A Retryer serves many concurrent calls. When one of them receives a rate
limit signal (e.g. 429 with Retry-After), every call on the same Retryer must
hold its next attempt until the signalled time. SharedDeadline stores that
"not before" timestamp.

Invariants:
    - The deadline only ever moves later. Concurrent advances keep the
      latest timestamp (compare-and-advance under the write lock).
    - Reads take the lock shared, so many attempts may check it at once.

Examples:
    Advancing and reading::

        shared = SharedDeadline()
        shared.advance(2.0)       # not before now + 2s
        shared.advance(1.0)       # ignored, earlier than the current value
        next_try = shared.get()
"""

import time

from resilient_requests.utils.locks import ReadWriteLock


class SharedDeadline:
    """Monotonic "do not attempt before" timestamp shared by concurrent calls.

    Timestamps are time.monotonic() values. The initial value 0.0 lies in
    the past, so a fresh deadline never delays anything.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._next_try = 0.0

    def get(self) -> float:
        """Return the earliest time a new attempt may start."""
        with self._lock.read():
            return self._next_try

    def advance(self, delay: float) -> bool:
        """Move the deadline to now + ``delay`` if that is later.

        Args:
            delay: Seconds from now. Zero or negative values are ignored.

        Returns:
            True if the deadline moved.
        """
        if delay <= 0:
            return False
        candidate = time.monotonic() + delay
        with self._lock.write():
            if candidate > self._next_try:
                self._next_try = candidate
                return True
        return False
