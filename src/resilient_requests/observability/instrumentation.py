"""Request lifecycle instrumentation.

Every logical call through the retry engine gets a monotonically increasing
id from a RequestLogger. All events of that call (the request dump, each
retry, the byte count at close time and the final outcome) are logged with
the same id, so interleaved concurrent calls can be told apart.

Two loggers are provided:

- StructlogRequestLogger emits structlog events (the default)
- CallbackRequestLogger forwards to a plain function

Examples:
    Forwarding to a function::

        from resilient_requests.observability.instrumentation import callback_logger

        logger = callback_logger(lambda id, err, msg: print(id, err, msg))
        retryer = Retryer(HttpxExecutor(client), logger)

    Counting response bytes::

        watch_close(response, lambda n: print(f"close {n}"))
"""

import threading
from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol, runtime_checkable

import httpx

from resilient_requests.observability.logging import get_logger


@runtime_checkable
class RequestLogger(Protocol):
    """Logger for the lifecycle of logical calls."""

    def next_id(self) -> int:
        """Return a new id, greater than every id returned before."""
        ...

    def log(self, request_id: int, error: BaseException | None, message: str) -> None:
        """Log ``message`` for the call ``request_id``."""
        ...


class _Counter:
    """Id counter guarded by a plain mutex."""

    def __init__(self) -> None:
        self._id = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            self._id += 1
            return self._id


class CallbackRequestLogger(_Counter):
    """RequestLogger forwarding every event to a function.

    Attributes:
        callback: Function called as ``callback(request_id, error, message)``
    """

    def __init__(self, callback: Callable[[int, BaseException | None, str], None]) -> None:
        super().__init__()
        self.callback = callback

    def log(self, request_id: int, error: BaseException | None, message: str) -> None:
        self.callback(request_id, error, message)


def callback_logger(
    callback: Callable[[int, BaseException | None, str], None],
) -> CallbackRequestLogger:
    """Build a RequestLogger from a plain function."""
    return CallbackRequestLogger(callback)


class StructlogRequestLogger(_Counter):
    """RequestLogger emitting structlog events.

    The event name is derived from the message: ``request.retry`` for retry
    messages, ``request.close`` for byte counts, ``request.done`` for the
    final outcome, ``request.drain_failed`` when a discarded response
    could not be drained and ``request.start`` for the request dump. Failed
    drains and ``done`` events that carry an error are logged as warnings.
    """

    def __init__(self, logger: Any = None) -> None:
        super().__init__()
        self._logger = logger if logger is not None else get_logger("resilient_requests.requests")

    @staticmethod
    def event_name(message: str) -> str:
        if message.startswith("retry"):
            return "request.retry"
        if message.startswith("close "):
            return "request.close"
        if message == "done":
            return "request.done"
        if message == "drain failed":
            return "request.drain_failed"
        return "request.start"

    def log(self, request_id: int, error: BaseException | None, message: str) -> None:
        event = self.event_name(message)
        fields: dict[str, Any] = {"request_id": request_id}
        if event == "request.start":
            fields["request"] = message
        elif event != "request.done":
            fields["detail"] = message
        if error is not None:
            fields["error"] = str(error) or type(error).__name__
            fields["error_type"] = type(error).__name__

        if event == "request.drain_failed" or (event == "request.done" and error is not None):
            self._logger.warning(event, **fields)
        else:
            self._logger.info(event, **fields)


class CountingStream(httpx.AsyncByteStream):
    """Response stream counting the bytes read through it.

    ``on_close`` is called once with the byte count when the stream is
    closed.
    """

    def __init__(self, stream: httpx.AsyncByteStream, on_close: Callable[[int], None]) -> None:
        self._stream = stream
        self._on_close = on_close
        self._closed = False
        self.bytes_read = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._stream:
            self.bytes_read += len(chunk)
            yield chunk

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            self._on_close(self.bytes_read)
        await self._stream.aclose()


def watch_close(response: httpx.Response, on_close: Callable[[int], None]) -> None:
    """Report the number of body bytes of ``response`` when it is closed.

    A response that is still streaming gets its stream wrapped in a
    CountingStream. A response whose body was already buffered and closed
    by the executor reports its size right away.

    Args:
        response: The response handed to the caller
        on_close: Called once with the byte count
    """
    if not response.is_closed:
        response.stream = CountingStream(response.stream, on_close)  # type: ignore[arg-type]
        return
    try:
        on_close(len(response.content))
    except httpx.ResponseNotRead:
        on_close(0)
