"""Executor protocol and the executors shipped with resilient_requests.

An executor performs one HTTP exchange: it takes a rendered httpx.Request
and returns an httpx.Response, or raises. Executors compose as decorators:

- HttpxExecutor sends the request with an httpx.AsyncClient
- StatusCheckingExecutor turns non-2xx responses into StatusError
- Retryer (resilient_requests.core.retryer) retries an inner executor

Contract:
    1. A raised exception means there is no usable response.
    2. A returned response belongs to the caller, who must read or close it.
    3. Executors never retry on their own unless that is their purpose.

Examples:
    Default stack of a RequestBuilder::

        executor = StatusCheckingExecutor(HttpxExecutor())

    Retrying on top of a shared client::

        async with httpx.AsyncClient() as client:
            executor = StatusCheckingExecutor(Retryer(HttpxExecutor(client)))
            response = await executor.execute(request)

    Stubbing the transport in tests::

        async def fake(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": True})

        builder.use_executor(executor_func(fake))
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

import httpx

from resilient_requests.exceptions import StatusError

DEFAULT_DRAIN_LIMIT = 4096


@runtime_checkable
class Executor(Protocol):
    """Protocol for anything able to perform one HTTP exchange."""

    async def execute(self, request: httpx.Request) -> httpx.Response:
        """Send ``request`` and return its response.

        Args:
            request: The rendered request.

        Returns:
            The response. The caller must read or close it.

        Raises:
            Exception: Any failure; no response is usable in that case.
        """
        ...


class ExecutorFunc:
    """Executor adapter for a plain coroutine function."""

    def __init__(self, fn: Callable[[httpx.Request], Awaitable[httpx.Response]]) -> None:
        self.fn = fn

    async def execute(self, request: httpx.Request) -> httpx.Response:
        return await self.fn(request)


def executor_func(fn: Callable[[httpx.Request], Awaitable[httpx.Response]]) -> ExecutorFunc:
    """Wrap a coroutine function as an Executor."""
    return ExecutorFunc(fn)


async def drain(response: httpx.Response, limit: int = DEFAULT_DRAIN_LIMIT) -> None:
    """Discard at most ``limit`` bytes of the body, then close the response.

    Reading a bounded prefix lets the connection be reused for short error
    bodies without downloading large ones.

    Args:
        response: The response to discard
        limit: Maximum number of bytes to read
    """
    try:
        if not response.is_closed and not response.is_stream_consumed and limit > 0:
            read = 0
            async for chunk in response.aiter_raw():
                read += len(chunk)
                if read >= limit:
                    break
    finally:
        await response.aclose()


class HttpxExecutor:
    """Executor sending requests with httpx.

    With an injected client, responses are returned streaming and the
    client's connection pool is reused; the caller owns the client. Without
    one, each request uses a short-lived client that follows redirects and
    the response body is buffered before that client is closed.

    Attributes:
        client: The injected httpx.AsyncClient, if any.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, **client_kwargs: Any) -> None:
        """Initialize the executor.

        Args:
            client: Client to send requests with. Not closed by the executor.
            **client_kwargs: Arguments for the short-lived clients used when
                no client is injected.
        """
        self.client = client
        self._client_kwargs = {"follow_redirects": True, **client_kwargs}

    async def execute(self, request: httpx.Request) -> httpx.Response:
        if self.client is not None:
            return await self.client.send(request, stream=True)
        async with httpx.AsyncClient(**self._client_kwargs) as client:
            return await client.send(request)


class StatusCheckingExecutor:
    """Executor treating every non-2xx response as a terminal error.

    The body of a rejected response is drained before StatusError is raised.
    """

    def __init__(self, inner: Executor, drain_limit: int = DEFAULT_DRAIN_LIMIT) -> None:
        self.inner = inner
        self.drain_limit = drain_limit

    async def execute(self, request: httpx.Request) -> httpx.Response:
        response = await self.inner.execute(request)
        if not response.is_success:
            await drain(response, self.drain_limit)
            raise StatusError(
                f"invalid status {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                response=response,
            )
        return response
