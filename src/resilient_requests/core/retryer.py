"""Retry engine: an executor decorator with backoff and shared throttling.

This module implements the retry state machine. For each logical call:

    Start -> Wait -> Prepare -> Execute -> Decide -> (Wait ... | done)

- Start: take a log id and log a dump of the request (secrets masked when
  the request was built by RequestBuilder).
- Wait: the next attempt may not start before the later of the shared
  throttle deadline and the call's own backoff time. If the caller's
  deadline comes first the call fails at once. After sleeping, the shared
  deadline is read again because concurrent calls may have moved it.
- Prepare: obtain a fresh copy of the request with its buffered body. A
  streaming body cannot be replayed and fails the call.
- Execute: run the inner executor. A response feeds the shared backoff,
  which may push the shared deadline later.
- Decide: the retry policy either ends the call (returning the response or
  raising the reported error) or schedules another attempt after draining
  the response.

There is no attempt cap: a call ends on a final outcome, on cancellation or
on the caller's deadline (see resilient_requests.core.deadline).

Examples:
    Retrying around a shared client::

        async with httpx.AsyncClient() as client:
            retryer = Retryer(HttpxExecutor(client))
            async with deadline_scope(10.0):
                response = await retryer.execute(httpx.Request("GET", url))

    Plugging policies::

        retryer = Retryer(
            executor,
            callback_logger(print),
            backoff=exponential_backoff(0.5),
            retry_policy=my_policy,
        )
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

import httpx

from resilient_requests.config import RequestsConfig
from resilient_requests.core.deadline import current_deadline
from resilient_requests.core.policies import (
    Backoff,
    RetryPolicy,
    default_retry_policy,
    default_shared_backoff,
    exponential_backoff,
)
from resilient_requests.core.throttle import SharedDeadline
from resilient_requests.exceptions import (
    BodyNotReplayableError,
    DeadlineBeforeNextTryError,
    DeadlineExceededError,
)
from resilient_requests.executors import Executor, drain
from resilient_requests.observability.instrumentation import (
    RequestLogger,
    StructlogRequestLogger,
    watch_close,
)
from resilient_requests.observability.metrics import (
    record_attempt,
    record_call_duration,
    record_retry,
    record_throttle_advance,
)
from resilient_requests.utils.wire import MASKED_DUMP_EXTENSION, dump_request


def snapshot(request: httpx.Request) -> str:
    """Return the text logged at the start of a call.

    Requests built by RequestBuilder carry a dump with masked secrets; that
    dump is preferred over dumping the real request.
    """
    masked = request.extensions.get(MASKED_DUMP_EXTENSION)
    if isinstance(masked, str):
        return masked
    return dump_request(request)


def reset_body(request: httpx.Request) -> httpx.Request:
    """Return a copy of ``request`` with a fresh, replayable body.

    Args:
        request: The request of the call

    Returns:
        A new request sharing method, URL, headers and extensions

    Raises:
        BodyNotReplayableError: If the body is a stream that was never read.
    """
    try:
        content = request.content
    except httpx.RequestNotRead as e:
        raise BodyNotReplayableError("can not reset body") from e
    return httpx.Request(
        request.method,
        request.url,
        headers=request.headers,
        content=content,
        extensions=dict(request.extensions),
    )


class Retryer:
    """Executor retrying an inner executor under backoff and throttling.

    A Retryer may serve any number of concurrent calls. They share the
    throttle deadline and the logger; each call has its own backoff.

    Attributes:
        executor: The wrapped executor
        logger: Request lifecycle logger
        shared_deadline: Throttle deadline shared by all calls
        config: Engine configuration
    """

    def __init__(
        self,
        executor: Executor,
        logger: RequestLogger | None = None,
        *,
        config: RequestsConfig | None = None,
        backoff: Callable[[], Backoff] | None = None,
        shared_backoff: Backoff | None = None,
        retry_policy: RetryPolicy | None = None,
        drainer: Callable[[httpx.Response], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the retry engine.

        Args:
            executor: Executor performing single attempts
            logger: Lifecycle logger. Defaults to a StructlogRequestLogger.
            config: Engine configuration. Defaults to RequestsConfig().
            backoff: Factory of per-call backoffs. Defaults to exponential
                backoff with config.backoff_base_seconds.
            shared_backoff: Backoff consulted on every response to move the
                shared deadline. Defaults to Retry-After on 429.
            retry_policy: Retry decision. Defaults to default_retry_policy.
            drainer: Coroutine discarding a response. Defaults to draining
                config.drain_limit_bytes bytes.
        """
        self.executor = executor
        self.logger: RequestLogger = logger if logger is not None else StructlogRequestLogger()
        self.config = config if config is not None else RequestsConfig()
        self.shared_deadline = SharedDeadline()
        self._backoff = backoff or exponential_backoff(self.config.backoff_base_seconds)
        self._shared_backoff = shared_backoff or default_shared_backoff
        self._retry_policy = retry_policy or default_retry_policy
        self._drainer = drainer or self._drain

    async def _drain(self, response: httpx.Response) -> None:
        await drain(response, self.config.drain_limit_bytes)

    async def _discard(self, log_id: int, response: httpx.Response) -> None:
        """Run the drainer; its failures are logged and never end the call."""
        try:
            await self._drainer(response)
        except Exception as e:
            self.logger.log(log_id, e, "drain failed")

    async def execute(self, request: httpx.Request) -> httpx.Response:
        """Run ``request`` to a final outcome.

        Args:
            request: The request. Its body must be buffered.

        Returns:
            The final response. The caller must read or close it.

        Raises:
            DeadlineBeforeNextTryError: The caller's deadline precedes the
                next permitted attempt.
            DeadlineExceededError: The caller's deadline passed.
            BodyNotReplayableError: The body cannot be sent again.
            Exception: The error reported by the retry policy.
        """
        log_id = self.logger.next_id()
        started = time.monotonic()
        error: BaseException | None = None
        try:
            self.logger.log(log_id, None, snapshot(request))
            return await self._run(log_id, request)
        except BaseException as e:
            error = e
            raise
        finally:
            self.logger.log(log_id, error, "done")
            record_call_duration(
                time.monotonic() - started, "error" if error is not None else "success"
            )

    async def _run(self, log_id: int, request: httpx.Request) -> httpx.Response:
        backoff = self._backoff()
        next_try = 0.0

        while True:
            shared = self.shared_deadline.get()
            if shared > next_try:
                next_try = shared

            deadline = current_deadline()
            if deadline is not None and deadline < next_try:
                raise DeadlineBeforeNextTryError("deadline is before next try")

            now = time.monotonic()
            if next_try > now:
                await asyncio.sleep(next_try - now)
                # The shared deadline may have moved while sleeping
                continue

            if deadline is not None and now >= deadline:
                raise DeadlineExceededError("context deadline exceeded")

            attempt = reset_body(request)

            response: httpx.Response | None = None
            failure: Exception | None = None
            try:
                response = await self.executor.execute(attempt)
            except Exception as e:
                failure = e

            if response is not None:
                record_attempt("response")
                watch_close(response, lambda n: self.logger.log(log_id, None, f"close {n}"))
                if self.shared_deadline.advance(self._shared_backoff.next(response)):
                    record_throttle_advance()
            else:
                record_attempt("error")

            retry, reported = self._retry_policy(response, failure)
            if not retry:
                if reported is not None:
                    if response is not None:
                        await self._discard(log_id, response)
                    if reported is failure:
                        raise failure
                    raise reported from failure
                if failure is not None:
                    raise failure
                assert response is not None
                return response

            if response is not None:
                self.logger.log(
                    log_id,
                    reported,
                    f"retry: {response.status_code} {response.reason_phrase}".rstrip(),
                )
                record_retry(str(response.status_code))
                await self._discard(log_id, response)
            else:
                self.logger.log(log_id, reported, f"retry: {type(failure).__name__}")
                record_retry(type(failure).__name__)

            next_try = time.monotonic() + backoff.next(response)
