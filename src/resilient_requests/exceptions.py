"""Custom exceptions for resilient_requests.

This module defines the exception hierarchy used to signal failures while
building and executing requests. The hierarchy follows the lifecycle of a
request:

1. Configuration errors are captured while the builder is being configured
   and raised when the request is finally built.
2. Build errors are raised immediately while rendering the wire request.
3. Status errors describe HTTP responses that are not acceptable.
4. Control errors stop the retry loop (deadlines, non replayable bodies).
5. Body errors are raised while reading and parsing a response.

Transport failures are not wrapped: the exceptions raised by httpx reach the
caller unchanged so they keep their most specific type.

Examples:
    Handling a sticky configuration error::

        from resilient_requests.exceptions import ConfigurationError

        try:
            await RequestBuilder(123).send()
        except ConfigurationError as e:
            logger.warning("request.misconfigured", error=e.message)

    Handling a retry loop that ran out of time::

        from resilient_requests.exceptions import DeadlineBeforeNextTryError

        try:
            async with deadline_scope(2.0):
                response = await retryer.execute(request)
        except DeadlineBeforeNextTryError:
            # The server asked us to back off for longer than we can wait
            return None
"""

from typing import Any


class RequestsError(Exception):
    """Base exception for all resilient_requests errors.

    Attributes:
        message: Human-readable error description.

    Examples:
        Catching every library error::

            try:
                response = await builder.send()
            except RequestsError as e:
                logger.error("request.failed", error=e.message)
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(RequestsError):
    """A request builder was configured with an unusable value.

    Raised for values that cannot be converted into a lazy value and for a
    base URL that carries a raw query string while structured query
    parameters are also set. The builder keeps only the first configuration
    error and raises it every time the request is built, so it is never
    retried.

    Examples:
        >>> str(ConfigurationError("can not convert 123 to stringer"))
        'can not convert 123 to stringer'
    """


class RequestBuildError(RequestsError):
    """The wire request could not be rendered.

    Raised immediately during rendering, for example when the method is not
    a valid HTTP token.
    """


class StatusError(RequestsError):
    """An HTTP response carried a status that is treated as a failure.

    Attributes:
        message: Human-readable error description.
        status_code: The HTTP status code of the response, if any.
        response: The offending response, if any. Its body has already been
            drained when this error reaches the caller.

    Examples:
        Inspecting a status error::

            try:
                await builder.send_json()
            except StatusError as e:
                if e.status_code == 404:
                    return None
                raise
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
    ) -> None:
        """Initialize the status error with details.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code of the response.
            response: The response that triggered the error.
        """
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class DeadlineBeforeNextTryError(RequestsError):
    """The caller's deadline expires before the next attempt is permitted.

    Raised by the retry engine instead of sleeping when it already knows that
    the next attempt could not start in time.
    """


class DeadlineExceededError(RequestsError, TimeoutError):
    """The caller's deadline passed before an attempt could start."""


class BodyNotReplayableError(RequestsError):
    """The request body cannot be obtained again for another attempt.

    Only requests whose body is fully buffered can be replayed. A streaming
    body is consumed by the first send, so the retry engine refuses it
    instead of retrying with an empty body.
    """


class ParseError(RequestsError):
    """The response body could not be parsed.

    Attributes:
        message: Human-readable error description.
        cause: The underlying parser exception.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize the parse error with details.

        Args:
            message: Human-readable error description.
            cause: The underlying parser exception.
        """
        super().__init__(message)
        self.cause = cause


class UnexpectedEOFError(RequestsError):
    """The response stream ended before Content-Length bytes were read."""
