"""Pluggable policies of the retry engine.

Three policies drive a Retryer:

- Backoff: how long a call waits before its next attempt. A fresh backoff is
  created for every logical call, so unrelated calls on the same Retryer have
  independent sequences.
- Shared backoff: how far a delivered response pushes the shared throttle
  deadline. The default honours Retry-After on 429 responses.
- Retry policy: whether an outcome is retried and which error describes it.

Design:
- **Exponential backoff**: the n-th retry waits ``2**n * base`` seconds
- **Retry-After support**: integer seconds or an HTTP-date
- **Terminal transport errors**: redirect loops, unsupported schemes,
  malformed URLs and certificate verification failures never succeed on retry

Examples:
    Custom retry policy::

        def retry_on_500(response, error):
            if response is not None and response.status_code == 500:
                return True, StatusError("server error", 500, response)
            return False, error

        retryer = Retryer(executor, retry_policy=retry_on_500)

    Constant backoff::

        retryer = Retryer(executor, backoff=lambda: BackoffFunc(lambda response: 1.0))
"""

import email.utils
import ssl
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

import httpx

from resilient_requests.exceptions import RequestsError, StatusError

DEFAULT_BACKOFF_BASE_SECONDS = 0.1

RetryPolicy = Callable[
    [httpx.Response | None, Exception | None],
    tuple[bool, Exception | None],
]


@runtime_checkable
class Backoff(Protocol):
    """Source of wait durations."""

    def next(self, response: httpx.Response | None) -> float:
        """Return the number of seconds to wait after ``response``.

        Args:
            response: The response of the attempt, or None if it raised.
        """
        ...


class BackoffFunc:
    """Backoff adapter for a plain function."""

    def __init__(self, fn: Callable[[httpx.Response | None], float]) -> None:
        self.fn = fn

    def next(self, response: httpx.Response | None) -> float:
        return self.fn(response)


class ExponentialBackoff:
    """Backoff doubling on every call, starting at twice the base.

    Attributes:
        base: Base unit in seconds.
        attempts: Number of durations handed out so far.
    """

    def __init__(self, base: float = DEFAULT_BACKOFF_BASE_SECONDS) -> None:
        self.base = base
        self.attempts = 0

    def next(self, response: httpx.Response | None) -> float:
        self.attempts += 1
        return (2**self.attempts) * self.base


def exponential_backoff(
    base: float = DEFAULT_BACKOFF_BASE_SECONDS,
) -> Callable[[], ExponentialBackoff]:
    """Return a factory of fresh ExponentialBackoff instances.

    Example:
        >>> backoff = exponential_backoff(0.1)()
        >>> [backoff.next(None) for _ in range(3)]
        [0.2, 0.4, 0.8]
    """
    return lambda: ExponentialBackoff(base)


def parse_retry_after(value: str | None) -> float | None:
    """Convert a Retry-After header value into a delay in seconds.

    Args:
        value: Header value: integer seconds or an HTTP-date.

    Returns:
        Delay in seconds (negative for a date in the past), or None if the
        value is missing or malformed.

    Example:
        >>> parse_retry_after("2")
        2.0
        >>> parse_retry_after("soon") is None
        True
    """
    if not value:
        return None

    value = value.strip()
    try:
        return float(int(value))
    except ValueError:
        pass

    try:
        when = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return (when - datetime.now(timezone.utc)).total_seconds()


def _shared_backoff(response: httpx.Response | None) -> float:
    if response is None or response.status_code != 429:
        return 0.0
    delay = parse_retry_after(response.headers.get("Retry-After"))
    return delay if delay is not None else 0.0


default_shared_backoff = BackoffFunc(_shared_backoff)
"""Shared backoff honouring Retry-After on 429 responses."""


def _caused_by_certificate_failure(error: BaseException) -> bool:
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLCertVerificationError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return "CERTIFICATE_VERIFY_FAILED" in str(error)


def _missing_host(error: httpx.RequestError) -> bool:
    try:
        request = error.request
    except RuntimeError:
        return False
    return not request.url.host


def is_terminal_error(error: Exception) -> bool:
    """Return True for errors that no retry can fix.

    So is a transport error for a URL without a host.

    Args:
        error: Exception raised by an executor.
    """
    if isinstance(error, StatusError):
        return False
    if isinstance(error, RequestsError):
        return True
    if isinstance(error, (httpx.TooManyRedirects, httpx.UnsupportedProtocol, httpx.InvalidURL)):
        return True
    if isinstance(error, httpx.RequestError) and _missing_host(error):
        return True
    return _caused_by_certificate_failure(error)


def retry_status(status_code: int, reason: str) -> tuple[bool, Exception | None]:
    """Decide on an HTTP status.

    429 and 5xx other than 501 are retried, everything else is final.

    Args:
        status_code: HTTP status code.
        reason: Reason phrase, used in the error message.

    Returns:
        Tuple (retry, error).
    """
    if status_code == 429:
        return True, StatusError("too many requests", status_code=status_code)
    if status_code == 0 or (status_code >= 500 and status_code != 501):
        return True, StatusError(
            f"unexpected HTTP status {status_code} {reason}".rstrip(),
            status_code=status_code,
        )
    return False, None


def default_retry_policy(
    response: httpx.Response | None,
    error: Exception | None,
) -> tuple[bool, Exception | None]:
    """Default decision of the retry engine.

    Args:
        response: Response of the attempt, or None if the executor raised.
        error: Exception raised by the executor, or None.

    Returns:
        Tuple (retry, error). The error is reported to the caller when the
        attempt is not retried.
    """
    if error is not None:
        if isinstance(error, StatusError) and error.status_code is not None:
            retry, _ = retry_status(error.status_code, "")
            return retry, error
        if is_terminal_error(error):
            return False, error
        return True, error

    if response is None:
        return False, None

    retry, reported = retry_status(response.status_code, response.reason_phrase)
    if isinstance(reported, StatusError):
        reported.response = response
    return retry, reported
