"""Prometheus metrics for resilient_requests.

This module provides Prometheus metrics to monitor the retry engine.
Metrics include:

- Attempt counters by outcome (response, error)
- Retry counters by reason (status, error)
- Shared throttle deadline advances
- Logical call duration histogram

Examples:
    Recording an attempt::

        from resilient_requests.observability.metrics import record_attempt

        record_attempt(outcome="response")

    Recording a retry::

        from resilient_requests.observability.metrics import record_retry

        record_retry(reason="503")
"""

from prometheus_client import Counter, Histogram

# Attempt counter
# Labels: outcome (response, error)
attempts_total = Counter(
    "resilient_requests_attempts_total",
    "Total number of attempts sent to the wrapped executor",
    ["outcome"],
)

# Retry counter
# Labels: reason (HTTP status code, or the exception class name)
retries_total = Counter(
    "resilient_requests_retries_total",
    "Total number of attempts that were retried",
    ["reason"],
)

throttle_advances_total = Counter(
    "resilient_requests_throttle_advances_total",
    "Total number of times a response moved the shared throttle deadline later",
)

# Duration of a logical call including every retry and wait (seconds)
call_duration_seconds = Histogram(
    "resilient_requests_call_duration_seconds",
    "Duration of a logical call through the retry engine in seconds",
    ["result"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60],
)


def record_attempt(outcome: str) -> None:
    """Record an attempt.

    Args:
        outcome: "response" when the executor returned, "error" when it raised

    Examples:
        >>> record_attempt("response")
    """
    attempts_total.labels(outcome=outcome).inc()


def record_retry(reason: str) -> None:
    """Record a retried attempt.

    Args:
        reason: HTTP status code or exception class name

    Examples:
        >>> record_retry("429")
        >>> record_retry("ConnectError")
    """
    retries_total.labels(reason=reason).inc()


def record_throttle_advance() -> None:
    """Record that the shared throttle deadline moved later."""
    throttle_advances_total.inc()


def record_call_duration(duration_seconds: float, result: str) -> None:
    """Record the duration of a logical call.

    Args:
        duration_seconds: Elapsed time including retries
        result: "success" or "error"

    Examples:
        >>> record_call_duration(0.42, "success")
    """
    call_duration_seconds.labels(result=result).observe(duration_seconds)
