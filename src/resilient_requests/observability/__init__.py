"""Observability utilities for resilient_requests.

This package provides monitoring and debugging capabilities:
- Request lifecycle loggers (one id per logical call)
- Structured logging with contextual information
- Prometheus metrics for attempts, retries and throttling

These tools help operators understand retry behaviour in production
and troubleshoot rate limiting.
"""

from resilient_requests.observability.instrumentation import (
    CallbackRequestLogger,
    CountingStream,
    RequestLogger,
    StructlogRequestLogger,
    callback_logger,
    watch_close,
)
from resilient_requests.observability.logging import configure_logging, get_logger
from resilient_requests.observability.metrics import (
    record_attempt,
    record_call_duration,
    record_retry,
    record_throttle_advance,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "RequestLogger",
    "StructlogRequestLogger",
    "CallbackRequestLogger",
    "callback_logger",
    "CountingStream",
    "watch_close",
    "record_attempt",
    "record_retry",
    "record_throttle_advance",
    "record_call_duration",
]
