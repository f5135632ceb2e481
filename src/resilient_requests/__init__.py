"""
Resilient HTTP request execution for asyncio applications.

This package builds outbound HTTP requests from lazily rendered,
redaction-aware values and executes them through a retrying executor that
shares rate-limit state between concurrent calls.
"""

from resilient_requests.config import RequestsConfig
from resilient_requests.core import (
    BackoffFunc,
    Retryer,
    deadline_scope,
    default_retry_policy,
    default_shared_backoff,
    exponential_backoff,
)
from resilient_requests.exceptions import (
    BodyNotReplayableError,
    ConfigurationError,
    DeadlineBeforeNextTryError,
    DeadlineExceededError,
    ParseError,
    RequestBuildError,
    RequestsError,
    StatusError,
    UnexpectedEOFError,
)
from resilient_requests.executors import (
    Executor,
    HttpxExecutor,
    StatusCheckingExecutor,
    executor_func,
)
from resilient_requests.lazy import Computed, Constant, LazyValue, Ref
from resilient_requests.observability.instrumentation import (
    RequestLogger,
    StructlogRequestLogger,
    callback_logger,
)
from resilient_requests.request import RequestBuilder, new_get, new_post
from resilient_requests.response import JSONParser, JSONResponse, JSONValue

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "RequestsConfig",
    "RequestBuilder",
    "new_get",
    "new_post",
    "LazyValue",
    "Constant",
    "Ref",
    "Computed",
    "Executor",
    "HttpxExecutor",
    "StatusCheckingExecutor",
    "executor_func",
    "Retryer",
    "BackoffFunc",
    "exponential_backoff",
    "default_retry_policy",
    "default_shared_backoff",
    "deadline_scope",
    "RequestLogger",
    "StructlogRequestLogger",
    "callback_logger",
    "JSONResponse",
    "JSONValue",
    "JSONParser",
    "RequestsError",
    "ConfigurationError",
    "RequestBuildError",
    "StatusError",
    "DeadlineBeforeNextTryError",
    "DeadlineExceededError",
    "BodyNotReplayableError",
    "ParseError",
    "UnexpectedEOFError",
]
