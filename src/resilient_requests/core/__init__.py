"""Core retry logic for resilient_requests.

This package contains the retry engine and its collaborators:
- Retryer: executor decorator running the retry state machine
- Policies: backoff, shared backoff (Retry-After) and retry decisions
- SharedDeadline: throttle deadline shared by concurrent calls
- Deadlines: caller deadlines visible to the engine
"""

from resilient_requests.core.deadline import current_deadline, deadline_scope
from resilient_requests.core.policies import (
    Backoff,
    BackoffFunc,
    ExponentialBackoff,
    RetryPolicy,
    default_retry_policy,
    default_shared_backoff,
    exponential_backoff,
    parse_retry_after,
)
from resilient_requests.core.retryer import Retryer
from resilient_requests.core.throttle import SharedDeadline

__all__ = [
    "Backoff",
    "BackoffFunc",
    "ExponentialBackoff",
    "RetryPolicy",
    "Retryer",
    "SharedDeadline",
    "current_deadline",
    "deadline_scope",
    "default_retry_policy",
    "default_shared_backoff",
    "exponential_backoff",
    "parse_retry_after",
]
