"""Utility modules for resilient_requests."""

from .headers import mask, set_header, substitute_secrets
from .locks import ReadWriteLock
from .wire import MASKED_DUMP_EXTENSION, dump_request, join_url, validate_method

__all__ = [
    "set_header",
    "mask",
    "substitute_secrets",
    "ReadWriteLock",
    "MASKED_DUMP_EXTENSION",
    "dump_request",
    "join_url",
    "validate_method",
]
