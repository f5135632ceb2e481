"""structlog setup for request lifecycle events.

Every call through a Retryer logs one ``request.start`` event with the
masked request dump, a ``request.retry`` event per retried attempt, a
``request.close`` event with the bytes read from each response and a final
``request.done``. All of them carry the call's ``request_id``, so a single
call can be followed across attempts::

    from resilient_requests.observability.logging import configure_logging

    configure_logging(level="INFO", json_output=True)

    {"request_id": 3, "detail": "retry: 503 Service Unavailable",
     "error_type": "StatusError", "event": "request.retry", "level": "info",
     "timestamp": "2024-01-01T00:00:00.000000Z"}

The library never configures logging on import; applications call
configure_logging or configure_from once at startup.
"""

import logging
from typing import IO, Any

import structlog

from resilient_requests.config import RequestsConfig


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    stream: IO[str] | None = None,
) -> None:
    """Route structlog events to ``stream`` at ``level`` and above.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render one JSON object per event instead of the
            colored console format
        stream: Output stream. None writes to sys.stdout as it is when a
            logger is first used.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        processors.extend([structlog.processors.format_exc_info, structlog.processors.JSONRenderer()])
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def configure_from(config: RequestsConfig) -> None:
    """Apply the log_level and json_logs settings of ``config``."""
    configure_logging(level=config.log_level, json_output=config.json_logs)


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
