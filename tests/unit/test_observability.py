"""Unit tests for logging configuration and Prometheus metrics."""

import io
from typing import Any

import httpx
import pytest
import structlog
from prometheus_client import REGISTRY

from resilient_requests.config import RequestsConfig
from resilient_requests.core.retryer import Retryer
from resilient_requests.observability.logging import configure_from, configure_logging, get_logger
from resilient_requests.observability.metrics import record_retry


def sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.fixture
def reset_structlog() -> Any:
    yield
    structlog.reset_defaults()


class TestLogging:
    """Tests for structlog configuration."""

    def test_json_output(self, reset_structlog: Any, capsys: Any) -> None:
        configure_logging(level="INFO", json_output=True)

        get_logger("test").info("request.done", request_id=1)

        out = capsys.readouterr().out
        assert '"event": "request.done"' in out
        assert '"request_id": 1' in out

    def test_custom_stream(self, reset_structlog: Any) -> None:
        stream = io.StringIO()
        configure_logging(level="DEBUG", json_output=True, stream=stream)

        get_logger("test").debug("request.close", request_id=2, detail="close 7")

        assert '"detail": "close 7"' in stream.getvalue()

    def test_level_filters_events(self, reset_structlog: Any, capsys: Any) -> None:
        configure_from(RequestsConfig(log_level="WARNING", json_logs=True))

        logger = get_logger("test")
        logger.info("request.start")
        logger.warning("request.done")

        out = capsys.readouterr().out
        assert "request.start" not in out
        assert "request.done" in out


class TestMetrics:
    """Tests for Prometheus counters."""

    def test_record_retry(self) -> None:
        before = sample("resilient_requests_retries_total", reason="599")

        record_retry("599")

        assert sample("resilient_requests_retries_total", reason="599") == before + 1

    @pytest.mark.asyncio
    async def test_retryer_records_attempts(self, scripted: Any, fast_config: RequestsConfig) -> None:
        responses_before = sample("resilient_requests_attempts_total", outcome="response")
        throttles_before = sample("resilient_requests_throttle_advances_total")
        calls_before = sample("resilient_requests_call_duration_seconds_count", result="success")

        def limited(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"Retry-After": "0"}, request=request)

        retryer = Retryer(scripted(limited, 500, 200), config=fast_config)
        await retryer.execute(httpx.Request("GET", "https://example.com"))

        assert sample("resilient_requests_attempts_total", outcome="response") == responses_before + 3
        assert sample("resilient_requests_throttle_advances_total") == throttles_before
        assert (
            sample("resilient_requests_call_duration_seconds_count", result="success")
            == calls_before + 1
        )
