"""
Pytest configuration and shared fixtures for resilient_requests tests.
"""

from collections.abc import Callable
from typing import Any

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse as FastAPIJSONResponse
from fastapi.responses import Response

from resilient_requests.config import RequestsConfig
from resilient_requests.observability.instrumentation import CallbackRequestLogger


class ScriptedExecutor:
    """Executor replaying a script of outcomes, one per attempt.

    Each outcome is a status code (a fresh empty response is built), an
    exception instance (raised), or a callable taking the request and
    returning a response. The last outcome repeats once the script runs out.
    """

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def execute(self, request: httpx.Request) -> httpx.Response:
        outcome = self.outcomes[min(len(self.requests), len(self.outcomes) - 1)]
        self.requests.append(request)
        self.bodies.append(request.content)
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(request)
        return httpx.Response(outcome, request=request)


class RecordingLogger(CallbackRequestLogger):
    """RequestLogger keeping every event in memory."""

    def __init__(self) -> None:
        self.entries: list[tuple[int, BaseException | None, str]] = []
        super().__init__(lambda *entry: self.entries.append(entry))

    def messages(self) -> list[str]:
        return [message for _, _, message in self.entries]


@pytest.fixture
def scripted() -> Callable[..., ScriptedExecutor]:
    """Factory of scripted executors."""
    return ScriptedExecutor


@pytest.fixture
def recorder() -> RecordingLogger:
    """Provide a logger that records request lifecycle events."""
    return RecordingLogger()


@pytest.fixture
def fast_config() -> RequestsConfig:
    """Config with a tiny backoff so retry tests run quickly."""
    return RequestsConfig(backoff_base_seconds=0.001)


def create_echo_app() -> FastAPI:
    """Create a FastAPI app that reflects what it receives."""
    app = FastAPI()

    @app.api_route("/echo", methods=["GET", "POST", "PUT", "PATCH"])
    async def echo(request: Request) -> Response:
        body = await request.body()
        media_type = request.headers.get("content-type", "application/octet-stream")
        return Response(content=body, media_type=media_type)

    @app.get("/inspect")
    async def inspect_request(request: Request) -> FastAPIJSONResponse:
        return FastAPIJSONResponse(
            {
                "method": request.method,
                "path": request.url.path,
                "headers": dict(request.headers),
                "query": dict(request.query_params),
            }
        )

    @app.get("/status/{code}")
    async def status(code: int) -> Response:
        return Response(content=b"status body", status_code=code)

    @app.get("/truncated")
    async def truncated() -> Response:
        return Response(content=b"", headers={"content-length": "1"})

    return app


@pytest.fixture
def echo_app() -> FastAPI:
    """Provide a fresh echo application."""
    return create_echo_app()


@pytest.fixture
def asgi_client_factory() -> Callable[[FastAPI], httpx.AsyncClient]:
    """Build httpx clients that talk to an ASGI app in-process."""

    def factory(app: FastAPI) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver",
        )

    return factory
