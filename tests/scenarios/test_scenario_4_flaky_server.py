"""Scenario 4: Flaky Server

This module tests the full executor stack against a server that fails
before it succeeds:
- Server errors are retried until the server recovers
- The request body is sent unchanged on every attempt
- Client errors are not retried
- A request timeout stops the retry loop
- Every call is logged from start to done under one id
"""

from typing import Any

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import Response

from resilient_requests import (
    DeadlineBeforeNextTryError,
    HttpxExecutor,
    RequestsConfig,
    Retryer,
    StatusCheckingExecutor,
    StatusError,
    new_post,
)


def create_flaky_app(bodies: list[bytes], failures: int, status: int = 500) -> FastAPI:
    """Create an app failing ``failures`` times with ``status`` before echoing."""
    app = FastAPI()

    @app.post("/flaky")
    async def flaky(request: Request) -> Response:
        bodies.append(await request.body())
        if len(bodies) <= failures:
            return Response(content=b"try again later", status_code=status)
        return Response(content=bodies[-1], media_type="application/json")

    return app


@pytest.mark.asyncio
async def test_recovers_after_server_errors(
    asgi_client_factory: Any, recorder: Any, fast_config: RequestsConfig
) -> None:
    """Test that a call succeeds once the server recovers."""
    bodies: list[bytes] = []
    app = create_flaky_app(bodies, failures=4)

    async with asgi_client_factory(app) as client:
        executor = StatusCheckingExecutor(Retryer(HttpxExecutor(client), recorder, config=fast_config))

        result = await new_post("http://testserver/flaky").use_executor(executor).json_body("hello").send_json()

    assert result.get_string() == "hello"
    assert bodies == [b'"hello"'] * 5

    messages = recorder.messages()
    assert messages[0].startswith("POST /flaky HTTP/1.1\r\n")
    assert messages.count("retry: 500 Internal Server Error") == 4
    assert messages.index("done") < messages.index("close 7")
    assert {request_id for request_id, _, _ in recorder.entries} == {1}


@pytest.mark.asyncio
async def test_client_error_is_not_retried(
    asgi_client_factory: Any, fast_config: RequestsConfig
) -> None:
    """Test that a 4xx ends the call after one attempt."""
    bodies: list[bytes] = []
    app = create_flaky_app(bodies, failures=1, status=400)

    async with asgi_client_factory(app) as client:
        executor = StatusCheckingExecutor(Retryer(HttpxExecutor(client), config=fast_config))

        with pytest.raises(StatusError) as exc_info:
            await new_post("http://testserver/flaky").use_executor(executor).json_body({}).send_json()

    assert str(exc_info.value) == "invalid status 400 Bad Request"
    assert len(bodies) == 1


@pytest.mark.asyncio
async def test_timeout_stops_retries(asgi_client_factory: Any) -> None:
    """Test that the request timeout ends a call against a failing server."""
    bodies: list[bytes] = []
    app = create_flaky_app(bodies, failures=1000)

    async with asgi_client_factory(app) as client:
        executor = StatusCheckingExecutor(Retryer(HttpxExecutor(client)))
        builder = new_post("http://testserver/flaky").use_executor(executor).json_body([]).timeout(0.5)

        with pytest.raises(DeadlineBeforeNextTryError):
            await builder.send_json()

    assert 1 <= len(bodies) <= 3
