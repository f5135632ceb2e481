"""Demo FastAPI application exercising resilient_requests.

The app simulates an unreliable upstream: one endpoint fails a few times
before it answers, another rate limits its callers with Retry-After.

Run the client walkthrough in-process (no network needed):
    python demo_app.py
Or serve the app and point your own client at it:
    python demo_app.py serve
"""

import asyncio
import sys
from datetime import UTC, datetime
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Header, Response
from pydantic import BaseModel

from resilient_requests import (
    HttpxExecutor,
    Ref,
    RequestsConfig,
    Retryer,
    StatusCheckingExecutor,
    StatusError,
    new_get,
    new_post,
)
from resilient_requests.observability.logging import configure_from

# Create FastAPI app
app = FastAPI(
    title="Unreliable Upstream Demo",
    description="Demo API that fails and throttles on purpose",
    version="0.1.0",
)

counters = {"flaky": 0, "limited": 0}


class OrderRequest(BaseModel):
    product_id: str
    quantity: int


class OrderResponse(BaseModel):
    order_id: str
    product_id: str
    quantity: int
    attempt: int
    created_at: str


@app.get("/")
async def root():
    """Root endpoint - returns API info."""
    return {
        "name": "Unreliable Upstream Demo",
        "version": "0.1.0",
        "endpoints": {
            "POST /api/orders": "Fails with 503 twice, then creates the order",
            "GET /api/quota": "Answers 429 with Retry-After: 1 on every other call",
            "GET /api/whoami": "Echoes the Authorization and X-Token headers",
        },
    }


@app.post("/api/orders", response_model=OrderResponse)
async def create_order(order: OrderRequest):
    """Create an order after two simulated outages."""
    counters["flaky"] += 1
    if counters["flaky"] % 3 != 0:
        return Response(content=b"upstream unavailable", status_code=503)

    return OrderResponse(
        order_id=f"ord_{counters['flaky']}",
        product_id=order.product_id,
        quantity=order.quantity,
        attempt=counters["flaky"],
        created_at=datetime.now(UTC).isoformat(),
    )


@app.get("/api/quota")
async def quota():
    """Alternate between a rate limit and a success."""
    counters["limited"] += 1
    if counters["limited"] % 2 == 1:
        return Response(status_code=429, headers={"Retry-After": "1"})
    return {"remaining": 10 - counters["limited"]}


@app.get("/api/whoami")
async def whoami(
    authorization: Optional[str] = Header(None),
    x_token: Optional[str] = Header(None),
):
    """Echo the credentials the client sent."""
    return {"authorization": authorization, "token": x_token}


async def walkthrough() -> None:
    """Drive the demo endpoints through a retrying executor."""
    config = RequestsConfig(log_level="INFO", json_logs=False)
    configure_from(config)

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://demo",
    ) as client:
        executor = StatusCheckingExecutor(Retryer(HttpxExecutor(client), config=config))
        base = new_get("http://demo").use_executor(executor).timeout(10)

        order = await (
            base.clone()
            .method("POST")
            .path("/api/orders")
            .json_body({"product_id": "widget", "quantity": 2})
            .send_json()
        )
        print("order:", order.body().value)

        results = await asyncio.gather(*(base.clone().path("/api/quota").send_json() for _ in range(3)))
        print("quota:", [result.get_int("remaining") for result in results])

        token = Ref("first-token")
        whoami = base.clone().path("/api/whoami").basic_auth("demo", "s3cret").header("X-Token", token)
        token.set("rotated-token")
        print("masked request:")
        print(whoami.dump())
        print("whoami:", (await whoami.send_json()).body().value)

        try:
            await new_post("http://demo/api/missing").use_executor(executor).send_json()
        except StatusError as e:
            print("missing:", e.message)


if __name__ == "__main__":
    if sys.argv[1:] == ["serve"]:
        print("=" * 60)
        print("Unreliable Upstream Demo Server")
        print("=" * 60)
        print("\nStarting server at http://localhost:8000")
        print("\nPress Ctrl+C to stop")
        print("=" * 60)
        uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
    else:
        asyncio.run(walkthrough())
