"""End-to-end scenario tests for resilient_requests.

Each scenario drives the request builder, the executors and the retry
engine against an in-process FastAPI application served through
httpx.ASGITransport.
"""
