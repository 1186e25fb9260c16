"""
Pytest configuration and shared fixtures for idempotency_key tests.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from idempotency_key.messages import Request, Response
from idempotency_key.storage.memory import MemoryStore


class FakeClock:
    """Controllable clock for expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def sample_idempotency_key() -> str:
    """Provide a sample idempotency key for tests."""
    return "test-key-12345"


@pytest.fixture
def sample_request_body() -> bytes:
    """Provide a sample request body for tests."""
    return b'{"amount": 100, "currency": "USD"}'


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryStore:
    """Fresh MemoryStore driven by the fake clock."""
    return MemoryStore(expires_in=3600, clock=clock)


@pytest.fixture
def make_request(sample_idempotency_key: str, sample_request_body: bytes) -> Callable[..., Request]:
    """Factory for eligible POST requests; override any field by keyword."""

    def _make(
        method: str = "POST",
        path: str = "/api/payments",
        query_string: str = "",
        idempotency_key: str | None = sample_idempotency_key,
        authorization: str | None = "Bearer token123",
        body: object = sample_request_body,
    ) -> Request:
        headers = {"Content-Type": "application/json"}
        if idempotency_key is not None:
            headers["Idempotency-Key"] = idempotency_key
        if authorization is not None:
            headers["Authorization"] = authorization
        return Request(
            method=method,
            path=path,
            query_string=query_string,
            headers=headers,
            body=body,  # type: ignore[arg-type]
        )

    return _make


class CountingHandler:
    """Async handler recording how many times it ran."""

    def __init__(self, status: int = 201, body: bytes = b'{"id": "pay_1"}', delay: float = 0) -> None:
        self.status = status
        self.body = body
        self.delay = delay
        self.calls = 0

    async def __call__(self, request: Request) -> Response:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return Response(
            status=self.status,
            headers={"Content-Type": "application/json"},
            body=self.body,
        )


@pytest.fixture
def handler() -> CountingHandler:
    return CountingHandler()


@pytest.fixture
def handler_factory() -> type[CountingHandler]:
    """Build handlers with a custom status, body or delay."""
    return CountingHandler
