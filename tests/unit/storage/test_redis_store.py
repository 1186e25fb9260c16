"""Unit tests for RedisStore.

This test suite covers:
    - The Store contract against an in-process fake Redis server
    - Key namespacing and JSON encoding on the wire
    - TTLs passed to ``SET NX EX``
    - Client, pool and connection-provider handles
    - Translation of Redis errors to StorageError
"""

import asyncio
import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import fakeredis
import pytest
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from idempotency_key.exceptions import ConflictError, StorageError
from idempotency_key.storage.redis_store import (
    DEFAULT_EXPIRATION,
    KEY_NAMESPACE,
    ConnectionProvider,
    RedisStore,
)


@pytest.fixture
def redis_client():
    """Fake Redis client with its own isolated server."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())


@pytest.fixture
def store(redis_client):
    return RedisStore(redis_client, expires_in=3600)


class CountingProvider:
    """Connection provider lending out one client per operation."""

    def __init__(self, client) -> None:
        self.client = client
        self.borrowed = 0
        self.returned = 0

    @asynccontextmanager
    async def connection(self):
        self.borrowed += 1
        try:
            yield self.client
        finally:
            self.returned += 1


def failing_client(error: Exception) -> AsyncMock:
    """A Redis client whose every command raises ``error``."""
    client = AsyncMock(spec=Redis)
    client.get = AsyncMock(side_effect=error)
    client.set = AsyncMock(side_effect=error)
    client.delete = AsyncMock(side_effect=error)
    return client


# ============================================================================
# Store contract
# ============================================================================


def test_defaults(redis_client):
    store = RedisStore(redis_client)
    assert store.expires_in == DEFAULT_EXPIRATION == 86400
    assert store.namespace == KEY_NAMESPACE == "idempotency_key"


def test_non_positive_expiration_rejected(redis_client):
    with pytest.raises(ValueError):
        RedisStore(redis_client, expires_in=0)


@pytest.mark.asyncio
async def test_get_missing_key(store):
    assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_set_and_get_round_trip(store):
    value = {"status": 201, "headers": {"Content-Type": "application/json"}, "body_b64": ""}

    assert await store.set("fp:response", value) == value
    assert await store.get("fp:response") == value


@pytest.mark.asyncio
async def test_set_conflict_keeps_existing(store):
    await store.set("fp:lock", "locked")

    with pytest.raises(ConflictError) as exc_info:
        await store.set("fp:lock", "other")

    assert exc_info.value.key == "fp:lock"
    assert await store.get("fp:lock") == "locked"


@pytest.mark.asyncio
async def test_unset_removes_and_is_idempotent(store):
    await store.set("fp:lock", "locked")

    await store.unset("fp:lock")
    await store.unset("fp:lock")

    assert await store.get("fp:lock") is None
    assert await store.set("fp:lock", "locked") == "locked"


@pytest.mark.asyncio
async def test_concurrent_set_exactly_one_wins(store):
    results = await asyncio.gather(
        *(store.set("fp:lock", i) for i in range(20)),
        return_exceptions=True,
    )

    assert sum(1 for r in results if not isinstance(r, BaseException)) == 1
    assert sum(1 for r in results if isinstance(r, ConflictError)) == 19


# ============================================================================
# Wire format
# ============================================================================


@pytest.mark.asyncio
async def test_keys_are_namespaced(store, redis_client):
    await store.set("fp:lock", "locked")

    assert await redis_client.exists("idempotency_key:fp:lock") == 1
    assert await redis_client.exists("fp:lock") == 0


@pytest.mark.asyncio
async def test_custom_namespace(redis_client):
    store = RedisStore(redis_client, namespace="payments")
    await store.set("k", 1)

    assert await redis_client.exists("payments:k") == 1


def test_namespaced_key_strips_whitespace(store):
    assert store.namespaced_key("a b\tc\n") == "idempotency_key:abc"


@pytest.mark.asyncio
async def test_values_are_json_encoded(store, redis_client):
    await store.set("fp:response", {"status": 200, "body_b64": "b2s="})

    raw = await redis_client.get("idempotency_key:fp:response")
    assert json.loads(raw) == {"status": 200, "body_b64": "b2s="}


@pytest.mark.asyncio
async def test_corrupted_payload_raises_storage_error(store, redis_client):
    await redis_client.set("idempotency_key:fp:response", b"not json")

    with pytest.raises(StorageError) as exc_info:
        await store.get("fp:response")

    assert "Corrupted payload" in exc_info.value.message


# ============================================================================
# TTL
# ============================================================================


@pytest.mark.asyncio
async def test_explicit_ttl_is_sent(store, redis_client):
    await store.set("fp:lock", "locked", ttl_seconds=60)

    assert 0 < await redis_client.ttl("idempotency_key:fp:lock") <= 60


@pytest.mark.asyncio
async def test_default_ttl_is_expires_in(store, redis_client):
    await store.set("fp:response", {"status": 200})

    ttl = await redis_client.ttl("idempotency_key:fp:response")
    assert 60 < ttl <= 3600


@pytest.mark.asyncio
async def test_set_uses_nx_and_ex():
    client = AsyncMock(spec=Redis)
    client.set = AsyncMock(return_value=True)
    store = RedisStore(client, expires_in=100)

    await store.set("k", "locked", ttl_seconds=7)

    client.set.assert_awaited_once_with("idempotency_key:k", '"locked"', nx=True, ex=7)


# ============================================================================
# Handles
# ============================================================================


def test_connection_pool_is_wrapped_in_client():
    pool = ConnectionPool.from_url("redis://localhost:6379/0")
    store = RedisStore(pool)

    assert isinstance(store._client, Redis)
    assert store._client.connection_pool is pool


def test_redis_client_is_not_treated_as_provider(redis_client):
    assert isinstance(redis_client, Redis)
    assert isinstance(CountingProvider(redis_client), ConnectionProvider)


@pytest.mark.asyncio
async def test_connection_provider_is_borrowed_per_operation(redis_client):
    provider = CountingProvider(redis_client)
    store = RedisStore(provider)

    await store.set("k", "v")
    assert await store.get("k") == "v"
    await store.unset("k")

    assert provider.borrowed == 3
    assert provider.returned == 3


@pytest.mark.asyncio
async def test_connection_returned_after_conflict(redis_client):
    provider = CountingProvider(redis_client)
    store = RedisStore(provider)
    await store.set("k", "v")

    with pytest.raises(ConflictError):
        await store.set("k", "v")

    assert provider.borrowed == provider.returned == 2


@pytest.mark.asyncio
async def test_provider_checkout_failure_raises_storage_error():
    class BrokenProvider:
        @asynccontextmanager
        async def connection(self):
            raise RedisConnectionError("pool exhausted")
            yield  # pragma: no cover

    store = RedisStore(BrokenProvider())

    with pytest.raises(StorageError) as exc_info:
        await store.get("k")

    assert exc_info.value.message == "pool exhausted"


# ============================================================================
# Error translation
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["get", "set", "unset"])
async def test_redis_errors_become_storage_errors(operation):
    error = RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
    store = RedisStore(failing_client(error))

    with pytest.raises(StorageError) as exc_info:
        if operation == "set":
            await store.set("k", "v")
        else:
            await getattr(store, operation)("k")

    assert exc_info.value.message == str(error)
    assert exc_info.value.cause is error


@pytest.mark.asyncio
async def test_error_without_text_uses_type_name():
    store = RedisStore(failing_client(RedisTimeoutError()))

    with pytest.raises(StorageError) as exc_info:
        await store.get("k")

    assert exc_info.value.message == "TimeoutError"
