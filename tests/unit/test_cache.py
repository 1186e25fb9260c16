"""Unit tests for the response cache."""

from unittest.mock import AsyncMock

import pytest

from idempotency_key.core.cache import DEFAULT_UNCACHED_STATUSES, ResponseCache, cache_key
from idempotency_key.core.lock import lock_key
from idempotency_key.exceptions import ConflictError, StorageError
from idempotency_key.messages import Response
from idempotency_key.models import StoredResponse

FINGERPRINT = "b" * 64


def created_response() -> Response:
    return Response(status=201, headers={"Content-Type": "application/json"}, body=b'{"id": 1}')


def test_cache_key_differs_from_lock_key():
    assert cache_key(FINGERPRINT) == f"{FINGERPRINT}:response"
    assert cache_key(FINGERPRINT) != lock_key(FINGERPRINT)


def test_default_uncached_statuses():
    assert DEFAULT_UNCACHED_STATUSES == (400,)


@pytest.mark.asyncio
async def test_lookup_miss(memory_store):
    assert await ResponseCache(memory_store).lookup(FINGERPRINT) is None


@pytest.mark.asyncio
async def test_store_then_lookup_replays(memory_store):
    cache = ResponseCache(memory_store)

    assert await cache.store(FINGERPRINT, created_response()) is True
    replayed = await cache.lookup(FINGERPRINT)

    assert replayed is not None
    assert replayed.status == 201
    assert replayed.body == b'{"id": 1}'
    assert replayed.headers["Content-Type"] == "application/json"
    assert replayed.headers["Idempotent-Replayed"] == "true"


@pytest.mark.asyncio
async def test_store_writes_json_safe_payload(memory_store):
    await ResponseCache(memory_store).store(FINGERPRINT, created_response())

    payload = await memory_store.get(cache_key(FINGERPRINT))
    assert StoredResponse.from_payload(payload).get_body_bytes() == b'{"id": 1}'


@pytest.mark.asyncio
async def test_fresh_response_is_not_marked(memory_store):
    response = created_response()
    await ResponseCache(memory_store).store(FINGERPRINT, response)

    assert "Idempotent-Replayed" not in response.headers


@pytest.mark.asyncio
async def test_bad_request_is_not_cached(memory_store):
    cache = ResponseCache(memory_store)

    assert await cache.store(FINGERPRINT, Response(status=400, body=b"bad")) is False
    assert await memory_store.get(cache_key(FINGERPRINT)) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [200, 201, 204, 404, 409, 422, 500])
async def test_other_statuses_are_cached(memory_store, status):
    cache = ResponseCache(memory_store)

    assert await cache.store(FINGERPRINT, Response(status=status)) is True
    assert (await cache.lookup(FINGERPRINT)).status == status


@pytest.mark.asyncio
async def test_custom_uncached_statuses(memory_store):
    cache = ResponseCache(memory_store, uncached_statuses=[400, 422])

    assert await cache.store(FINGERPRINT, Response(status=422)) is False
    assert await cache.store(FINGERPRINT, Response(status=400)) is False
    assert await cache.store(FINGERPRINT, Response(status=201)) is True


@pytest.mark.asyncio
async def test_first_write_wins(memory_store):
    cache = ResponseCache(memory_store)
    await cache.store(FINGERPRINT, Response(status=201, body=b"first"))

    assert await cache.store(FINGERPRINT, Response(status=201, body=b"second")) is False
    assert (await cache.lookup(FINGERPRINT)).body == b"first"


@pytest.mark.asyncio
async def test_uses_store_default_ttl(memory_store, clock):
    cache = ResponseCache(memory_store)
    await cache.store(FINGERPRINT, created_response())

    clock.advance(memory_store.expires_in - 1)
    assert await cache.lookup(FINGERPRINT) is not None

    clock.advance(1)
    assert await cache.lookup(FINGERPRINT) is None


@pytest.mark.asyncio
async def test_explicit_ttl(memory_store, clock):
    cache = ResponseCache(memory_store, ttl_seconds=10)
    await cache.store(FINGERPRINT, created_response())

    clock.advance(10)
    assert await cache.lookup(FINGERPRINT) is None


@pytest.mark.asyncio
async def test_unreadable_payload_raises_storage_error(memory_store):
    await memory_store.set(cache_key(FINGERPRINT), "locked")

    with pytest.raises(StorageError, match="Unreadable cached response"):
        await ResponseCache(memory_store).lookup(FINGERPRINT)


@pytest.mark.asyncio
async def test_lookup_propagates_storage_error():
    store = AsyncMock()
    store.get.side_effect = StorageError("Connection refused")

    with pytest.raises(StorageError, match="Connection refused"):
        await ResponseCache(store).lookup(FINGERPRINT)


@pytest.mark.asyncio
async def test_store_propagates_storage_error():
    store = AsyncMock()
    store.set.side_effect = StorageError("Connection refused")

    with pytest.raises(StorageError):
        await ResponseCache(store).store(FINGERPRINT, created_response())


@pytest.mark.asyncio
async def test_store_conflict_is_swallowed():
    store = AsyncMock()
    store.set.side_effect = ConflictError(key=cache_key(FINGERPRINT))

    assert await ResponseCache(store).store(FINGERPRINT, created_response()) is False
