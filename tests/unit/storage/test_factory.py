"""Unit tests for building a store from configuration."""

import fakeredis

from idempotency_key.config import IdempotencyConfig
from idempotency_key.storage import MemoryStore, RedisStore, create_store


def test_memory_backend_by_default():
    store = create_store(IdempotencyConfig())

    assert isinstance(store, MemoryStore)
    assert store.expires_in == 86400


def test_memory_backend_uses_cache_ttl():
    store = create_store(IdempotencyConfig(cache_ttl_seconds=120))
    assert store.expires_in == 120


def test_redis_backend_with_given_client():
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())
    config = IdempotencyConfig(storage_backend="redis", cache_ttl_seconds=600, key_namespace="pay")

    store = create_store(config, client=client)

    assert isinstance(store, RedisStore)
    assert store.expires_in == 600
    assert store.namespace == "pay"
    assert store.namespaced_key("k") == "pay:k"


def test_redis_backend_from_url():
    """The client is built lazily from the URL; nothing connects yet."""
    config = IdempotencyConfig(storage_backend="redis", redis_url="redis://cache:6380/2")

    store = create_store(config)

    assert isinstance(store, RedisStore)
    kwargs = store._client.connection_pool.connection_kwargs
    assert kwargs["host"] == "cache"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 2


def test_client_ignored_for_memory_backend():
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())
    assert isinstance(create_store(IdempotencyConfig(), client=client), MemoryStore)
