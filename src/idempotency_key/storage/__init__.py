"""Storage backends for idempotency middleware.

This package provides the stores that hold request locks and cached
responses. All backends implement the Store protocol defined in base.py.

Available Stores:
    - MemoryStore: In-process dictionary guarded by a mutex
    - RedisStore: Redis ``SET NX EX`` for multi-process deployments
"""

from redis.asyncio import ConnectionPool, Redis

from idempotency_key.config import IdempotencyConfig
from idempotency_key.storage.base import Store
from idempotency_key.storage.memory import MemoryStore
from idempotency_key.storage.redis_store import ConnectionProvider, RedisStore


def create_store(
    config: IdempotencyConfig,
    client: Redis | ConnectionPool | ConnectionProvider | None = None,
) -> Store:
    """Build the store selected by ``config.storage_backend``.

    Args:
        config: Middleware configuration.
        client: Redis handle to use instead of connecting to
            ``config.redis_url``. Ignored for the memory backend.

    Returns:
        A MemoryStore or RedisStore using ``config.cache_ttl_seconds`` as its
        default TTL.
    """
    if config.storage_backend == "redis":
        if client is None:
            client = Redis.from_url(config.redis_url)
        return RedisStore(
            client,
            expires_in=config.cache_ttl_seconds,
            namespace=config.key_namespace,
        )

    return MemoryStore(expires_in=config.cache_ttl_seconds)


__all__ = [
    "Store",
    "MemoryStore",
    "RedisStore",
    "ConnectionProvider",
    "create_store",
]
