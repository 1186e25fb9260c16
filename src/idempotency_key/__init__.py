"""
Idempotency-Key middleware for Python web applications.

This package makes non-idempotent HTTP operations (POST, PATCH, CONNECT)
safely retryable: requests carrying the same Idempotency-Key header and the
same content execute the downstream handler once, and later callers receive
the cached response.
"""

from idempotency_key.config import IdempotencyConfig
from idempotency_key.core.middleware import IdempotencyMiddleware
from idempotency_key.exceptions import ConflictError, IdempotencyError, StorageError
from idempotency_key.messages import Request, Response
from idempotency_key.storage import MemoryStore, RedisStore, Store, create_store

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "IdempotencyConfig",
    "IdempotencyMiddleware",
    "IdempotencyError",
    "ConflictError",
    "StorageError",
    "Request",
    "Response",
    "Store",
    "MemoryStore",
    "RedisStore",
    "create_store",
]
