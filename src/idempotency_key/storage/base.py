"""Storage protocol for idempotency middleware.

This module defines the contract every storage backend must fulfil. The same
three operations back both the response cache and the per-request lock:

- ``get``: read a live value
- ``set``: atomic conditional insert with expiration
- ``unset``: idempotent removal

Examples:
    Implementing a custom store::

        class MyStore:
            async def get(self, key: str) -> Any | None:
                ...

            async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> Any:
                ...

            async def unset(self, key: str) -> None:
                ...

    Using a store as a lock::

        try:
            await store.set("abc123:lock", "locked", ttl_seconds=60)
        except ConflictError:
            return conflict_response()
        try:
            ...
        finally:
            await store.unset("abc123:lock")

Atomicity Requirements:
    All Store implementations MUST guarantee:

    1. **Atomic conditional insert**: set() must check for a live entry and
       insert the new one as a single step. When N callers race to set the
       same fresh key, exactly one succeeds and N-1 get ConflictError. This
       is what makes the store usable as a mutual-exclusion lock.

    2. **No overwrite**: a failed set() leaves the existing entry untouched.

    3. **Expiration**: an entry is never returned once its TTL has passed,
       even if the backend has not physically evicted it yet.

    4. **Error translation**: backend failures surface as StorageError,
       never as backend-specific exceptions. ConflictError is an expected
       outcome, not a failure.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Store(Protocol):
    """Protocol defining the interface for idempotency storage backends.

    Values are opaque, JSON-compatible payloads. Backends that persist
    outside the process serialize them; the in-memory backend keeps them
    as-is.

    Attributes:
        expires_in: Default time-to-live in seconds used by set() when no
            explicit TTL is given.
    """

    expires_in: int

    async def get(self, key: str) -> Any | None:
        """Retrieve the live value stored under ``key``.

        Args:
            key: The store key.

        Returns:
            The stored value, or None if the key is missing or expired.

        Raises:
            StorageError: If the backend cannot be reached or fails.
        """
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> Any:
        """Atomically insert ``value`` under ``key`` if no live entry exists.

        Args:
            key: The store key.
            value: JSON-compatible payload.
            ttl_seconds: Lifetime of the entry; defaults to ``expires_in``.

        Returns:
            The stored value.

        Raises:
            ConflictError: If a live entry already exists for ``key``.
            StorageError: If the backend cannot be reached or fails.
        """
        ...

    async def unset(self, key: str) -> None:
        """Remove any entry stored under ``key``.

        Removing a missing key is not an error.

        Raises:
            StorageError: If the backend cannot be reached or fails.
        """
        ...
