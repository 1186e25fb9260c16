"""Custom exceptions for the idempotency middleware.

This module defines the exception hierarchy used throughout the middleware
to signal the two conditions the core translates into HTTP responses:
lock conflicts and storage backend failures.

Examples:
    Handling a conflict error::

        from idempotency_key.exceptions import ConflictError

        try:
            await store.set(lock_key, LOCK_MARKER, ttl_seconds=60)
        except ConflictError as e:
            # Another request holds the lock for this fingerprint
            logger.info("lock.conflict", error=e.message)
            return Response(status=409, ...)

    Handling a storage error::

        from idempotency_key.exceptions import StorageError

        try:
            cached = await store.get(cache_key)
        except StorageError as e:
            logger.warning("storage.error", error=str(e))
            return Response(status=503, ...)
"""


class IdempotencyError(Exception):
    """Base exception for all idempotency-related errors.

    All exceptions raised by the idempotency middleware inherit from this
    base class, allowing callers to catch all middleware-specific errors
    with a single except clause.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class ConflictError(IdempotencyError):
    """A live entry already exists for the key.

    Raised by ``Store.set`` when the conditional insert finds a live entry.
    For a lock key this means another request with the same fingerprint is
    still being processed; the middleware answers with HTTP 409.

    This is an expected outcome rather than a failure: the client is expected
    to retry later, at which point it will either acquire the lock or receive
    the cached response.

    Attributes:
        message: Human-readable error description.
        key: The store key that was already taken, if known.

    Examples:
        Raising a conflict error::

            if existing is not None:
                raise ConflictError(key=key)

        Handling a conflict error::

            try:
                async with coordinator.locked(fingerprint):
                    ...
            except ConflictError as e:
                return Response(status=409, headers={...}, body=e.message.encode())
    """

    DEFAULT_MESSAGE = "This request is already being processed. Please retry later."

    def __init__(self, message: str = DEFAULT_MESSAGE, key: str | None = None) -> None:
        """Initialize the conflict error.

        Args:
            message: Human-readable error description.
            key: The store key that was already taken.
        """
        super().__init__(message)
        self.key = key


class StorageError(IdempotencyError):
    """Storage backend operation failed.

    This exception is raised when the underlying storage medium cannot
    complete the requested operation, for example:

    1. Network failures (connection refused, timeouts)
    2. Backend service errors (Redis down, protocol errors)
    3. Corrupted payloads that cannot be decoded

    Backend-specific exceptions are never leaked to callers; they are wrapped
    in this class with the original diagnostic text preserved in the message
    and the original exception available as ``cause``.

    Attributes:
        message: Human-readable error description, including the backend text.
        cause: The underlying exception that caused the storage error.

    Examples:
        Raising a storage error::

            try:
                raw = await client.get(key)
            except RedisError as e:
                raise StorageError(str(e), cause=e) from e
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize the storage error with details.

        Args:
            message: Human-readable error description.
            cause: The underlying exception that caused the storage error.
        """
        super().__init__(message)
        self.cause = cause
