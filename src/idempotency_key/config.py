"""Configuration module for idempotency middleware.

This module provides the IdempotencyConfig class for configuring the behavior of the
idempotency middleware: which requests are eligible, which storage backend holds the
locks and cached responses, and how long each of them lives.

Example:
    Basic usage with defaults:

        >>> config = IdempotencyConfig()
        >>> config.enabled_methods
        ['POST', 'PATCH', 'CONNECT']

    Custom configuration:

        >>> config = IdempotencyConfig(
        ...     enabled_methods=["POST"],
        ...     cache_ttl_seconds=3600,
        ...     storage_backend="redis",
        ...     redis_url="redis://myhost:6379/0",
        ...     routes=[{"path": "/payments/*", "method": "POST"}],
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['IDEMPOTENCY_ENABLED_METHODS'] = 'POST,PATCH'
        >>> os.environ['IDEMPOTENCY_LOCK_TTL_SECONDS'] = '30'
        >>> config = IdempotencyConfig.from_env()
"""

import json
import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Valid HTTP methods
VALID_HTTP_METHODS = {
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
    "PATCH",
}

# Methods that are idempotent by definition and are never deduplicated
IDEMPOTENT_HTTP_METHODS = {"GET", "HEAD", "PUT", "DELETE", "OPTIONS", "TRACE"}

DEFAULT_CACHE_TTL_SECONDS = 86400
DEFAULT_LOCK_TTL_SECONDS = 60
DEFAULT_KEY_NAMESPACE = "idempotency_key"


class RouteRule(BaseModel):
    """A single entry of the route allow-list.

    Attributes:
        path: Path pattern. Each ``*`` matches any characters within one path
            segment, e.g. ``/posts/*`` matches ``/posts/42`` and ``/posts/a-b``.
        method: HTTP method the rule applies to (case-insensitive).
    """

    path: str = Field(..., min_length=1, description="Path pattern with optional * segments")
    method: str = Field(..., min_length=1, description="HTTP method for this route")

    model_config = {"frozen": True}

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Uppercase the method and check it is a known HTTP method."""
        method = v.upper()
        if method not in VALID_HTTP_METHODS:
            raise ValueError(f"Invalid HTTP method in route: {v}")
        return method


class IdempotencyConfig(BaseModel):
    """Configuration for idempotency middleware.

    This immutable configuration class defines all settings for the idempotency
    middleware.

    Attributes:
        enabled_methods: HTTP methods subject to idempotency handling. Only
            methods that are non-idempotent by design may be listed.
            Default is POST, PATCH and CONNECT.
        cache_ttl_seconds: Retention of cached responses in seconds.
            Must be between 1 and 604800 (7 days). Default is 86400 (24 hours).
        lock_ttl_seconds: Lifetime of the per-fingerprint lock in seconds. Bounds
            how long a crashed holder can block a fingerprint. Must be between 1
            and 3600. Default is 60.
        storage_backend: Which store holds locks and responses: "memory"
            (single process) or "redis" (shared). Default is "memory".
        redis_url: Connection URL used when storage_backend is "redis".
        key_namespace: Prefix applied to every Redis key.
        routes: Optional route allow-list. None means every path is eligible.
        non_rewindable_body_policy: What to do with bodies that cannot be
            rewound. "sentinel" fingerprints them with a fixed marker instead of
            their content, so two different streamed bodies under the same key
            collide; "bypass" skips idempotency handling for such requests.
        uncached_statuses: Response status codes that are never cached.
            Default is [400].

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    enabled_methods: list[str] = Field(
        default=["POST", "PATCH", "CONNECT"],
        description="HTTP methods that require idempotency handling",
    )
    cache_ttl_seconds: int = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        description="Time-to-live in seconds for cached responses (1-604800)",
    )
    lock_ttl_seconds: int = Field(
        default=DEFAULT_LOCK_TTL_SECONDS,
        description="Time-to-live in seconds for request locks (1-3600)",
    )
    storage_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Storage backend for locks and cached responses",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection URL for the Redis backend",
    )
    key_namespace: str = Field(
        default=DEFAULT_KEY_NAMESPACE,
        description="Namespace prefix for Redis keys",
    )
    routes: list[RouteRule] | None = Field(
        default=None,
        description="Optional route allow-list; None means all routes",
    )
    non_rewindable_body_policy: Literal["sentinel", "bypass"] = Field(
        default="sentinel",
        description="Handling of request bodies that cannot be rewound",
    )
    uncached_statuses: list[int] = Field(
        default=[400],
        description="Response status codes that are never cached",
    )

    model_config = {"frozen": True}

    @field_validator("enabled_methods", mode="before")
    @classmethod
    def validate_enabled_methods(cls, v: Any) -> list[str]:
        """Validate and normalize enabled HTTP methods.

        Converts methods to uppercase, validates them against known HTTP methods
        and rejects methods that are idempotent by definition.

        Args:
            v: List of HTTP method strings or comma-separated string.

        Returns:
            List of uppercase, validated HTTP methods.

        Raises:
            ValueError: If any method is unknown or idempotent.

        Example:
            >>> IdempotencyConfig(enabled_methods="post, patch").enabled_methods
            ['POST', 'PATCH']
        """
        if isinstance(v, str):
            # Handle comma-separated string (from environment variables)
            v = [method.strip() for method in v.split(",") if method.strip()]

        if not isinstance(v, list):
            raise ValueError("enabled_methods must be a list or comma-separated string")

        methods = [method.upper() for method in v]

        invalid_methods = set(methods) - VALID_HTTP_METHODS
        if invalid_methods:
            raise ValueError(
                f"Invalid HTTP methods: {', '.join(sorted(invalid_methods))}. "
                f"Valid methods are: {', '.join(sorted(VALID_HTTP_METHODS))}"
            )

        idempotent = set(methods) & IDEMPOTENT_HTTP_METHODS
        if idempotent:
            raise ValueError(
                f"Idempotent methods cannot be enabled: {', '.join(sorted(idempotent))}"
            )

        return methods

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_cache_ttl_seconds(cls, v: int) -> int:
        """Validate the cache TTL is within 1 second and 7 days.

        Raises:
            ValueError: If TTL is not between 1 and 604800.
        """
        if not (1 <= v <= 604800):
            raise ValueError(f"cache_ttl_seconds must be between 1 and 604800 (7 days), got {v}")
        return v

    @field_validator("lock_ttl_seconds")
    @classmethod
    def validate_lock_ttl_seconds(cls, v: int) -> int:
        """Validate the lock TTL is within 1 second and 1 hour.

        Raises:
            ValueError: If TTL is not between 1 and 3600.
        """
        if not (1 <= v <= 3600):
            raise ValueError(f"lock_ttl_seconds must be between 1 and 3600 (1 hour), got {v}")
        return v

    @field_validator("key_namespace")
    @classmethod
    def validate_key_namespace(cls, v: str) -> str:
        """Reject empty namespaces and namespaces containing whitespace."""
        if not v or any(c.isspace() for c in v):
            raise ValueError("key_namespace must be non-empty and contain no whitespace")
        return v

    @field_validator("routes", mode="before")
    @classmethod
    def validate_routes(cls, v: Any) -> Any:
        """Accept routes as a JSON string (from environment variables)."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"routes must be valid JSON: {e}") from e
        return v

    @field_validator("uncached_statuses", mode="before")
    @classmethod
    def validate_uncached_statuses(cls, v: Any) -> list[int]:
        """Validate and normalize the uncached status codes.

        Example:
            >>> IdempotencyConfig(uncached_statuses="400,422").uncached_statuses
            [400, 422]
        """
        if isinstance(v, str):
            v = [int(code.strip()) for code in v.split(",") if code.strip()]

        if not isinstance(v, list):
            raise ValueError("uncached_statuses must be a list or comma-separated string")

        statuses = [int(code) for code in v]
        out_of_range = [code for code in statuses if not (100 <= code <= 599)]
        if out_of_range:
            raise ValueError(f"Invalid HTTP status codes: {out_of_range}")
        return statuses

    @classmethod
    def from_env(cls, prefix: str = "IDEMPOTENCY_") -> "IdempotencyConfig":
        """Create configuration from environment variables.

        Variable names are uppercase field names with the prefix, e.g.
        ``IDEMPOTENCY_LOCK_TTL_SECONDS``. List fields accept comma-separated
        values; ``IDEMPOTENCY_ROUTES`` accepts a JSON array.

        Args:
            prefix: Prefix for environment variable names. Default is "IDEMPOTENCY_".

        Returns:
            IdempotencyConfig instance populated from environment variables.

        Example:
            >>> import os
            >>> os.environ['IDEMPOTENCY_STORAGE_BACKEND'] = 'redis'
            >>> IdempotencyConfig.from_env().storage_backend
            'redis'
        """
        config_dict: dict[str, Any] = {}

        field_types = {
            "enabled_methods": list,
            "cache_ttl_seconds": int,
            "lock_ttl_seconds": int,
            "storage_backend": str,
            "redis_url": str,
            "key_namespace": str,
            "routes": list,
            "non_rewindable_body_policy": str,
            "uncached_statuses": list,
        }

        for field_name, field_type in field_types.items():
            env_value = os.environ.get(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            if field_type is int:
                config_dict[field_name] = int(env_value)
            else:
                # Lists arrive as comma-separated strings or JSON, parsed by validators
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "IdempotencyConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
