"""Core data models for the idempotency middleware.

This module provides the data structures persisted by the storage backends:
the cached response of a completed request and the expiring entry wrapper
used by the in-memory store.

Examples:
    Caching a completed response::

        from idempotency_key.models import StoredResponse

        stored = StoredResponse.from_parts(
            status=201,
            headers={"content-type": "application/json"},
            body=b'{"id": "pay_123"}',
        )
        payload = stored.to_payload()  # JSON-safe dict handed to the store

    Restoring it on a later request::

        stored = StoredResponse.from_payload(payload)
        stored.get_body_bytes()  # b'{"id": "pay_123"}'
"""

import base64
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from idempotency_key.utils.headers import HeaderValue


class StoredResponse(BaseModel):
    """A cached HTTP response that can be replayed for duplicate requests.

    The response body is base64-encoded to safely handle binary content
    and keep the payload JSON-serializable for every storage backend.

    Attributes:
        status: HTTP status code (e.g., 200, 201, 422).
        headers: HTTP response headers as key-value pairs; repeated headers
            hold a list of values.
        body_b64: Base64-encoded response body.
    """

    status: int = Field(
        ...,
        description="HTTP status code",
        ge=100,
        le=599,
        examples=[200, 201, 422, 500],
    )
    headers: dict[str, HeaderValue] = Field(
        default_factory=dict,
        description="HTTP response headers",
        examples=[{"content-type": "application/json"}],
    )
    body_b64: str = Field(
        ...,
        description="Base64-encoded response body",
        examples=["eyJyZXN1bHQiOiAic3VjY2VzcyJ9"],
    )

    @field_validator("body_b64")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Validate that the body is properly base64-encoded.

        Args:
            v: The base64-encoded string to validate.

        Returns:
            The validated base64 string.

        Raises:
            ValueError: If the string is not valid base64.
        """
        try:
            base64.b64decode(v, validate=True)
        except Exception as e:
            raise ValueError(f"Invalid base64 encoding: {e}") from e
        return v

    @classmethod
    def from_parts(
        cls, status: int, headers: dict[str, HeaderValue], body: bytes
    ) -> "StoredResponse":
        """Build a stored response from raw response parts.

        Args:
            status: HTTP status code.
            headers: Response headers.
            body: Raw response body.

        Returns:
            A StoredResponse with the body base64-encoded.
        """
        return cls(
            status=status,
            headers=dict(headers),
            body_b64=base64.b64encode(body).decode("ascii"),
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "StoredResponse":
        """Validate a payload read back from a store.

        Raises:
            pydantic.ValidationError: If the payload is not a stored response.
        """
        return cls.model_validate(payload)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-safe representation handed to a store."""
        return self.model_dump(mode="json")

    def get_body_bytes(self) -> bytes:
        """Decode and return the response body as bytes.

        Examples:
            >>> response = StoredResponse(status=200, headers={}, body_b64="SGVsbG8=")
            >>> response.get_body_bytes()
            b'Hello'
        """
        return base64.b64decode(self.body_b64)


class StoredEntry(BaseModel):
    """A value held by the in-memory store together with its expiration.

    Attributes:
        value: The opaque payload (a cached response or a lock marker).
        expires_at: Absolute instant after which the entry is invisible.
    """

    value: Any = Field(..., description="Opaque stored payload")
    expires_at: datetime = Field(..., description="Absolute expiration instant (UTC)")

    @field_validator("expires_at")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        """Normalize naive datetimes to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    def is_expired(self, now: datetime) -> bool:
        """Return True once ``now`` has reached the expiration instant."""
        return now >= self.expires_at


class RequestOutcome(str, Enum):
    """How the middleware disposed of a request.

    Attributes:
        BYPASS: Not eligible; forwarded to the handler untouched.
        NEW: Lock acquired, cache missed, handler executed.
        REPLAY: Lock acquired, cached response returned.
        CONFLICT: Lock held by another request; answered with 409.
        STORAGE_ERROR: The store failed; answered with 503.
    """

    BYPASS = "bypass"
    NEW = "new"
    REPLAY = "replay"
    CONFLICT = "conflict"
    STORAGE_ERROR = "storage_error"
