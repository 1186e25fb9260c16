"""Framework-neutral request and response containers.

Framework adapters convert their own request objects into ``Request`` and
convert ``Response`` back into whatever the host server expects.
"""

import io
from typing import BinaryIO

from idempotency_key.utils.headers import HeaderValue, get_header_value

IDEMPOTENCY_KEY_HEADER = "Idempotency-Key"
AUTHORIZATION_HEADER = "Authorization"


class Request:
    """Abstract request representation.

    Attributes:
        method: HTTP method as sent by the client (GET, POST, etc.)
        path: URL path
        query_string: Query string without leading '?'
        headers: Request headers as dict
        body: Request body stream. Raw bytes are wrapped in a rewindable
            ``io.BytesIO``; a non-seekable stream is kept as-is.
    """

    def __init__(
        self,
        method: str,
        path: str,
        query_string: str = "",
        headers: dict[str, str] | None = None,
        body: bytes | BinaryIO | None = None,
    ) -> None:
        """Initialize a request.

        Args:
            method: HTTP method
            path: URL path
            query_string: Query string
            headers: Request headers
            body: Request body as bytes or a binary stream
        """
        self.method = method
        self.path = path
        self.query_string = query_string
        self.headers = headers or {}
        if isinstance(body, (bytes, bytearray, memoryview)):
            body = io.BytesIO(bytes(body))
        self.body = body

    @property
    def full_path(self) -> str:
        """Path including the query string, e.g. ``/orders?page=2``."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def idempotency_key(self) -> str | None:
        """The Idempotency-Key header value, or None if absent."""
        return get_header_value(self.headers, IDEMPOTENCY_KEY_HEADER)

    @property
    def authorization(self) -> str | None:
        """The Authorization header value, or None if absent."""
        return get_header_value(self.headers, AUTHORIZATION_HEADER)

    def has_rewindable_body(self) -> bool:
        """Return True if the body can be read and then rewound."""
        body = self.body
        if body is None or not hasattr(body, "seek"):
            return False
        seekable = getattr(body, "seekable", None)
        if seekable is None:
            return True
        return bool(seekable())


class Response:
    """An HTTP response as a (status, headers, body) triple.

    Attributes:
        status: HTTP status code (e.g., 200, 409, 503)
        headers: Response headers as key-value pairs. A repeated header such
            as Set-Cookie maps to the list of its values.
        body: Response body as bytes
    """

    def __init__(
        self,
        status: int,
        headers: dict[str, HeaderValue] | None = None,
        body: bytes = b"",
    ) -> None:
        """Initialize a response.

        Args:
            status: HTTP status code
            headers: Response headers
            body: Response body as bytes
        """
        self.status = status
        self.headers = headers or {}
        self.body = body

    def __repr__(self) -> str:
        return f"Response(status={self.status}, headers={self.headers!r}, body={self.body!r})"
