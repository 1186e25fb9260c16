"""Request fingerprinting for idempotency.

A fingerprint identifies one logical request. It is the SHA-256 digest of, in
this order and without separators:

1. The HTTP method as sent
2. The full path including the query string
3. The Idempotency-Key header value (or a fixed marker when absent)
4. The Authorization header value (or a fixed marker when absent)
5. The request body, streamed in 8 KiB chunks

Including the body means two requests reusing one idempotency key with
different payloads are independent operations rather than an error. Including
the Authorization header keeps different clients that happen to pick the same
key apart.

Bodies that cannot be rewound (pure streams) are not read, since reading them
would consume the stream before the handler sees it. A fixed marker is hashed
in their place. Two different streamed bodies under the same key and
credentials therefore share a fingerprint; see
``IdempotencyConfig.non_rewindable_body_policy`` to opt such requests out of
idempotency handling instead.
"""

import hashlib

from idempotency_key.messages import Request

CHUNK_SIZE = 8192

MISSING_IDEMPOTENCY_KEY = "no-idempotency-key"
MISSING_AUTHORIZATION = "no-authorization"
STREAMING_BODY = "streaming-body"


def compute_fingerprint(request: Request) -> str:
    """Compute a deterministic fingerprint for a request.

    Args:
        request: The incoming request. A rewindable body is read from the
            start and rewound afterwards, so downstream consumers can still
            read it.

    Returns:
        Hexadecimal SHA-256 hash string (64 characters)

    Examples:
        >>> compute_fingerprint(
        ...     Request(
        ...         method="GET",
        ...         path="/",
        ...         headers={"Authorization": "Bearer token123"},
        ...         body=b"The request body",
        ...     )
        ... )
        '3d5b6059f39c534bd5731f870d2329287f12c4db44660573e89df794fd229de9'
    """
    digest = hashlib.sha256()
    digest.update(request.method.encode("utf-8"))
    digest.update(request.full_path.encode("utf-8"))
    digest.update(_header_or(request.idempotency_key, MISSING_IDEMPOTENCY_KEY))
    digest.update(_header_or(request.authorization, MISSING_AUTHORIZATION))
    _update_with_body(digest, request)
    return digest.hexdigest()


def _header_or(value: str | None, fallback: str) -> bytes:
    if value is None:
        value = fallback
    return value.encode("utf-8")


def _update_with_body(digest: "hashlib._Hash", request: Request) -> None:
    """Feed the request body to the digest chunk by chunk."""
    body = request.body
    if body is None or not request.has_rewindable_body():
        digest.update(STREAMING_BODY.encode("utf-8"))
        return

    body.seek(0)
    try:
        while chunk := body.read(CHUNK_SIZE):
            digest.update(chunk)
    finally:
        body.seek(0)
