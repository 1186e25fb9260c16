"""Header helpers for idempotency middleware.

This module provides functions for:
- Case-insensitive header lookup
- Marking replayed responses
- Collecting raw response headers, keeping repeated ones such as Set-Cookie
- Dropping hop-by-hop headers from buffered responses
"""

from collections.abc import Iterable

# A repeated response header holds every value, in order
HeaderValue = str | list[str]

# Header added to responses served from the cache
REPLAY_HEADER = "Idempotent-Replayed"

# Connection-level headers that describe how a body was framed on the wire.
# They no longer apply once a response body has been buffered.
HOP_BY_HOP_HEADERS = {
    "connection",
    "transfer-encoding",
    "keep-alive",
    "trailer",
    "upgrade",
    "proxy-connection",
    "proxy-authenticate",
    "proxy-authorization",
}


def get_header_value(
    headers: dict[str, str],
    header_name: str,
    default: str | None = None,
) -> str | None:
    """Get header value with case-insensitive lookup.

    Args:
        headers: Headers dictionary
        header_name: Name of header to find (case-insensitive)
        default: Default value if header not found

    Returns:
        Header value or default

    Example:
        >>> headers = {"Content-Type": "application/json"}
        >>> get_header_value(headers, "content-type")
        'application/json'
        >>> get_header_value(headers, "missing", "default")
        'default'
    """
    header_name_lower = header_name.lower()

    for key, value in headers.items():
        if key.lower() == header_name_lower:
            return value

    return default


def add_replay_header(headers: dict[str, HeaderValue]) -> dict[str, HeaderValue]:
    """Return a copy of ``headers`` marked as a replayed response.

    Example:
        >>> add_replay_header({"Content-Type": "text/plain"})
        {'Content-Type': 'text/plain', 'Idempotent-Replayed': 'true'}
    """
    result: dict[str, HeaderValue] = {
        key: value for key, value in headers.items() if key.lower() != REPLAY_HEADER.lower()
    }
    result[REPLAY_HEADER] = "true"
    return result


def filter_hop_by_hop_headers(headers: dict[str, HeaderValue]) -> dict[str, HeaderValue]:
    """Drop hop-by-hop headers (case-insensitive).

    Example:
        >>> filter_hop_by_hop_headers({"Content-Type": "text/plain", "Connection": "close"})
        {'Content-Type': 'text/plain'}
    """
    return {key: value for key, value in headers.items() if key.lower() not in HOP_BY_HOP_HEADERS}


def collect_headers(raw: Iterable[tuple[bytes, bytes]]) -> dict[str, HeaderValue]:
    """Build a headers dict from raw ASGI header pairs.

    A header sent once maps to its value; a repeated header maps to the list
    of its values in the order they were sent.

    Example:
        >>> collect_headers([(b"set-cookie", b"a=1"), (b"set-cookie", b"b=2"), (b"x-id", b"7")])
        {'set-cookie': ['a=1', 'b=2'], 'x-id': '7'}
    """
    headers: dict[str, HeaderValue] = {}
    for raw_name, raw_value in raw:
        name = raw_name.decode("latin-1")
        value = raw_value.decode("latin-1")
        existing = headers.get(name)
        if existing is None:
            headers[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            headers[name] = [existing, value]
    return headers
