"""Utility modules for idempotency middleware."""

from .headers import (
    HOP_BY_HOP_HEADERS,
    REPLAY_HEADER,
    HeaderValue,
    add_replay_header,
    collect_headers,
    filter_hop_by_hop_headers,
    get_header_value,
)

__all__ = [
    "get_header_value",
    "add_replay_header",
    "collect_headers",
    "filter_hop_by_hop_headers",
    "REPLAY_HEADER",
    "HOP_BY_HOP_HEADERS",
    "HeaderValue",
]
