"""Eligibility policy: which requests get idempotency handling.

A request is eligible when all of the following hold:

- It carries a non-empty Idempotency-Key header
- Its method is non-idempotent by design (POST, PATCH, CONNECT by default)
- It matches the route allow-list, when one is configured
- Its body can be fingerprinted, unless the configuration accepts the
  fixed-marker approximation for streamed bodies

Ineligible requests bypass the middleware entirely and never touch the store.
"""

import re
from collections.abc import Iterable

from idempotency_key.config import IdempotencyConfig, RouteRule
from idempotency_key.messages import Request


class EligibilityPolicy:
    """Decides whether a request is subject to idempotency handling.

    Attributes:
        methods: Uppercase HTTP methods that are handled.
        routes: Route allow-list, or None to accept every path.
        bypass_non_rewindable: If True, requests whose body cannot be
            rewound are treated as ineligible.
    """

    def __init__(
        self,
        methods: Iterable[str] = ("POST", "PATCH", "CONNECT"),
        routes: Iterable[RouteRule] | None = None,
        bypass_non_rewindable: bool = False,
    ) -> None:
        self.methods = frozenset(method.upper() for method in methods)
        self.routes = list(routes) if routes is not None else None
        self.bypass_non_rewindable = bypass_non_rewindable

    @classmethod
    def from_config(cls, config: IdempotencyConfig) -> "EligibilityPolicy":
        """Build the policy described by a configuration object."""
        return cls(
            methods=config.enabled_methods,
            routes=config.routes,
            bypass_non_rewindable=config.non_rewindable_body_policy == "bypass",
        )

    def is_eligible(self, request: Request) -> bool:
        """Return True if the request must go through idempotency handling."""
        if not self.has_idempotency_key(request):
            return False
        if not self.is_allowed_method(request):
            return False
        if not self.matches_any_route(request):
            return False
        if self.bypass_non_rewindable and request.body is not None:
            return request.has_rewindable_body()
        return True

    def has_idempotency_key(self, request: Request) -> bool:
        """Check the Idempotency-Key header is present and not blank."""
        key = request.idempotency_key
        return key is not None and bool(key.strip())

    def is_allowed_method(self, request: Request) -> bool:
        """Check the method is one of the non-idempotent methods handled."""
        return request.method.upper() in self.methods

    def matches_any_route(self, request: Request) -> bool:
        """Check the request against the route allow-list.

        With no allow-list configured every route matches.
        """
        if self.routes is None:
            return True
        return any(
            route.method == request.method.upper() and _matches_path(route.path, request.path)
            for route in self.routes
        )


def _segments(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _matches_path(pattern: str, path: str) -> bool:
    """Match a path against a route pattern segment by segment.

    ``*`` stands for any non-empty run of characters within one segment, so
    hyphenated ids and UUIDs match. Literal parts are compared
    case-insensitively against the whole segment. Both sides must have the
    same number of segments.

    Examples:
        >>> _matches_path("/posts/*", "/posts/42")
        True
        >>> _matches_path("/posts/*", "/posts/550e8400-e29b-41d4-a716-446655440000")
        True
        >>> _matches_path("/posts/*", "/posts/42/authors")
        False
    """
    pattern_segments = _segments(pattern)
    path_segments = _segments(path)
    if len(pattern_segments) != len(path_segments):
        return False

    for pattern_segment, path_segment in zip(pattern_segments, path_segments):
        regex = r"[^/]+".join(re.escape(part) for part in pattern_segment.split("*"))
        if not re.fullmatch(regex, path_segment, re.IGNORECASE):
            return False
    return True
