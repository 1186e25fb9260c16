"""Response replay for idempotency middleware.

A replayed response is rebuilt from a StoredResponse: same status, same
headers, same body bytes, plus the ``Idempotent-Replayed: true`` marker that
tells the client it did not trigger a fresh execution.

Examples:
    >>> stored = StoredResponse.from_parts(201, {"content-type": "text/plain"}, b"created")
    >>> response = replay_response(stored)
    >>> response.status, response.body
    (201, b'created')
    >>> response.headers["Idempotent-Replayed"]
    'true'
"""

from idempotency_key.messages import Response
from idempotency_key.models import StoredResponse
from idempotency_key.utils.headers import add_replay_header


def replay_response(stored: StoredResponse) -> Response:
    """Reconstruct an HTTP response from its stored form.

    Args:
        stored: The cached response

    Returns:
        Response carrying the original status, headers and body, marked as a
        replay
    """
    return Response(
        status=stored.status,
        headers=add_replay_header(stored.headers),
        body=stored.get_body_bytes(),
    )
