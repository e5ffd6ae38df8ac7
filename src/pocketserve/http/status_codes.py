"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server only ever answers with six status codes:

    200 OK                     File found and streamed
    400 Bad Request            Request line could not be parsed
    403 Forbidden              Path tried to escape the document root
    404 Not Found              No such file (or it is a directory)
    405 Method Not Allowed     Anything other than GET
    500 Internal Server Error  File could not be opened

The reason phrase table below is authoritative for exactly these codes.
Any other code is written as "Unknown"; callers are expected to stay
inside the set above.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes emitted by the server.

    Extends IntEnum, so members compare equal to plain ints:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (e.g. "Not Found")."""
        return _STATUS_PHRASES.get(self, UNKNOWN_PHRASE)

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400


# =============================================================================
# REASON PHRASES
# =============================================================================

UNKNOWN_PHRASE = "Unknown"

_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}


def status_text(code: int) -> str:
    """
    Look up the reason phrase for any integer status code.

    Unlike HTTPStatus(code).phrase this never raises: codes outside the
    supported set map to "Unknown".

        >>> status_text(404)
        'Not Found'
        >>> status_text(418)
        'Unknown'
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return UNKNOWN_PHRASE
