"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can put on a response line.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ OK                - File or program output follows        │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Bad Request       - Request line could not be parsed      │
    │  403   │ Forbidden         - Not a regular file / no permission    │
    │  404   │ Not Found         - Target does not exist                 │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  500   │ Internal Error    - Unexpected failure while serving      │
    │  501   │ Not Implemented   - Method other than GET                 │
    └────────┴───────────────────────────────────────────────────────────┘

Error codes are only sent when the server is configured to report them;
by default a rejected request is closed without any response.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404

    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line ("HTTP/1.0 404 Not Found")."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
}
