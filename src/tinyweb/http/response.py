"""
=============================================================================
RESPONSE HEADS
=============================================================================

Builds the status line and headers that precede content. Bodies are
never buffered here: static files are streamed after the head, and a
dynamic program writes its own output straight to the socket.

=============================================================================
WHAT GOES ON THE WIRE
=============================================================================

    Static file:                         Dynamic content:

    HTTP/1.0 200 OK\r\n                  HTTP/1.0 200 OK\r\n
    Server: tinyweb/1.0\r\n              Server: tinyweb/1.0\r\n
    Content-length: 1532\r\n             <program output ...>
    Content-type: text/html\r\n
    \r\n
    <exactly 1532 file bytes>

    Error (only when enabled):

    HTTP/1.0 404 Not Found\r\n
    Server: tinyweb/1.0\r\n
    Content-length: 0\r\n
    \r\n

The dynamic head ends after the Server line. The program is expected to
print any headers of its own (such as Content-type) and the blank line.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from .status_codes import HTTPStatus


PROTOCOL_VERSION = "HTTP/1.0"
DEFAULT_SERVER_NAME = "tinyweb/1.0"


@dataclass
class ResponseHead:
    """
    Status line plus an ordered list of headers.

    Header order is preserved exactly as added.
    """
    status: HTTPStatus = HTTPStatus.OK
    headers: List[Tuple[str, str]] = field(default_factory=list)
    version: str = PROTOCOL_VERSION
    end_headers: bool = True

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.0 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self) -> bytes:
        """
        Serialize the head.

        If end_headers is True the blank separator line is appended;
        otherwise whatever comes next continues the header block.
        """
        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in self.headers)
        head = "\r\n".join(lines) + "\r\n"
        if self.end_headers:
            head += "\r\n"
        return head.encode("latin-1")


class ResponseBuilder:
    """
    Fluent builder for response heads.

        head = (ResponseBuilder("tinyweb/1.0")
            .status(HTTPStatus.OK)
            .header("Content-length", "42")
            .build())
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self._status = HTTPStatus.OK
        self._headers: List[Tuple[str, str]] = [("Server", server_name)]
        self._end_headers = True

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers.append((name, value))
        return self

    def open_headers(self) -> "ResponseBuilder":
        """Leave the header block open for someone else to finish."""
        self._end_headers = False
        return self

    def build(self) -> ResponseHead:
        return ResponseHead(
            status=self._status,
            headers=list(self._headers),
            end_headers=self._end_headers,
        )


def static_head(size: int, content_type: str, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
    """Head for a static file of size bytes."""
    return (ResponseBuilder(server_name)
        .header("Content-length", str(size))
        .header("Content-type", content_type)
        .build()
        .to_bytes())


def dynamic_head(server_name: str = DEFAULT_SERVER_NAME) -> bytes:
    """Head for program output: status line and Server, block left open."""
    return ResponseBuilder(server_name).open_headers().build().to_bytes()


def error_head(status: HTTPStatus, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
    """Bodiless error response."""
    return (ResponseBuilder(server_name)
        .status(status)
        .header("Content-length", "0")
        .build()
        .to_bytes())
