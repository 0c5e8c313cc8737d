"""
=============================================================================
REQUEST LINE PARSER AND TARGET RESOLVER
=============================================================================

Turns the first line a client sends into a Request the handler can act on.

=============================================================================
REQUEST LINE ANATOMY
=============================================================================

    GET /cgi-bin/adder?15000&213 HTTP/1.0\r\n
    ─┬─ ────────────┬──────────── ───┬────
     │              │                │
   Method        Target           Version
                    │
         ┌──────────┴──────────┐
         │                     │
    Executable path        Arguments
    /cgi-bin/adder         15000&213

Only three whitespace-separated tokens are looked at. Anything after the
third token is ignored; missing tokens come back as empty strings rather
than raising, and the handler rejects what it cannot serve.

=============================================================================
STATIC OR DYNAMIC?
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    TARGET CLASSIFICATION                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Target contains "cgi-bin"?                                        │
    │       │                                                              │
    │       ├── Yes → DYNAMIC                                             │
    │       │         filename = part before "?"  (/cgi-bin/adder)        │
    │       │         args     = part after "?"   (15000&213)             │
    │       │                                                              │
    │       └── No  → STATIC                                              │
    │                 filename = document_root + target                    │
    │                 target ends in "/" → append index_file               │
    │                 args     = ""                                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    resolve("/")                 → STATIC   www/pages/index.html
    resolve("/index.html")       → STATIC   www/index.html
    resolve("/cgi-bin/foo?x=1")  → DYNAMIC  /cgi-bin/foo  args "x=1"

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
import logging


logger = logging.getLogger(__name__)


SUPPORTED_METHODS = frozenset({"GET"})

DEFAULT_INDEX = "pages/index.html"
DEFAULT_SCRIPT_MARKER = "cgi-bin"


class RequestError(Exception):
    """
    Raised when a request cannot be served.

    Carries the HTTP status code that describes the failure, so the
    handler can decide whether to report it to the client:

        403 Forbidden        - Not a regular file, or missing permission
        404 Not Found        - Target does not exist
        501 Not Implemented  - Method other than GET
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class ContentKind(Enum):
    """How a target is served."""
    STATIC = "static"
    DYNAMIC = "dynamic"


@dataclass(frozen=True)
class RequestLine:
    """The three tokens of a request line."""
    method: str = ""
    target: str = ""
    version: str = ""

    @property
    def wants_headers_read(self) -> bool:
        """HTTP/1.1 clients send header lines we have to consume."""
        return self.version == "HTTP/1.1"


@dataclass(frozen=True)
class Resolution:
    """Where a target lives and how to serve it."""
    filename: str
    args: str
    kind: ContentKind

    @property
    def is_static(self) -> bool:
        return self.kind == ContentKind.STATIC


@dataclass(frozen=True)
class Request:
    """
    A parsed request. Immutable once built.

    Attributes:
        method: Request method as sent ("GET").
        target: Raw target ("/cgi-bin/foo?x=1").
        version: Protocol version ("HTTP/1.0" or "HTTP/1.1").
        filename: Resolved filename (see TargetResolver).
        args: Argument string for dynamic content, "" otherwise.
        kind: STATIC or DYNAMIC.
    """
    method: str
    target: str
    version: str
    filename: str
    args: str
    kind: ContentKind

    @property
    def is_static(self) -> bool:
        return self.kind == ContentKind.STATIC


def parse_request_line(raw: str) -> RequestLine:
    """
    Split a request line into method, target and version.

    Args:
        raw: The decoded first line, with or without its CRLF.

    Returns:
        RequestLine. Missing tokens are empty strings.

    Example:
        >>> parse_request_line("GET / HTTP/1.0\\r\\n")
        RequestLine(method='GET', target='/', version='HTTP/1.0')
    """
    tokens = raw.split()
    tokens += [""] * (3 - len(tokens))
    return RequestLine(method=tokens[0], target=tokens[1], version=tokens[2])


def is_supported_method(method: str) -> bool:
    """Only GET is served (compared case-insensitively)."""
    return method.upper() in SUPPORTED_METHODS


class TargetResolver:
    """
    Maps request targets to filenames.

    Usage:
        resolver = TargetResolver(document_root="www")
        resolution = resolver.resolve("/")
        # Resolution(filename='www/pages/index.html', args='', kind=STATIC)
    """

    def __init__(
        self,
        document_root: str = ".",
        index_file: str = DEFAULT_INDEX,
        script_marker: str = DEFAULT_SCRIPT_MARKER,
    ):
        # "www/" + "/index.html" would give a double slash
        self.document_root = document_root.rstrip("/") or "/"
        self.index_file = index_file.lstrip("/")
        self.script_marker = script_marker

    def is_dynamic(self, target: str) -> bool:
        return self.script_marker in target

    def resolve(self, target: str) -> Resolution:
        """
        Classify a target and work out its filename.

        Args:
            target: Target token from the request line.

        Returns:
            Resolution with filename, argument string and kind.
        """
        if self.is_dynamic(target):
            path, _, args = target.partition("?")
            return Resolution(filename=path, args=args, kind=ContentKind.DYNAMIC)

        if self.document_root == "/":
            filename = target
        else:
            filename = self.document_root + target

        if target.endswith("/"):
            filename += self.index_file

        logger.info(f"Filename = {filename}")
        return Resolution(filename=filename, args="", kind=ContentKind.STATIC)


def build_request(line: RequestLine, resolver: TargetResolver) -> Request:
    """Resolve a parsed request line into a full Request."""
    resolution = resolver.resolve(line.target)
    return Request(
        method=line.method,
        target=line.target,
        version=line.version,
        filename=resolution.filename,
        args=resolution.args,
        kind=resolution.kind,
    )
