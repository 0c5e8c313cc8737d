"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

The small slice of HTTP this server speaks: one request line in, one
HTTP/1.0 response out.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST (request.py)                                                 │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Splits "GET /target HTTP/1.x" into tokens and resolves the target    │
    │ to a static filename or an executable plus argument string.          │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE (response.py, status_codes.py)                              │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Builds the status line and headers. Bodies are streamed separately.  │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ MIME TYPES (mime_types.py)                                           │
    │ ─────────────────────────────────────────────────────────────────── │
    │ .html → text/html, .gif → image/gif, .jpg → image/jpeg,              │
    │ anything else → text/plain                                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import (
    ContentKind,
    Request,
    RequestError,
    RequestLine,
    Resolution,
    TargetResolver,
    build_request,
    is_supported_method,
    parse_request_line,
)
from .response import (
    ResponseBuilder,
    ResponseHead,
    dynamic_head,
    error_head,
    static_head,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type

# Public API - what you get when you do:
# from tinyweb.http import *
__all__ = [
    # Request parsing
    "ContentKind",
    "Request",
    "RequestError",
    "RequestLine",
    "Resolution",
    "TargetResolver",
    "build_request",
    "is_supported_method",
    "parse_request_line",

    # Response heads
    "ResponseBuilder",
    "ResponseHead",
    "dynamic_head",
    "error_head",
    "static_head",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
]
