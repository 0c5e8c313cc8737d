"""
Unit tests for response heads, status codes and MIME types.
"""

import pytest

from tinyweb.http.mime_types import get_mime_type
from tinyweb.http.response import (
    ResponseBuilder,
    ResponseHead,
    dynamic_head,
    error_head,
    static_head,
)
from tinyweb.http.status_codes import HTTPStatus


class TestResponseHead:
    """Tests for ResponseHead."""

    def test_status_line(self):
        head = ResponseHead(status=HTTPStatus.NOT_FOUND)
        assert head.status_line == "HTTP/1.0 404 Not Found"

    def test_headers_keep_order(self):
        head = ResponseHead(headers=[("B", "2"), ("A", "1")])
        assert head.to_bytes() == b"HTTP/1.0 200 OK\r\nB: 2\r\nA: 1\r\n\r\n"

    def test_open_header_block(self):
        head = ResponseHead(headers=[("Server", "x")], end_headers=False)
        assert head.to_bytes() == b"HTTP/1.0 200 OK\r\nServer: x\r\n"


class TestResponseBuilder:
    """Tests for ResponseBuilder."""

    def test_server_header_first(self):
        head = ResponseBuilder("test/0.1").header("X-One", "1").build()
        assert head.headers == [("Server", "test/0.1"), ("X-One", "1")]

    def test_method_chaining(self):
        head = (ResponseBuilder()
            .status(HTTPStatus.FORBIDDEN)
            .header("Content-length", "0")
            .build())

        assert head.status == HTTPStatus.FORBIDDEN
        assert head.end_headers is True


class TestHeads:
    """The three heads the server sends."""

    def test_static_head(self):
        head = static_head(1532, "text/html", "tinyweb/1.0")

        assert head == (
            b"HTTP/1.0 200 OK\r\n"
            b"Server: tinyweb/1.0\r\n"
            b"Content-length: 1532\r\n"
            b"Content-type: text/html\r\n"
            b"\r\n"
        )

    def test_dynamic_head_leaves_headers_open(self):
        assert dynamic_head("tinyweb/1.0") == (
            b"HTTP/1.0 200 OK\r\n"
            b"Server: tinyweb/1.0\r\n"
        )

    def test_error_head(self):
        assert error_head(HTTPStatus.NOT_IMPLEMENTED, "tinyweb/1.0") == (
            b"HTTP/1.0 501 Not Implemented\r\n"
            b"Server: tinyweb/1.0\r\n"
            b"Content-length: 0\r\n"
            b"\r\n"
        )


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.BAD_REQUEST.phrase == "Bad Request"
        assert HTTPStatus.FORBIDDEN.phrase == "Forbidden"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.NOT_IMPLEMENTED.phrase == "Not Implemented"

    def test_is_error(self):
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error

    def test_int_comparison(self):
        assert HTTPStatus(404) is HTTPStatus.NOT_FOUND
        assert HTTPStatus.OK == 200


class TestMimeTypes:
    """Tests for get_mime_type()."""

    @pytest.mark.parametrize("filename,expected", [
        ("www/pages/index.html", "text/html"),
        ("logo.gif", "image/gif"),
        ("photo.jpg", "image/jpeg"),
        ("notes.txt", "text/plain"),
        ("README", "text/plain"),
        ("archive.tar.gz", "text/plain"),
    ])
    def test_known_and_unknown_suffixes(self, filename, expected):
        assert get_mime_type(filename) == expected

    def test_suffix_match_is_case_sensitive(self):
        assert get_mime_type("PHOTO.JPG") == "text/plain"

    def test_only_final_suffix_counts(self):
        assert get_mime_type("page.html.txt") == "text/plain"

    def test_custom_default(self):
        assert get_mime_type("data.bin", default="application/octet-stream") == "application/octet-stream"
