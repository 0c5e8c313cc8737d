"""
Unit tests for line reading and full writes.
"""

import socket

import pytest

from tinyweb.core.stream import LineReader, ReadStatus, write_all


class ScriptedSocket:
    """Returns pre-arranged recv() chunks, then EOF."""

    def __init__(self, chunks, error=None):
        self.chunks = list(chunks)
        self.error = error
        self.recv_calls = 0

    def recv(self, n):
        self.recv_calls += 1
        if self.chunks:
            return self.chunks.pop(0)
        if self.error:
            raise self.error
        return b""


class ShortSendSocket:
    """Accepts at most `limit` bytes per send()."""

    def __init__(self, limit, zero_after=None):
        self.limit = limit
        self.zero_after = zero_after
        self.sent = bytearray()
        self.calls = 0

    def send(self, data):
        self.calls += 1
        if self.zero_after is not None and self.calls > self.zero_after:
            return 0
        chunk = bytes(data[:self.limit])
        self.sent.extend(chunk)
        return len(chunk)


class TestLineReader:
    """Tests for LineReader.read_line()."""

    def test_reads_one_line(self):
        reader = LineReader(ScriptedSocket([b"GET / HTTP/1.0\r\n"]))
        result = reader.read_line()

        assert result.status == ReadStatus.LINE
        assert result.line == "GET / HTTP/1.0\r\n"
        assert result.ok

    def test_reassembles_short_reads(self):
        sock = ScriptedSocket([b"GE", b"T /ind", b"ex.html HT", b"TP/1.0\r", b"\n"])
        result = LineReader(sock).read_line()

        assert result.line == "GET /index.html HTTP/1.0\r\n"
        assert sock.recv_calls == 5

    def test_keeps_bytes_after_newline_for_next_call(self):
        reader = LineReader(ScriptedSocket([b"first\r\nsecond\r\n"]))

        assert reader.read_line().line == "first\r\n"
        assert reader.buffered == len(b"second\r\n")
        assert reader.read_line().line == "second\r\n"

    def test_crlf_alone_is_end_of_headers(self):
        reader = LineReader(ScriptedSocket([b"Host: x\r\n\r\n"]))

        assert reader.read_line().status == ReadStatus.LINE
        result = reader.read_line()
        assert result.status == ReadStatus.END_OF_HEADERS
        assert not result.ok

    def test_bare_newline_is_end_of_headers(self):
        result = LineReader(ScriptedSocket([b"\n"])).read_line()
        assert result.status == ReadStatus.END_OF_HEADERS

    def test_peer_closed_before_any_byte_is_no_data(self):
        result = LineReader(ScriptedSocket([])).read_line()

        assert result.status == ReadStatus.NO_DATA
        assert result.line == ""

    def test_peer_closed_mid_line_returns_partial_line(self):
        result = LineReader(ScriptedSocket([b"GET /part"])).read_line()

        assert result.status == ReadStatus.LINE
        assert result.line == "GET /part"

    def test_recv_error_is_error(self):
        sock = ScriptedSocket([], error=ConnectionResetError("reset"))
        assert LineReader(sock).read_line().status == ReadStatus.ERROR

    def test_timeout_is_error(self):
        sock = ScriptedSocket([b"GET"], error=socket.timeout("timed out"))
        assert LineReader(sock).read_line().status == ReadStatus.ERROR

    def test_long_line_is_split_at_max_len(self):
        reader = LineReader(ScriptedSocket([b"a" * 25 + b"\r\n"]))

        first = reader.read_line(max_len=10)
        assert first.line == "a" * 10
        assert reader.read_line(max_len=10).line == "a" * 10
        assert reader.read_line(max_len=10).line == "aaaaa\r\n"

    def test_invalid_max_len(self):
        with pytest.raises(ValueError):
            LineReader(ScriptedSocket([])).read_line(max_len=0)

    def test_over_real_socket(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"GET / HTTP/1.1\r\nHost: a\r\n\r\n")
        client_side.shutdown(socket.SHUT_WR)

        reader = LineReader(server_side, buffer_size=4)
        statuses = [reader.read_line().status for _ in range(4)]

        assert statuses == [
            ReadStatus.LINE,
            ReadStatus.LINE,
            ReadStatus.END_OF_HEADERS,
            ReadStatus.NO_DATA,
        ]


class TestWriteAll:
    """Tests for write_all()."""

    def test_retries_short_writes(self):
        sock = ShortSendSocket(limit=3)
        data = b"HTTP/1.0 200 OK\r\n"

        assert write_all(sock, data) is True
        assert bytes(sock.sent) == data
        assert sock.calls == 6

    def test_zero_byte_send_fails(self):
        sock = ShortSendSocket(limit=2, zero_after=1)
        assert write_all(sock, b"abcdef") is False

    def test_send_error_fails(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.close()
        server_side.settimeout(1.0)

        # First send may land in the buffer; keep writing until the
        # broken pipe shows up
        results = [write_all(server_side, b"x" * 65536) for _ in range(20)]
        assert False in results

    def test_empty_data(self):
        sock = ShortSendSocket(limit=1)
        assert write_all(sock, b"") is True
        assert sock.calls == 0
