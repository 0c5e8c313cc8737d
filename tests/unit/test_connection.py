"""
Unit tests for the Connection wrapper.
"""

import threading
import time

from tinyweb.core.connection import CLOSE_DRAIN_TIMEOUT, Connection, ConnectionState
from tinyweb.core.stream import ReadStatus


class CountingSocket:
    """Proxy that counts close() calls on a real socket."""

    def __init__(self, sock):
        self._sock = sock
        self.close_calls = 0

    def close(self):
        self.close_calls += 1
        self._sock.close()

    def __getattr__(self, name):
        return getattr(self._sock, name)


def test_read_line_and_send(connection, socket_pair, recv_all):
    _, client_side = socket_pair
    client_side.sendall(b"GET / HTTP/1.0\r\n")

    result = connection.read_line()
    assert result.status == ReadStatus.LINE
    assert connection.state == ConnectionState.READING

    assert connection.send(b"HTTP/1.0 200 OK\r\n")
    assert connection.bytes_sent == 17
    assert connection.state == ConnectionState.WRITING

    connection.close()
    assert recv_all(client_side) == b"HTTP/1.0 200 OK\r\n"


def test_close_is_idempotent(socket_pair, recv_all):
    server_side, client_side = socket_pair
    counting = CountingSocket(server_side)
    conn = Connection(socket=counting, address=("127.0.0.1", 1), timeout=5.0)

    conn.close()
    conn.close()

    assert conn.closed
    assert counting.close_calls == 1
    assert recv_all(client_side) == b""


def test_close_discards_unread_request_bytes(connection, socket_pair, recv_all):
    _, client_side = socket_pair
    client_side.sendall(b"POST / HTTP/1.0\r\nbody that is never read")

    connection.send(b"bye")
    connection.close()

    assert recv_all(client_side) == b"bye"


def test_send_after_peer_closed(connection, socket_pair):
    _, client_side = socket_pair
    client_side.close()

    assert connection.send(b"x" * 1024) is False


def test_client_address_properties(connection):
    assert connection.client_ip == "127.0.0.1"
    assert connection.client_port == 40000
    assert connection.fileno() >= 0
    assert len(connection.id) == 8


def test_close_returns_while_client_keeps_sending(connection, socket_pair):
    _, client_side = socket_pair
    stop = threading.Event()

    def flood():
        try:
            client_side.sendall(b"POST / HTTP/1.0\r\n")
            while not stop.is_set():
                client_side.sendall(b"x" * 512)
                time.sleep(0.02)
        except OSError:
            pass

    sender = threading.Thread(target=flood, daemon=True)
    sender.start()
    time.sleep(0.1)

    start = time.monotonic()
    connection.close()
    elapsed = time.monotonic() - start

    stop.set()
    sender.join(5.0)

    assert connection.closed
    assert elapsed < CLOSE_DRAIN_TIMEOUT + 1.0
