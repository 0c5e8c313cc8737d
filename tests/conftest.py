"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from typing import Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyweb import WebServer, ServerConfig
from tinyweb.core.connection import Connection
from tinyweb.log import reset_levels


INDEX_HTML = b"<html><body><h1>tinyweb</h1></body></html>\n"
GIF_BYTES = b"GIF89a\x01\x00\x01\x00\x80\x00\x00\xff\xff\xff\x00\x00\x00!\xf9\x04"
JPG_BYTES = bytes(range(256)) * 40
NOTES_TXT = b"plain text notes\n"

ADDER_SCRIPT = """#!/bin/sh
printf 'Content-type: text/plain\\r\\n\\r\\n'
printf 'args=%s\\n' "$QUERY_STRING"
printf 'method=%s\\n' "$REQUEST_METHOD"
"""

FAILING_SCRIPT = """#!/bin/sh
printf 'partial\\n'
exit 3
"""


@pytest.fixture(autouse=True)
def _reset_log_levels():
    """Log level masks are process-wide; start every test from the defaults."""
    reset_levels()
    yield
    reset_levels()


@pytest.fixture
def socket_pair() -> Generator[Tuple[socket.socket, socket.socket], None, None]:
    """(server side, client side) of a connected socket pair."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    for s in (server_side, client_side):
        try:
            s.close()
        except OSError:
            pass


@pytest.fixture
def connection(socket_pair) -> Connection:
    """Connection wrapping the server side of socket_pair."""
    server_side, _ = socket_pair
    return Connection(socket=server_side, address=("127.0.0.1", 40000), timeout=5.0)


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """
    A small document tree:

        pages/index.html   logo.gif   photo.jpg   notes.txt
        subdir/            cgi-bin/adder (755)   cgi-bin/fails (755)
        cgi-bin/noexec (644)
    """
    root = tmp_path / "www"
    (root / "pages").mkdir(parents=True)
    (root / "pages" / "index.html").write_bytes(INDEX_HTML)
    (root / "logo.gif").write_bytes(GIF_BYTES)
    (root / "photo.jpg").write_bytes(JPG_BYTES)
    (root / "notes.txt").write_bytes(NOTES_TXT)
    (root / "subdir").mkdir()

    cgi = root / "cgi-bin"
    cgi.mkdir()
    for name, body, mode in (
        ("adder", ADDER_SCRIPT, 0o755),
        ("fails", FAILING_SCRIPT, 0o755),
        ("noexec", ADDER_SCRIPT, 0o644),
    ):
        script = cgi / name
        script.write_text(body)
        os.chmod(script, mode)

    return root


@pytest.fixture
def config(doc_root: Path) -> ServerConfig:
    """Test server configuration serving doc_root."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        max_workers=2,
        timeout=5.0,
        poll_timeout=0.2,
        document_root=str(doc_root),
        script_root=str(doc_root),
        script_timeout=5.0,
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def send_request(port: int, raw: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes to 127.0.0.1:port and read until the server closes."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        if raw:
            s.sendall(raw)
        chunks = []
        while True:
            try:
                data = s.recv(65536)
            except ConnectionResetError:
                break
            if not data:
                break
            chunks.append(data)
    return b"".join(chunks)


def read_all(sock: socket.socket, timeout: float = 5.0) -> bytes:
    """Read from sock until EOF."""
    sock.settimeout(timeout)
    chunks = []
    while True:
        data = sock.recv(65536)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks)


class ServerThread:
    """WebServer running in a background thread."""

    def __init__(self, server: WebServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self.server.open()
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_listening(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A WebServer on an ephemeral port, stopped after the test."""
    server_thread = ServerThread(WebServer(config))
    server_thread.start()

    yield server_thread

    server_thread.stop()


@pytest.fixture
def recv_all():
    """read_all() as a fixture, for tests that talk to a socket pair."""
    return read_all


@pytest.fixture
def http_request():
    """send_request() as a fixture, for tests that talk to a running server."""
    return send_request
