"""
=============================================================================
BYTE-STREAM I/O
=============================================================================

Two primitives sit underneath every connection handler:

    read_line()   Pull one protocol line off the socket
    write_all()   Push an exact number of bytes onto the socket

=============================================================================
WHY A LINE READER?
=============================================================================

TCP is a byte stream. A request line such as

    GET /index.html HTTP/1.1\r\n

may arrive in one recv() or in five. The reader keeps a buffer between
calls and only hands back a line once it has seen the newline (or hit the
caller's length limit).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     read_line() RESULTS                             │
    ├──────────────────┬──────────────────────────────────────────────────┤
    │  LINE            │ A normal line, terminator included               │
    │  END_OF_HEADERS  │ The line was just "\r\n" - header block is over  │
    │  NO_DATA         │ Peer closed before sending a single byte         │
    │  ERROR           │ recv() failed (reset, timeout, closed socket)    │
    └──────────────────┴──────────────────────────────────────────────────┘

A typed result replaces integer return codes, so callers branch on
ReadStatus members instead of remembering what -1 and -2 meant.

=============================================================================
WHY write_all()?
=============================================================================

send() may accept fewer bytes than you gave it when the kernel buffer is
full. write_all() loops until everything is out, and reports failure if
the peer goes away part way through.

=============================================================================
"""

import socket
import logging
from enum import Enum
from dataclasses import dataclass


logger = logging.getLogger(__name__)


# Longest request line we accept before handing back what we have
MAX_LINE = 1000


class ReadStatus(Enum):
    """Outcome of a single read_line() call."""
    LINE = "line"
    NO_DATA = "no_data"
    END_OF_HEADERS = "end_of_headers"
    ERROR = "error"


@dataclass(frozen=True)
class ReadResult:
    """
    A line read from the socket.

    Attributes:
        status: What kind of result this is.
        line: Decoded line (terminator included). Empty for NO_DATA/ERROR.
    """
    status: ReadStatus
    line: str = ""

    @property
    def ok(self) -> bool:
        """True for an ordinary line."""
        return self.status == ReadStatus.LINE


class LineReader:
    """
    Buffered line reader over a connected socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       read_line() Flow                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   while no "\n" in buffer and len(buffer) < max_len:                │
    │       chunk = recv(buffer_size)                                     │
    │       ├── raises        → ERROR                                     │
    │       ├── b"" + empty   → NO_DATA                                   │
    │       ├── b"" + partial → return partial line                       │
    │       └── else          → buffer += chunk                           │
    │                                                                      │
    │   cut one line off the front of the buffer                          │
    │   "\r\n" alone → END_OF_HEADERS, otherwise LINE                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Bytes after the newline stay in the buffer for the next call.
    """

    def __init__(self, sock: socket.socket, buffer_size: int = 8192):
        self.sock = sock
        self.buffer_size = buffer_size
        self._buffer = b""

    @property
    def buffered(self) -> int:
        """Number of bytes read from the socket but not yet returned."""
        return len(self._buffer)

    def read_line(self, max_len: int = MAX_LINE) -> ReadResult:
        """
        Read one line from the socket.

        Args:
            max_len: Maximum number of bytes to return. A longer line is
                     split; the remainder comes back on the next call.

        Returns:
            ReadResult describing what was read.
        """
        if max_len < 1:
            raise ValueError("max_len must be >= 1")

        while b"\n" not in self._buffer and len(self._buffer) < max_len:
            try:
                chunk = self.sock.recv(self.buffer_size)
            except (socket.timeout, OSError) as e:
                logger.error(f"Failed to read from socket: {e}")
                return ReadResult(ReadStatus.ERROR)

            if not chunk:
                if not self._buffer:
                    logger.info("No data read")
                    return ReadResult(ReadStatus.NO_DATA)
                # Peer closed mid-line, hand back what we have
                break

            self._buffer += chunk

        # ─────────────────────────────────────────────────────────────────
        # CUT ONE LINE OFF THE BUFFER
        # ─────────────────────────────────────────────────────────────────
        newline = self._buffer.find(b"\n", 0, max_len)
        end = newline + 1 if newline != -1 else min(len(self._buffer), max_len)
        raw, self._buffer = self._buffer[:end], self._buffer[end:]

        line = raw.decode("latin-1")

        if raw in (b"\r\n", b"\n"):
            return ReadResult(ReadStatus.END_OF_HEADERS, line)

        logger.debug(f"Successfully read [{len(raw)}] bytes")
        return ReadResult(ReadStatus.LINE, line)


def write_all(sock: socket.socket, data: bytes) -> bool:
    """
    Send every byte of data, retrying on short writes.

    Args:
        sock: Connected socket.
        data: Bytes to send.

    Returns:
        True only if all bytes were transmitted.
    """
    view = memoryview(data)
    sent_total = 0

    while sent_total < len(data):
        try:
            sent = sock.send(view[sent_total:])
        except (socket.timeout, OSError) as e:
            logger.error(f"Send failed: {e}")
            return False

        if sent == 0:
            # Orderly close from the peer side
            logger.error("Client socket closed on send")
            return False

        sent_total += sent

    logger.debug(f"Successfully sent [{sent_total}] bytes")
    return True
