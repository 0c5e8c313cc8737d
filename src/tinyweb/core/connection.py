"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps an accepted client socket with the small API a handler needs:
read one line, write bytes, expose the descriptor for a child process,
and close exactly once.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

This server speaks HTTP/1.0 style: one request, one response, then the
socket is closed. There is no keep-alive loop, so the lifecycle is short:

    NEW ──────► READING ──────► WRITING ──────► CLOSING ──────► CLOSED
     │             │                               ▲
     │             └───────────────────────────────┤   (rejected request)
     └─────────────────────────────────────────────┘   (client sent nothing)

=============================================================================
OWNERSHIP
=============================================================================

A Connection belongs to exactly one handler thread from the moment it is
dispatched. Nothing else reads from it, writes to it, or closes it. The
handler closes it in a finally block, and close() is idempotent so an
early close on an error path followed by the finally is still one close
of the underlying socket.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from .stream import LineReader, ReadResult, MAX_LINE, write_all


logger = logging.getLogger(__name__)


# Upper bound on discarding unread client input during close()
CLOSE_DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"              # Just accepted, nothing read yet
    READING = "reading"      # Reading the request line or headers
    WRITING = "writing"      # Sending the response
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier for log correlation.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_sent: Total bytes written through send().
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    _reader: Optional[LineReader] = field(default=None, repr=False)

    def __post_init__(self):
        # Blocking mode with a timeout so a stalled client cannot pin a
        # worker slot forever once we start reading.
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

        self._reader = LineReader(self.socket, self.buffer_size)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    def fileno(self) -> int:
        """Descriptor of the client socket (for redirecting a child's stdout)."""
        return self.socket.fileno()

    # =========================================================================
    # READING AND WRITING
    # =========================================================================

    def read_line(self, max_len: int = MAX_LINE) -> ReadResult:
        """Read one protocol line. See LineReader.read_line()."""
        self.state = ConnectionState.READING
        return self._reader.read_line(max_len)

    def send(self, data: bytes) -> bool:
        """
        Send all of data to the client.

        Returns:
            True if every byte was sent, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        if write_all(self.socket, data):
            self.bytes_sent += len(data)
            return True
        logger.warning(f"[{self.id}] Send failed")
        return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once.

        1. shutdown(SHUT_WR) sends FIN so the client sees end-of-response
        2. discard anything the client already sent that we never read,
           so the kernel does not answer with RST and clobber the response
           (for at most CLOSE_DRAIN_TIMEOUT seconds)
        3. close() releases the descriptor
        """
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Client already gone

        # A client that keeps sending must not hold the slot past the deadline
        deadline = time.monotonic() + CLOSE_DRAIN_TIMEOUT
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.info(f"[{self.id}] Client still sending, closing anyway")
                    break
                self.socket.settimeout(min(0.1, remaining))
                if not self.socket.recv(1024):
                    break
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.info(f"[{self.id}] Closed client connection after {self.age:.3f}s")
