"""
=============================================================================
ACCEPTOR: THE SERVICE LOOP
=============================================================================

Owns the listening socket. Waits for clients and hands each one to a
worker slot, and never accepts more than the pool can run.

=============================================================================
STATE MACHINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   INIT ──► LISTENING ──► WAIT_READABLE ◄───────────────────┐         │
    │     │                       │                               │         │
    │     │ bind/listen           ├── timeout / poll error ───────┤         │
    │     │ failed                │                               │         │
    │     ▼                       ├── pool saturated: drain() ────┤         │
    │  StartupError               │                               │         │
    │                             ▼                               │         │
    │                          ACCEPTING ── accept() failed ──────┤         │
    │                             │                               │         │
    │                             ▼                               │         │
    │                          DISPATCHING ───────────────────────┘         │
    │                                                                      │
    │   shutdown signal seen at the top of the loop:                       │
    │                                                                      │
    │          SHUTTING_DOWN ──► close socket, restore signals ──► CLOSED   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The poll on the listening socket wakes up every poll_timeout seconds
(unless accept_block is set), which is how the loop notices a shutdown
request. In-flight handlers are not interrupted; the server drains the
pool after the loop returns.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop, systemd) set a
ShutdownSignal token. The handler only sets the token; all real work
happens on the acceptor thread at the next loop boundary.

Python only lets the main thread install signal handlers, so when the
acceptor runs on any other thread (as it does in tests) the bridge is
skipped and shutdown is requested by calling shutdown() instead.

=============================================================================
"""

import socket
import signal
import logging
import threading
from enum import Enum
from typing import Callable, Iterable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection
from .dispatcher import WorkerPool
from .poller import PollStatus, wait_readable


logger = logging.getLogger(__name__)


DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class StartupError(Exception):
    """The listening socket could not be created, bound, or put in listen mode."""

    def __init__(self, message: str, address: Optional[Tuple[str, int]] = None):
        super().__init__(message)
        self.address = address


class AcceptorState(Enum):
    INIT = "init"
    LISTENING = "listening"
    WAIT_READABLE = "wait_readable"
    ACCEPTING = "accepting"
    DISPATCHING = "dispatching"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


class ShutdownSignal:
    """
    One-way shutdown flag.

    Starts clear, can be set any number of times, is never cleared.
    Safe to set from a signal handler or any thread.
    """

    def __init__(self):
        self._event = threading.Event()

    def set(self):
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until set. Returns False on timeout."""
        return self._event.wait(timeout)


def make_signal_handler(token: ShutdownSignal) -> Callable:
    """Signal handler that sets token. Callable directly as handler(signum, frame)."""

    def shutdown_handler(signum, frame):
        try:
            signal_name = signal.Signals(signum).name
        except ValueError:
            signal_name = str(signum)
        logger.info(f"Received {signal_name}, initiating shutdown...")
        token.set()

    return shutdown_handler


def install_signal_bridge(
    token: ShutdownSignal,
    signals: Iterable[int] = DEFAULT_SIGNALS,
) -> Callable[[], None]:
    """
    Route signals to token.

    Returns:
        A callable that restores the previous handlers. When not on the
        main thread nothing is installed and the callable does nothing.
    """
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not on the main thread, signal handlers not installed")
        return lambda: None

    handler = make_signal_handler(token)
    original_handlers = {}
    for sig in signals:
        original_handlers[sig] = signal.signal(sig, handler)

    def restore():
        for sig, previous in original_handlers.items():
            signal.signal(sig, previous)
        original_handlers.clear()

    return restore


class Acceptor:
    """
    Listening socket plus the accept loop.

    Usage:
        pool = WorkerPool(config.max_workers)
        acceptor = Acceptor(config, pool, handler.handle)
        acceptor.open()          # bind + listen, raises StartupError
        acceptor.serve()         # blocks until shutdown() or a signal
    """

    def __init__(
        self,
        config: ServerConfig,
        pool: WorkerPool,
        handler: Callable[[Connection], object],
        shutdown_signal: Optional[ShutdownSignal] = None,
    ):
        self.config = config
        self.pool = pool
        self.handler = handler
        self.shutdown_signal = shutdown_signal or ShutdownSignal()

        self._socket: Optional[socket.socket] = None
        self._state = AcceptorState.INIT
        self._listening = threading.Event()
        self._restore_signals: Callable[[], None] = lambda: None
        self._accepted = 0

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> AcceptorState:
        return self._state

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port). The real port when config.port is 0."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    @property
    def accepted(self) -> int:
        """Connections accepted so far."""
        return self._accepted

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        return self._listening.wait(timeout)

    # =========================================================================
    # STARTUP
    # =========================================================================

    def open(self):
        """
        Create, bind and listen. Idempotent once listening.

        Raises:
            StartupError: socket creation, bind or listen failed.
        """
        if self._socket is not None:
            return

        address = (self.config.host, self.config.port)
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            logger.error(f"Failed to create socket: {e}")
            raise StartupError(f"Failed to create socket: {e}", address) from e

        try:
            # Avoids "Address already in use" while the old socket is in TIME_WAIT
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(address)
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {address[0]}:{address[1]}: {e}")
            raise StartupError(
                f"Failed to listen on {address[0]}:{address[1]}: {e}", address
            ) from e

        # READY from the poll is followed by accept(); non-blocking so a
        # client that vanished in between cannot stall the loop
        sock.setblocking(False)

        self._socket = sock
        self._state = AcceptorState.LISTENING
        self._listening.set()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

    # =========================================================================
    # SERVICE LOOP
    # =========================================================================

    def serve(self):
        """
        Run the accept loop until shutdown is requested.

        Opens the socket first if open() has not been called. Always
        leaves the acceptor CLOSED.
        """
        self.open()
        self._restore_signals = install_signal_bridge(self.shutdown_signal)

        try:
            self._accept_loop()
        finally:
            self._state = AcceptorState.SHUTTING_DOWN
            self.close()

    def _accept_loop(self):
        while not self.shutdown_signal.is_set():
            self._state = AcceptorState.WAIT_READABLE

            status = wait_readable(
                self._socket,
                block=self.config.accept_block,
                timeout=self.config.poll_timeout,
            )

            if status == PollStatus.TIMEOUT:
                continue

            if status == PollStatus.ERROR:
                logger.error("Failed to select on the listening socket")
                # Back off instead of spinning on a persistent error
                self.shutdown_signal.wait(self.config.poll_timeout)
                continue

            if self.pool.is_saturated():
                self.pool.drain()
                continue

            self._state = AcceptorState.ACCEPTING
            try:
                client_socket, client_address = self._socket.accept()
            except OSError as e:
                logger.error(f"Accept error: {e}")
                continue

            self._accepted += 1
            self._state = AcceptorState.DISPATCHING
            self._dispatch(client_socket, client_address)

    def _dispatch(self, client_socket: socket.socket, client_address: tuple):
        conn = Connection(
            socket=client_socket,
            address=client_address,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
        )
        logger.info(
            f"[{conn.id}] Accepted connection from {conn.client_ip}:{conn.client_port}"
        )

        try:
            self.pool.dispatch(self.handler, conn)
        except RuntimeError as e:
            # PoolSaturatedError, or the slot thread could not be started
            # The handler never ran, so the connection is still ours
            logger.error(f"[{conn.id}] Could not dispatch connection: {e}")
            conn.close()

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """Request shutdown. Takes effect at the next loop boundary."""
        logger.info("Shutting down acceptor...")
        self.shutdown_signal.set()

    def close(self):
        """Close the listening socket and restore signal handlers. Idempotent."""
        if self._state == AcceptorState.CLOSED:
            return

        self._restore_signals()
        self._restore_signals = lambda: None

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._state = AcceptorState.CLOSED
        self._listening.clear()
        logger.info("Acceptor stopped")
