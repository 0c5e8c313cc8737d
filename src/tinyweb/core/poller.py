"""
=============================================================================
READINESS POLLER
=============================================================================

Blocks until a socket has something to read, or until a timeout expires.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      wait_readable()                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Listening socket:  readable = a client is waiting in accept()     │
    │   Client socket:     readable = request bytes (or EOF) arrived      │
    │                                                                      │
    │   block=True   → wait forever                                       │
    │   block=False  → wait at most `timeout` seconds (2 by default)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each call builds its own selector, so the acceptor thread and every
handler thread can poll at the same time without sharing state. The
poller only asks "is there data?"; it never reads any.

We use the selectors module rather than raw select.select() because
DefaultSelector picks epoll/kqueue where available and has no 1024
descriptor ceiling.

=============================================================================
"""

import socket
import logging
import selectors
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


# Seconds to wait when not blocking indefinitely
POLL_TIMEOUT = 2.0


class PollStatus(Enum):
    """Result of a readiness wait."""
    READY = "ready"
    TIMEOUT = "timeout"
    ERROR = "error"

    @property
    def ok(self) -> bool:
        return self is PollStatus.READY


def wait_readable(
    sock: socket.socket,
    block: bool = False,
    timeout: Optional[float] = POLL_TIMEOUT,
) -> PollStatus:
    """
    Wait until sock is readable.

    Args:
        sock: Listening or connected socket.
        block: Wait indefinitely if True.
        timeout: Upper bound in seconds when block is False.

    Returns:
        READY if readable, TIMEOUT if the wait elapsed, ERROR if the
        wait itself failed (closed or invalid descriptor).
    """
    wait_for = None if block else timeout

    try:
        with selectors.DefaultSelector() as selector:
            selector.register(sock, selectors.EVENT_READ)
            events = selector.select(timeout=wait_for)
    except (OSError, ValueError) as e:
        # ValueError: fileno() is -1 because the socket was closed
        logger.error(f"Failed to poll socket: {e}")
        return PollStatus.ERROR

    if not events:
        logger.debug(f"No data within {wait_for}s")
        return PollStatus.TIMEOUT

    logger.debug("Socket is readable")
    return PollStatus.READY
