"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the request handlers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           ACCEPTOR                                   │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Binds and listens on the TCP socket                              │
    │  • Polls for incoming clients, accepts, wraps in a Connection       │
    │  • Drains the pool instead of accepting when every slot is busy     │
    │  • Stops on SIGINT/SIGTERM via a ShutdownSignal token               │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ dispatch(handler, conn)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                         WORKER POOL                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • N slots, one handler thread per occupied slot                    │
    │  • No internal queue: the kernel backlog holds waiting clients      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                 CONNECTION / STREAM / POLLER                         │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Connection: owned socket, closed exactly once                    │
    │  • LineReader / write_all: line-oriented reads, full writes         │
    │  • wait_readable: bounded readiness wait                            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .acceptor import (
    Acceptor,
    AcceptorState,
    ShutdownSignal,
    StartupError,
    install_signal_bridge,
    make_signal_handler,
)
from .connection import Connection, ConnectionState
from .dispatcher import PoolSaturatedError, WorkerPool, WorkerSlot
from .poller import PollStatus, wait_readable
from .stream import LineReader, ReadResult, ReadStatus, write_all

__all__ = [
    "Acceptor",             # Listening socket and accept loop
    "AcceptorState",
    "ShutdownSignal",       # One-way shutdown token
    "StartupError",
    "install_signal_bridge",
    "make_signal_handler",
    "Connection",           # Client socket wrapper
    "ConnectionState",
    "PoolSaturatedError",
    "WorkerPool",           # Bounded worker slots
    "WorkerSlot",
    "PollStatus",
    "wait_readable",
    "LineReader",
    "ReadResult",
    "ReadStatus",
    "write_all",
]
