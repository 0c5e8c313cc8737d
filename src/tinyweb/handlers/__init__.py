"""
=============================================================================
HANDLERS MODULE
=============================================================================

What runs inside a worker slot.

    connection.py   ConnectionHandler: request line → validate → serve → close
    static.py       serve_static: head + file bytes
    dynamic.py      serve_dynamic: head, then a child process writes the rest

=============================================================================
USAGE
=============================================================================

    from tinyweb.handlers import ConnectionHandler

    handler = ConnectionHandler(config)
    pool.dispatch(handler.handle, conn)

=============================================================================
"""

from .connection import ConnectionHandler, HandlerOutcome, HandlerState
from .dynamic import ProcessHandle, ProcessSpawner, serve_dynamic
from .static import is_within_root, serve_static

__all__ = [
    "ConnectionHandler",
    "HandlerOutcome",
    "HandlerState",
    "ProcessHandle",
    "ProcessSpawner",
    "is_within_root",
    "serve_dynamic",
    "serve_static",
]
