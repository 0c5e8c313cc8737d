"""
=============================================================================
TINYWEB - Bounded-Concurrency Web Server
=============================================================================

A small web server on raw sockets. It serves files from a document tree
and the output of executables, with at most N requests in flight.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tinyweb/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m tinyweb PORT)
    ├── server.py            # WebServer orchestrator
    ├── config.py            # ServerConfig dataclass
    ├── log.py               # Bitmask log levels over stdlib logging
    ├── core/                # Networking plumbing
    │   ├── acceptor.py      # Listening socket, accept loop, signals
    │   ├── dispatcher.py    # WorkerPool: N slots, drain on saturation
    │   ├── connection.py    # Client socket wrapper
    │   ├── poller.py        # Readiness wait with timeout
    │   └── stream.py        # Line reader and full writes
    ├── http/                # Protocol pieces
    │   ├── request.py       # Request line parsing, target resolution
    │   ├── response.py      # Status line and header builders
    │   ├── status_codes.py  # HTTPStatus enum
    │   └── mime_types.py    # Suffix → Content-type
    └── handlers/            # What runs in a worker slot
        ├── connection.py    # Per-connection state machine
        ├── static.py        # File serving
        └── dynamic.py       # Executable output

=============================================================================
QUICK START
=============================================================================

    from tinyweb import WebServer, ServerConfig

    server = WebServer(ServerConfig(port=8080, document_root="www"))
    server.run()

    $ curl http://localhost:8080/
    $ curl "http://localhost:8080/cgi-bin/adder?15000&213"

=============================================================================
"""

__version__ = "1.0.0"

from .server import WebServer
from .config import ServerConfig

__all__ = ["WebServer", "ServerConfig", "__version__"]
