"""
=============================================================================
WEB SERVER
=============================================================================

Ties the pieces together: one Acceptor, one WorkerPool, one shared
ConnectionHandler.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │    WebServer    │                          │
    │                        │  (Orchestrator) │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            │                    │                    │              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐     │
    │    │   Acceptor   │    │  WorkerPool  │    │ConnectionHandler │     │
    │    │ (Networking) │──► │ (N slots)    │──► │ (one request)    │     │
    │    └──────────────┘    └──────────────┘    └──────────────────┘     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. CLIENT CONNECTS
       └── Acceptor polls, accepts, wraps the socket in a Connection

    2. DISPATCH
       └── WorkerPool runs the handler in a free slot
           (or the acceptor drains the pool first if every slot is busy)

    3. READ + PARSE (slot thread)
       └── Request line, HTTP/1.1 headers, target resolution

    4. SERVE
       └── Static file bytes, or a program's stdout on the socket

    5. CLOSE
       └── One request per connection, always closed by the handler

=============================================================================
SHUTDOWN
=============================================================================

    Ctrl+C / SIGTERM / shutdown()
        └── ShutdownSignal set
            └── Acceptor leaves its loop, closes the listening socket
                └── WebServer drains the pool (in-flight requests finish)

=============================================================================
"""

import logging
import threading
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Acceptor, ShutdownSignal, WorkerPool
from .handlers import ConnectionHandler, ProcessSpawner


logger = logging.getLogger(__name__)


class WebServer:
    """
    Bounded-concurrency static and dynamic content server.

    =========================================================================
    USAGE
    =========================================================================

        config = ServerConfig(port=8080, document_root="www")
        server = WebServer(config)
        server.run()              # blocks until Ctrl+C

        # Or from another thread (tests):
        thread = threading.Thread(target=server.run)
        thread.start()
        server.wait_until_listening(5)
        ...
        server.shutdown()
        thread.join()

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        spawner: Optional[ProcessSpawner] = None,
    ):
        """
        Args:
            config: Server configuration. Defaults if not provided.
            spawner: Process spawner for dynamic content.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self.shutdown_signal = ShutdownSignal()
        self.pool = WorkerPool(self.config.max_workers)
        self.handler = ConnectionHandler(self.config, spawner)
        self.acceptor = Acceptor(
            self.config,
            self.pool,
            self.handler.handle,
            self.shutdown_signal,
        )

        self._running = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port) once listening."""
        return self.acceptor.address

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        return self.acceptor.wait_until_listening(timeout)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def open(self):
        """
        Bind and listen without entering the loop.

        Raises:
            StartupError: The listening socket could not be set up.
        """
        self.acceptor.open()

    def run(self):
        """
        Serve until shutdown (blocking).

        Raises:
            StartupError: The listening socket could not be set up.
        """
        self.open()
        self._running.set()

        host, port = self.address
        logger.info(
            f"Serving {self.config.document_root} on {host}:{port} "
            f"with {self.config.max_workers} worker slots"
        )

        try:
            self.acceptor.serve()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Request shutdown. run() returns once in-flight requests finish."""
        self.acceptor.shutdown()

    def _shutdown(self):
        """
        Graceful shutdown.

        1. Acceptor has stopped and closed the listening socket
        2. Wait for in-flight handlers to finish
        """
        logger.info("Shutting down server...")
        self.acceptor.close()
        self.pool.drain()
        self._running.clear()

        stats = self.pool.stats["handlers"]
        logger.info(
            f"Server stopped ({stats['completed']} requests completed, "
            f"{stats['failed']} failed)"
        )
