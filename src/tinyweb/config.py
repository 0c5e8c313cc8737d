"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m tinyweb 8080 --root ./www                       │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── TINYWEB_PORT=3000 python -m tinyweb                       │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The worker capacity is fixed for the life of the process. There is no
autoscaling: when all slots are busy the acceptor waits for them to
drain.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


@dataclass
class ServerConfig:
    """
    Configuration for the server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    CONCURRENCY
    - max_workers, poll_timeout, accept_block, client_block

    PROTOCOL LIMITS
    - max_line, max_header_lines

    CONTENT
    - document_root, index_file, script_marker, script_root, script_timeout

    RESPONSES
    - send_error_status, server_name

    LOGGING
    - verbose, log_file

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """Port to listen on. 0 asks the OS for a free port."""

    backlog: int = 128
    """Connections the kernel queues while the worker pool is draining."""

    buffer_size: int = 8192
    """recv() chunk size for the line reader."""

    timeout: Optional[float] = 30.0
    """Socket timeout for client reads and writes. None = no timeout."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 5
    """Number of handler slots. At most this many requests run at once."""

    poll_timeout: float = 2.0
    """Seconds a readiness poll waits when not blocking indefinitely."""

    accept_block: bool = False
    """
    Block indefinitely when polling the listening socket.
    False keeps the acceptor waking every poll_timeout seconds so it
    notices a shutdown request promptly.
    """

    client_block: bool = False
    """
    Block indefinitely waiting for a new client's request line.
    False drops clients that send nothing within poll_timeout.
    """

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_line: int = 1000
    """Longest request or header line read in one piece."""

    max_header_lines: int = 10
    """Header lines consumed (and ignored) for HTTP/1.1 requests."""

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "."
    """Directory static targets are served from."""

    index_file: str = "pages/index.html"
    """Resource served for targets ending in "/", relative to document_root."""

    script_marker: str = "cgi-bin"
    """Targets containing this text are run as executables."""

    script_root: str = "."
    """Directory executable targets are resolved against."""

    script_timeout: Optional[float] = None
    """Kill a dynamic-content process after this many seconds. None = wait."""

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSES
    # ─────────────────────────────────────────────────────────────────────

    send_error_status: bool = False
    """
    Send a 4xx/5xx status line before closing a rejected request.
    Off by default: rejected requests are closed without a response.
    """

    server_name: str = "tinyweb/1.0"
    """Value of the Server header."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    verbose: bool = False
    """Enable informational log messages."""

    log_file: Optional[str] = None
    """Write log messages to this file instead of stderr."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TINYWEB_HOST           Bind address (default: 0.0.0.0)
        TINYWEB_PORT           Port (default: 8080)
        TINYWEB_WORKERS        Handler slots (default: 5)
        TINYWEB_TIMEOUT        Client socket timeout in seconds (default: 30)
        TINYWEB_ROOT           Document root (default: .)
        TINYWEB_SCRIPT_ROOT    Executable root (default: .)
        TINYWEB_SCRIPT_TIMEOUT Dynamic content timeout (default: none)
        TINYWEB_ERROR_STATUS   Send error status lines (default: false)
        TINYWEB_VERBOSE        Informational logging (default: false)
        TINYWEB_LOG_FILE       Log file path (default: stderr)

        =====================================================================
        """
        return cls(
            host=os.getenv("TINYWEB_HOST", "0.0.0.0"),
            port=int(os.getenv("TINYWEB_PORT", "8080")),
            max_workers=int(os.getenv("TINYWEB_WORKERS", "5")),
            timeout=_env_float("TINYWEB_TIMEOUT", 30.0),
            document_root=os.getenv("TINYWEB_ROOT", "."),
            script_root=os.getenv("TINYWEB_SCRIPT_ROOT", "."),
            script_timeout=_env_float("TINYWEB_SCRIPT_TIMEOUT", None),
            send_error_status=_env_bool("TINYWEB_ERROR_STATUS", False),
            verbose=_env_bool("TINYWEB_VERBOSE", False),
            log_file=os.getenv("TINYWEB_LOG_FILE") or None,
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises ValueError at startup rather than failing on the first
        request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.poll_timeout <= 0:
            raise ValueError("poll_timeout must be > 0")

        if self.max_line < 2:
            raise ValueError("max_line must be >= 2")

        if self.max_header_lines < 0:
            raise ValueError("max_header_lines must be >= 0")

        if not self.script_marker:
            raise ValueError("script_marker must not be empty")

        if self.script_timeout is not None and self.script_timeout <= 0:
            raise ValueError("script_timeout must be > 0")
