"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Runs one client connection from first byte to close, inside a worker slot.

=============================================================================
STATE MACHINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    NEW                                                               │
    │     │                                                                │
    │     ▼                                                                │
    │    READ_LINE ──── no data / poll timeout / read error ──────┐        │
    │     │                                                        │        │
    │     ├── method is not GET ──► REJECT ──────────────────────┤        │
    │     │                                                        │        │
    │     ▼                                                        │        │
    │    READ_HEADERS  (HTTP/1.1 only, at most max_header_lines)   │        │
    │     │                                                        │        │
    │     ▼                                                        │        │
    │    RESOLVE  (static filename, or executable + args)          │        │
    │     │                                                        │        │
    │     ▼                                                        │        │
    │    VALIDATE ──── 404 missing / 403 forbidden ──────────────┤        │
    │     │                                                        │        │
    │     ▼                                                        │        │
    │    SERVE  (static file or dynamic program)                   │        │
    │     │                                                        ▼        │
    │     └─────────────────────────────────────────────────────► CLOSE     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every path ends in CLOSE, and CLOSE is a finally block: the connection
is closed exactly once no matter how the handler leaves.

=============================================================================
VALIDATION
=============================================================================

    ┌──────────────────────────┬─────────────────────────────┬────────┐
    │ Check                    │ Applies to                  │ Status │
    ├──────────────────────────┼─────────────────────────────┼────────┤
    │ Path escapes its root    │ static and dynamic          │  403   │
    │ Does not exist           │ static and dynamic          │  404   │
    │ Not a regular file       │ static and dynamic          │  403   │
    │ Not readable             │ static                      │  403   │
    │ Not executable           │ dynamic                     │  403   │
    └──────────────────────────┴─────────────────────────────┴────────┘

By default a failed request is closed without a response. With
send_error_status enabled a bodiless status line is sent first.

=============================================================================
"""

import os
import stat
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..config import ServerConfig
from ..core.connection import Connection
from ..core.poller import wait_readable
from ..core.stream import ReadStatus
from ..http.request import (
    Request,
    RequestError,
    RequestLine,
    TargetResolver,
    build_request,
    is_supported_method,
    parse_request_line,
)
from ..http.response import error_head
from ..http.status_codes import HTTPStatus
from .dynamic import ProcessSpawner, serve_dynamic
from .static import is_within_root, serve_static


logger = logging.getLogger(__name__)


class HandlerState(Enum):
    """Where a handler is in its state machine."""
    NEW = "new"
    READ_LINE = "read_line"
    REJECT = "reject"
    READ_HEADERS = "read_headers"
    RESOLVE = "resolve"
    VALIDATE = "validate"
    SERVE = "serve"
    CLOSE = "close"


@dataclass
class HandlerOutcome:
    """
    What happened to one connection.

    Attributes:
        last_state: Last state entered before CLOSE.
        trace: Every state entered, in order, ending with CLOSE.
        request: The parsed request, once RESOLVE has run.
        status: 200 when content was served, the error code when the
                request was refused, None if the client sent nothing.
        served: True if the response was sent completely.
        error_sent: True if an error status line went out.
    """
    last_state: HandlerState = HandlerState.NEW
    trace: List[HandlerState] = field(default_factory=list)
    request: Optional[Request] = None
    status: Optional[int] = None
    served: bool = False
    error_sent: bool = False

    def enter(self, state: HandlerState):
        self.trace.append(state)
        if state != HandlerState.CLOSE:
            self.last_state = state


class ConnectionHandler:
    """
    Serves one request per connection.

    A single instance is shared by every worker slot. It holds only
    configuration; all per-request state lives on the stack and in the
    returned HandlerOutcome.

    Usage:
        handler = ConnectionHandler(config)
        pool.dispatch(handler.handle, conn)
    """

    def __init__(self, config: ServerConfig, spawner: Optional[ProcessSpawner] = None):
        self.config = config
        self.spawner = spawner or ProcessSpawner()
        self.resolver = TargetResolver(
            document_root=config.document_root,
            index_file=config.index_file,
            script_marker=config.script_marker,
        )

    def handle(self, conn: Connection) -> HandlerOutcome:
        """
        Run the state machine for conn and close it.

        Never raises: unexpected errors are logged with a traceback and
        the connection is closed like any other failure.
        """
        outcome = HandlerOutcome()
        outcome.enter(HandlerState.NEW)

        try:
            self._process(conn, outcome)

        except RequestError as e:
            outcome.status = e.status_code
            logger.info(f"[{conn.id}] {e} ({e.status_code})")
            self._send_error(conn, e.status_code, outcome)

        except Exception:
            outcome.status = HTTPStatus.INTERNAL_SERVER_ERROR
            logger.exception(f"[{conn.id}] Error handling request")
            # Once SERVE starts a 200 head may already be on the wire
            if outcome.last_state != HandlerState.SERVE:
                self._send_error(conn, HTTPStatus.INTERNAL_SERVER_ERROR, outcome)

        finally:
            outcome.enter(HandlerState.CLOSE)
            logger.info(f"[{conn.id}] Closing client connection")
            conn.close()

        return outcome

    # =========================================================================
    # STATES
    # =========================================================================

    def _process(self, conn: Connection, outcome: HandlerOutcome):
        outcome.enter(HandlerState.READ_LINE)
        line = self._read_request_line(conn)
        if line is None:
            return

        if not is_supported_method(line.method):
            outcome.enter(HandlerState.REJECT)
            if not line.method:
                raise RequestError("Malformed request line", HTTPStatus.BAD_REQUEST)
            raise RequestError(
                f"We do not implement the {line.method} method",
                HTTPStatus.NOT_IMPLEMENTED,
            )

        if line.wants_headers_read:
            outcome.enter(HandlerState.READ_HEADERS)
            self._read_headers(conn)

        outcome.enter(HandlerState.RESOLVE)
        request = build_request(line, self.resolver)
        outcome.request = request

        outcome.enter(HandlerState.VALIDATE)
        if request.is_static:
            size = self._validate_static(request.filename)
        else:
            executable = self.executable_path(request.filename)
            self._validate_dynamic(executable)

        outcome.enter(HandlerState.SERVE)
        outcome.status = HTTPStatus.OK
        if request.is_static:
            outcome.served = serve_static(
                conn, request.filename, size, self.config.server_name
            )
        else:
            outcome.served = serve_dynamic(
                conn,
                executable,
                request.args,
                spawner=self.spawner,
                script_name=request.filename,
                server_name=self.config.server_name,
                timeout=self.config.script_timeout,
            )

    def _read_request_line(self, conn: Connection) -> Optional[RequestLine]:
        status = wait_readable(
            conn.socket,
            block=self.config.client_block,
            timeout=self.config.poll_timeout,
        )
        if not status.ok:
            logger.info(f"[{conn.id}] Client not readable ({status.value})")
            return None

        result = conn.read_line(self.config.max_line)
        if result.status == ReadStatus.NO_DATA:
            logger.info(f"[{conn.id}] No data was read from new client")
            return None
        if result.status == ReadStatus.ERROR:
            logger.warning(f"[{conn.id}] Failed to read request line")
            return None

        logger.info(f"[{conn.id}] Client Request is = {result.line.rstrip()}")
        return parse_request_line(result.line)

    def _read_headers(self, conn: Connection) -> int:
        """Consume and log header lines. Their contents are not used."""
        count = 0
        while count < self.config.max_header_lines:
            result = conn.read_line(self.config.max_line)
            if not result.ok:
                break
            logger.info(f"[{conn.id}] {result.line.rstrip()}")
            count += 1
        return count

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def executable_path(self, filename: str) -> str:
        """Where a dynamic target lives on disk ("/cgi-bin/x" under script_root)."""
        return os.path.join(self.config.script_root, filename.lstrip("/"))

    def _stat(self, path: str) -> os.stat_result:
        try:
            return os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            raise RequestError(f"The {path} file could not be found", HTTPStatus.NOT_FOUND)
        except OSError as e:
            raise RequestError(f"Cannot stat {path}: {e}", HTTPStatus.FORBIDDEN)

    def _validate_static(self, path: str) -> int:
        """Check a static target and return its size."""
        if not is_within_root(path, self.config.document_root):
            raise RequestError(f"{path} is outside the document root", HTTPStatus.FORBIDDEN)

        st = self._stat(path)
        if not stat.S_ISREG(st.st_mode) or not os.access(path, os.R_OK):
            raise RequestError(f"Can't read {path}", HTTPStatus.FORBIDDEN)
        return st.st_size

    def _validate_dynamic(self, path: str):
        if not is_within_root(path, self.config.script_root):
            raise RequestError(f"{path} is outside the script root", HTTPStatus.FORBIDDEN)

        st = self._stat(path)
        if not stat.S_ISREG(st.st_mode) or not os.access(path, os.X_OK):
            raise RequestError(f"Can't run {path}", HTTPStatus.FORBIDDEN)

    # =========================================================================
    # ERRORS
    # =========================================================================

    def _send_error(self, conn: Connection, status_code: int, outcome: HandlerOutcome):
        if not self.config.send_error_status or conn.closed:
            return
        try:
            status = HTTPStatus(status_code)
        except ValueError:
            status = HTTPStatus.INTERNAL_SERVER_ERROR
        outcome.error_sent = conn.send(error_head(status, self.config.server_name))
