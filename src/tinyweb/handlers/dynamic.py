"""
=============================================================================
DYNAMIC CONTENT HANDLER
=============================================================================

Runs an executable and streams whatever it prints straight to the client.

=============================================================================
HOW THE OUTPUT REACHES THE CLIENT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Handler thread                        Child process                │
    │   ──────────────                        ─────────────                │
    │   send "HTTP/1.0 200 OK\r\n"                                         │
    │   send "Server: ...\r\n"                                             │
    │   spawn ────────────────────────────►   stdout = client socket fd    │
    │                                         QUERY_STRING = "15000&213"   │
    │                                         prints headers + body ─────► client
    │   wait() ◄──────────────────────────    exit                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The server never sees the program's output. The child's stdout IS the
socket, so nothing is buffered in between.

=============================================================================
CGI ENVIRONMENT
=============================================================================

    QUERY_STRING        Everything after "?" in the target
    REQUEST_METHOD      "GET"
    SCRIPT_NAME         The target path ("/cgi-bin/adder")
    SERVER_SOFTWARE     The Server header value
    GATEWAY_INTERFACE   "CGI/1.1"
    SERVER_PROTOCOL     "HTTP/1.0"

The rest of the server's environment is inherited.

=============================================================================
FAILURES
=============================================================================

A program that cannot be started, exits non-zero, or runs past
script_timeout (and is killed) is logged. Nothing extra is sent to the
client: the 200 head has already gone out.

=============================================================================
"""

import os
import logging
import subprocess
from typing import Dict, List, Optional

from ..core.connection import Connection
from ..http.response import DEFAULT_SERVER_NAME, PROTOCOL_VERSION, dynamic_head


logger = logging.getLogger(__name__)


GATEWAY_INTERFACE = "CGI/1.1"


class ProcessHandle:
    """A started child process."""

    def __init__(self, process: subprocess.Popen):
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    def wait(self, timeout: Optional[float] = None) -> int:
        """
        Wait for the child to exit and return its exit status.

        Raises:
            subprocess.TimeoutExpired: if timeout elapses first.
        """
        return self._process.wait(timeout=timeout)

    def kill(self) -> None:
        """Kill the child and reap it."""
        if self._process.poll() is None:
            self._process.kill()
        self._process.wait()


class ProcessSpawner:
    """
    Starts executables with stdout redirected to a descriptor.

    Kept as its own class so the connection handler can be given a
    different spawner in tests.
    """

    def spawn(
        self,
        argv: List[str],
        stdout_fd: int,
        env_overrides: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
    ) -> ProcessHandle:
        """
        Start argv[0] with argv as its arguments.

        Raises:
            OSError: if the executable cannot be started.
        """
        env = dict(os.environ)
        if env_overrides:
            env.update(env_overrides)

        process = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=stdout_fd,
            env=env,
            cwd=cwd,
            close_fds=True,
        )
        logger.info(f"Started {argv[0]} (pid {process.pid})")
        return ProcessHandle(process)


def cgi_environment(
    args: str,
    script_name: str,
    server_name: str = DEFAULT_SERVER_NAME,
    method: str = "GET",
) -> Dict[str, str]:
    """Variables handed to the program on top of the inherited environment."""
    return {
        "QUERY_STRING": args,
        "REQUEST_METHOD": method,
        "SCRIPT_NAME": script_name,
        "SERVER_SOFTWARE": server_name,
        "GATEWAY_INTERFACE": GATEWAY_INTERFACE,
        "SERVER_PROTOCOL": PROTOCOL_VERSION,
    }


def serve_dynamic(
    conn: Connection,
    executable: str,
    args: str,
    spawner: Optional[ProcessSpawner] = None,
    script_name: Optional[str] = None,
    server_name: str = DEFAULT_SERVER_NAME,
    timeout: Optional[float] = None,
    cwd: Optional[str] = None,
) -> bool:
    """
    Run executable with its stdout on the client socket.

    Args:
        conn: Client connection (owned by the calling handler).
        executable: Filesystem path of the program.
        args: Argument string, passed as QUERY_STRING.
        spawner: Process spawner (a default ProcessSpawner if None).
        script_name: SCRIPT_NAME value (defaults to executable).
        server_name: Server header and SERVER_SOFTWARE value.
        timeout: Seconds to wait before killing the program. None = wait.
        cwd: Working directory for the program.

    Returns:
        True if the head was sent and the program exited with status 0.
    """
    spawner = spawner or ProcessSpawner()

    if not conn.send(dynamic_head(server_name)):
        return False

    # The child writes to the raw descriptor, which has to be in
    # blocking mode or a full send buffer turns into EAGAIN for it.
    conn.socket.setblocking(True)

    env = cgi_environment(args, script_name or executable, server_name)
    try:
        handle = spawner.spawn([executable], conn.fileno(), env, cwd)
    except OSError as e:
        logger.error(f"[{conn.id}] Could not start {executable}: {e}")
        return False

    try:
        status = handle.wait(timeout)
    except subprocess.TimeoutExpired:
        logger.error(
            f"[{conn.id}] {executable} (pid {handle.pid}) did not finish "
            f"in {timeout}s, killing it"
        )
        handle.kill()
        return False

    if status != 0:
        logger.warning(
            f"[{conn.id}] {executable} (pid {handle.pid}) exited with status {status}"
        )
        return False

    logger.info(f"[{conn.id}] {executable} finished")
    return True
