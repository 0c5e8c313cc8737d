"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves a file from the document tree verbatim.

=============================================================================
FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. Look up Content-type from the suffix (mime_types.py)           │
    │   2. Send the head:                                                 │
    │        HTTP/1.0 200 OK                                              │
    │        Server: ...                                                  │
    │        Content-length: <size from stat>                             │
    │        Content-type: <type>                                         │
    │        <blank line>                                                 │
    │   3. Open read-only and stream exactly <size> bytes in chunks       │
    └─────────────────────────────────────────────────────────────────────┘

Existence, file type, permission and document-root checks happen
before this point, in the connection handler. The size passed in is the
one the handler got from stat(), so Content-length always matches the
number of body bytes sent, even if the file grows while being served.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../../etc/passwd HTTP/1.0

    www/../../etc/passwd resolves outside www/, so is_within_root()
    returns False and the handler answers 403 (or just closes).

    PYTHON PROTECTION:
        full_path = Path(filename).resolve()
        full_path.relative_to(root.resolve())  # Raises if outside root

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..core.connection import Connection
from ..http.mime_types import get_mime_type
from ..http.response import DEFAULT_SERVER_NAME, static_head


logger = logging.getLogger(__name__)


CHUNK_SIZE = 64 * 1024


def is_within_root(filename: Union[str, Path], root: Union[str, Path]) -> bool:
    """
    Check that filename resolves to a path inside root.

    resolve() follows symlinks and normalizes ".." components, so a
    symlink pointing out of the tree is caught as well.
    """
    full_path = Path(filename).resolve()
    try:
        full_path.relative_to(Path(root).resolve())
    except ValueError:
        return False
    return True


def serve_static(
    conn: Connection,
    filename: str,
    size: int,
    server_name: str = DEFAULT_SERVER_NAME,
) -> bool:
    """
    Send a static file to the client.

    Args:
        conn: Client connection (owned by the calling handler).
        filename: Path of a readable regular file.
        size: File size from stat(); sent as Content-length and used as
              the exact number of body bytes.
        server_name: Value of the Server header.

    Returns:
        True if the head and every body byte were sent.
    """
    filetype = get_mime_type(filename)

    if not conn.send(static_head(size, filetype, server_name)):
        return False

    logger.info(f"[{conn.id}] Header sent to browser")

    remaining = size
    try:
        with open(filename, "rb") as f:
            while remaining > 0:
                chunk = f.read(min(CHUNK_SIZE, remaining))
                if not chunk:
                    # File shrank since stat(); the client will see a
                    # short body against the advertised length.
                    logger.warning(
                        f"[{conn.id}] {filename} ended {remaining} bytes early"
                    )
                    return False
                if not conn.send(chunk):
                    return False
                remaining -= len(chunk)
    except OSError as e:
        logger.error(f"[{conn.id}] Could not read {filename}: {e}")
        return False

    return True
