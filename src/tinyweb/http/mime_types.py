"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a filename's suffix to the Content-type sent with a static file.

    ┌────────────────────────────────────────────────────────────────────┐
    │   .html  → text/html                                               │
    │   .gif   → image/gif                                               │
    │   .jpg   → image/jpeg                                              │
    │   other  → text/plain                                              │
    └────────────────────────────────────────────────────────────────────┘

The match is on the final suffix only and is case-sensitive, so
"photo.JPG" and "index.htm" are served as text/plain.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    ".html": "text/html",
    ".gif": "image/gif",
    ".jpg": "image/jpeg",
}

DEFAULT_MIME_TYPE = "text/plain"


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its suffix.

    Args:
        path: File path or name
        default: Type for unknown suffixes (text/plain if not given)

    Examples:
        >>> get_mime_type("www/pages/index.html")
        'text/html'

        >>> get_mime_type("logo.gif")
        'image/gif'

        >>> get_mime_type("notes.txt")
        'text/plain'
    """
    if isinstance(path, str):
        path = Path(path)

    return MIME_TYPES.get(path.suffix, default or DEFAULT_MIME_TYPE)
