"""
MIME type detection by file name.
"""

import mimetypes
import os

DEFAULT_MIME = "application/octet-stream"


def detect_mime(filename: str, default: str = DEFAULT_MIME) -> str:
    """Guess the MIME type from the file name's extension."""
    mime, _ = mimetypes.guess_type(os.path.basename(str(filename)))
    return mime or default
