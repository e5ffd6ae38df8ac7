"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

The Content-Type header tells the browser how to interpret the bytes it
receives. Serve a stylesheet as application/octet-stream and the browser
refuses to apply it; serve HTML as text/plain and the page shows up as source.

The known-type table is deliberately small: it covers what a phone sharing a
web page or a handful of documents over WiFi actually serves. Everything else
is sent as application/octet-stream, which browsers offer as a download.

=============================================================================
EXTENSION RULES
=============================================================================

    index.html        → "html"   → text/html
    Photo.JPG         → "jpg"    → image/jpeg     (case-insensitive)
    archive.tar.gz    → "gz"     → octet-stream   (last dot wins)
    README            → ""       → octet-stream   (no dot)
    .bashrc           → ""       → octet-stream   (dotfile, no extension)

=============================================================================
"""

from pathlib import PurePath
from types import MappingProxyType
from typing import Union


# Read-only view; the table is built once at import and shared by every
# worker thread without locking.
MIME_TYPES = MappingProxyType({
    # Web pages
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",

    # Images
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",

    # Documents
    "pdf": "application/pdf",
    "txt": "text/plain",
})

# "I don't know what this is, treat it as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_extension(file_name: Union[str, PurePath]) -> str:
    """
    Return the lower-cased text after the last dot of a file name.

    Returns "" when there is no dot, or when the only dot is the first
    character (dotfiles have no extension).

        >>> get_extension("Photo.JPG")
        'jpg'
        >>> get_extension(".bashrc")
        ''
    """
    name = PurePath(file_name).name
    last_dot = name.rfind(".")
    if last_dot <= 0:
        return ""
    return name[last_dot + 1:].lower()


def get_mime_type(file_name: Union[str, PurePath]) -> str:
    """
    Map a file name to its MIME type.

        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("/srv/share/movie.mkv")
        'application/octet-stream'
    """
    return MIME_TYPES.get(get_extension(file_name), DEFAULT_MIME_TYPE)
