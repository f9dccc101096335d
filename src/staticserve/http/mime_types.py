"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the Content-Type sent with a served file.

=============================================================================
WHAT IS A MIME TYPE?
=============================================================================

MIME types tell the browser how to interpret the response body. They
follow the format type/subtype:

    ┌────────────────────────────────────────────────────────────────────┐
    │                    COMMON MIME TYPES                               │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  text/html                 → HTML document                         │
    │  text/css                  → CSS stylesheet                        │
    │  application/javascript    → JavaScript code                       │
    │  text/plain                → Plain text                            │
    │  image/png                 → PNG image                             │
    │  application/octet-stream  → Unknown/binary (default)              │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

The value is sent exactly as listed, without a charset parameter:

    Content-Type: text/plain

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Maps lowercase extensions (without the dot) to MIME types.
#
# =============================================================================

MIME_TYPES = {
    # -------------------------------------------------------------------------
    # WEB ASSETS
    # -------------------------------------------------------------------------
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "txt": "text/plain",

    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "webp": "image/webp",

    # -------------------------------------------------------------------------
    # FONTS
    # -------------------------------------------------------------------------
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",

    # -------------------------------------------------------------------------
    # MEDIA AND DOCUMENTS
    # -------------------------------------------------------------------------
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "pdf": "application/pdf",
    "xml": "application/xml",
    "csv": "text/csv",
    "md": "text/markdown",
    "wasm": "application/wasm",
    "zip": "application/zip",
}

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_extension(path: Union[str, Path]) -> str:
    """
    Get the lowercase extension of a file name, without the dot.

    A leading dot does not start an extension, so dotfiles have none:

        >>> get_extension("site.CSS")
        'css'
        >>> get_extension(".htaccess")
        ''
        >>> get_extension("archive.tar.gz")
        'gz'
    """
    name = Path(path).name
    index = name.rfind(".")
    if index <= 0:
        return ""
    return name[index + 1:].lower()


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Args:
        path: File path or name with extension
        default: MIME type for unknown extensions
                 (application/octet-stream if not given)

    Returns:
        The MIME type string

    Examples:
        >>> get_mime_type("/srv/a.txt")
        'text/plain'

        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    return MIME_TYPES.get(get_extension(path), default or DEFAULT_MIME_TYPE)
