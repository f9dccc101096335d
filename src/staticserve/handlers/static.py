"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Maps request paths onto the document root and serves what it finds:
a file, the directory's index.html, or a generated directory listing.

=============================================================================
PATH TRAVERSAL
=============================================================================

The request path comes straight from the client. Joined naively with the
document root, it can point anywhere on the machine:

    root:     /srv/www
    request:  /../../etc/passwd
    joined:   /srv/www/../../etc/passwd
    resolved: /etc/passwd                    ◄── outside the root!

Encoded dots (%2e%2e) decode to the same thing, and a symlink inside the
root can point outside it just as well:

    /srv/www/escape  →  /home/alice
    request: /escape/.ssh/id_rsa
    resolved: /home/alice/.ssh/id_rsa        ◄── also outside!

The defense is one rule, applied after canonicalization:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     CONTAINMENT CHECK                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Join root and request path                                      │
    │   2. resolve(): follow symlinks, collapse "." and ".."              │
    │   3. Is the result the root itself or somewhere below it?           │
    │        yes → continue                                                │
    │        no  → 403 Forbidden                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The check compares path components, not string prefixes: "/srv/www2"
starts with the string "/srv/www" but is not inside it.

An escaping path is always 403, even when the target does not exist, so
the response never reveals what exists outside the root.

=============================================================================
RESOLUTION OUTCOMES
=============================================================================

    ┌──────────────────────────────┬─────────────────────────────────────┐
    │ Canonical target             │ Response                            │
    ├──────────────────────────────┼─────────────────────────────────────┤
    │ outside the root             │ 403 Forbidden                       │
    │ missing                      │ 404 Not Found                       │
    │ directory with index.html    │ 200, the index.html file            │
    │ directory without index.html │ 200, generated listing              │
    │ regular file                 │ 200, the file                       │
    └──────────────────────────────┴─────────────────────────────────────┘

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    directory_listing,
    file_response,
    forbidden,
    not_found,
)


logger = logging.getLogger(__name__)


INDEX_FILE = "index.html"


class PathTraversalError(Exception):
    """Raised when a request path resolves outside the document root."""


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Where a request path landed on the filesystem.

    Attributes:
        absolute_path: Canonical path of the target. For a directory with
                       an index file this is the index file itself.
        is_directory:  True when the target is a directory that needs a
                       generated listing.
        exists:        False when nothing servable is at the path.
    """

    absolute_path: Path
    is_directory: bool
    exists: bool


def _contain(root: Path, candidate: Path) -> Path:
    """Canonicalize candidate and make sure it stays under root."""
    try:
        resolved = candidate.resolve()
    except (OSError, RuntimeError, ValueError) as e:
        # Symlink loops, embedded NUL bytes and the like
        raise PathTraversalError(f"cannot canonicalize {candidate}: {e}") from e

    try:
        resolved.relative_to(root)
    except ValueError:
        raise PathTraversalError(f"{resolved} is outside {root}") from None

    return resolved


def resolve_path(root: Union[str, Path], decoded_path: str) -> ResolvedTarget:
    """
    Resolve a decoded request path against the document root.

    Leading slashes are stripped so the request path is always read
    relative to the root ("/etc/passwd" means <root>/etc/passwd).

    Args:
        root: Document root directory
        decoded_path: Percent-decoded request path

    Returns:
        The resolved target (see ResolvedTarget)

    Raises:
        PathTraversalError: If the canonical target is outside the root
    """
    root = Path(root).resolve()
    target = _contain(root, root / decoded_path.lstrip("/"))

    if target.is_dir():
        index = target / INDEX_FILE
        if index.is_file():
            # The index may itself be a symlink
            return ResolvedTarget(_contain(root, index), is_directory=False, exists=True)
        return ResolvedTarget(target, is_directory=True, exists=True)

    return ResolvedTarget(target, is_directory=False, exists=target.is_file())


class StaticFileHandler:
    """
    Handler for serving static files.

    =========================================================================
    FLOW
    =========================================================================

        Request: GET /css/site.css

        1. Resolve path against root_dir (403 if it escapes)
        2. Missing → 404
        3. Directory without index.html → listing
        4. File → read fully, respond with cache headers

    =========================================================================
    USAGE
    =========================================================================

        static = StaticFileHandler("/srv/www", expires="Mon, 19 Oct ...")
        response = static(request)

    =========================================================================
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        expires: str,
        cache_max_age: int = 3600,
    ):
        """
        Initialize static file handler.

        Args:
            root_dir: Root directory to serve files from.
            expires: Value of the Expires header for every file response.
                     Computed once by the caller, not per request.
            cache_max_age: Cache-Control max-age in seconds.
        """
        self.root_dir = Path(root_dir).resolve()
        self.expires = expires
        self.cache_max_age = cache_max_age

        if not self.root_dir.is_dir():
            raise ValueError(f"Document root is not a directory: {root_dir}")

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Handle a GET request for a path under the root.

        Args:
            request: The parsed request.

        Returns:
            HTTP response with file content, a listing, or an error page.
        """
        try:
            target = resolve_path(self.root_dir, request.path)
        except PathTraversalError as e:
            logger.warning(f"Path traversal attempt from {request.client_ip}: {request.path!r} ({e})")
            return forbidden()

        if not target.exists:
            return not_found()

        if target.is_directory:
            return self._directory_listing(target.absolute_path, request.path)

        return self._serve_file(target.absolute_path)

    def _serve_file(self, path: Path) -> HTTPResponse:
        """
        Read a file into memory and wrap it in a 200 response.

        The file can vanish or change between resolution and this read.
        Any read failure is answered with 404.
        """
        try:
            content = path.read_bytes()
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")
            return not_found()

        return file_response(path, content, self.expires, self.cache_max_age)

    def _directory_listing(self, path: Path, url_path: str) -> HTTPResponse:
        """
        Generate a listing of the immediate children of a directory.

        Entries appear in the order the filesystem enumerates them.
        Directory names get a trailing slash.
        """
        try:
            names = [
                entry.name + ("/" if entry.is_dir() else "")
                for entry in path.iterdir()
            ]
        except OSError as e:
            logger.warning(f"Failed to list {path}: {e}")
            return not_found()

        return directory_listing(url_path, names)
