"""
=============================================================================
COMPRESSION MIDDLEWARE
=============================================================================

Gzips HTML, CSS and JavaScript files before they are sent.

=============================================================================
WHAT GETS COMPRESSED
=============================================================================

The decision is made on the extension of the file being served:

    ┌────────────────────┬─────────────────────────────────────────────┐
    │ Served file        │ Result                                      │
    ├────────────────────┼─────────────────────────────────────────────┤
    │ *.html *.css *.js  │ gzip, Content-Encoding: gzip                │
    │ anything else      │ sent as-is                                  │
    │ directory listing  │ sent as-is (no file behind it)              │
    │ error pages        │ sent as-is (no file behind it)              │
    └────────────────────┴─────────────────────────────────────────────┘

A request for "/" that lands on index.html is compressed, because the
file behind the response is index.html.

=============================================================================
HOW IT WORKS
=============================================================================

    1. Call the next handler to get the response
    2. Look at response.source_path (set by the static handler)
    3. Compressible extension? Compress the WHOLE body in memory
    4. Replace Content-Length with the compressed size and add
       Content-Encoding: gzip

The body is compressed before a single byte is written. There is no
streaming, so memory use grows with file size. Fine for typical web
assets, wrong for multi-gigabyte downloads (which are never compressed
anyway: only html/css/js qualify).

=============================================================================
"""

import gzip
from typing import Optional, Set

from .base import Middleware, NextHandler
from ..http.mime_types import get_extension
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


COMPRESSIBLE_EXTENSIONS: Set[str] = {"html", "css", "js"}


def compress_response(response: HTTPResponse, level: int = 9) -> HTTPResponse:
    """
    Gzip a response body in place and fix up its headers.

    Args:
        response: Response whose body should be compressed
        level: gzip compression level (1-9)

    Returns:
        The same response object
    """
    compressed_body = gzip.compress(response.body, compresslevel=level)

    response.body = compressed_body
    response.headers["Content-Encoding"] = "gzip"
    response.headers["Content-Length"] = str(len(compressed_body))
    return response


class CompressionMiddleware(Middleware):
    """
    Response compression middleware.

    Usage:
        pipeline.add(CompressionMiddleware())

        # Compress other extensions too
        pipeline.add(CompressionMiddleware(extensions={"html", "css", "js", "svg"}))
    """

    def __init__(
        self,
        extensions: Optional[Set[str]] = None,
        level: int = 9,
    ):
        """
        Initialize compression middleware.

        Args:
            extensions: Lowercase file extensions to compress.
                        Defaults to html, css and js.
            level: Compression level (1-9).
                   1 = fastest, least compression
                   9 = slowest, best compression
        """
        self.extensions = extensions or COMPRESSIBLE_EXTENSIONS
        self.level = level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)

        if self._should_compress(response):
            compress_response(response, self.level)

        return response

    def _should_compress(self, response: HTTPResponse) -> bool:
        if response.source_path is None:
            return False

        # Don't double-compress
        if "Content-Encoding" in response.headers:
            return False

        return get_extension(response.source_path) in self.extensions
