"""
=============================================================================
REQUEST HANDLERS
=============================================================================

A handler turns an HTTPRequest into an HTTPResponse:

    def handler(request: HTTPRequest) -> HTTPResponse:
        ...

The server has exactly one: StaticFileHandler, which sits at the centre
of the middleware pipeline and maps request paths onto the document root.

=============================================================================
"""

from .static import (
    INDEX_FILE,
    PathTraversalError,
    ResolvedTarget,
    StaticFileHandler,
    resolve_path,
)

__all__ = [
    "INDEX_FILE",
    "PathTraversalError",
    "ResolvedTarget",
    "StaticFileHandler",
    "resolve_path",
]
