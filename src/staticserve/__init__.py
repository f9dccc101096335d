"""
=============================================================================
STATICSERVE
=============================================================================

A small HTTP/1.1 server that serves one directory tree.

    python -m staticserve --port 8000 --dir ./public

=============================================================================
WHAT IT DOES
=============================================================================

- GET only. Anything else gets 405 with "Allow: GET"
- Files are served with a Content-Type from their extension and
  cache headers (Cache-Control public, max-age=3600, Expires)
- html, css and js files are gzip-compressed
- A directory is answered with its index.html, or else with an HTML
  listing of its children
- Paths that resolve outside the root (.., symlinks, absolute paths)
  get 403, never 404
- More than 100 requests from one IP blocks it for 5 minutes
- One request per connection; every response says "Connection: close"
- Every 200 is logged to stdout as "[date] ip method path status"

=============================================================================
PACKAGE LAYOUT
=============================================================================

    staticserve/
    ├── __main__.py          # CLI: --port, --dir
    ├── config.py            # ServerConfig dataclass
    ├── server.py            # StaticFileServer, per-connection pipeline
    ├── core/
    │   ├── socket_server.py # bind / listen / accept
    │   ├── connection.py    # request line in, response out, close
    │   └── thread_pool.py   # bounded worker threads
    ├── http/
    │   ├── request.py       # request line parsing, path decoding
    │   ├── response.py      # HTTPResponse, canned responses
    │   ├── status_codes.py  # the status codes we send
    │   └── mime_types.py    # extension → Content-Type
    ├── handlers/
    │   └── static.py        # path containment, files, listings
    └── middleware/
        ├── base.py          # Middleware, MiddlewarePipeline
        ├── logging.py       # access log
        ├── rate_limit.py    # RateLimiter, blocklist
        └── compression.py   # gzip

=============================================================================
"""

__version__ = "1.0.0"

from .server import StaticFileServer
from .config import ServerConfig

__all__ = ["StaticFileServer", "ServerConfig", "__version__"]
