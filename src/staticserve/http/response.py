"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                     ◄── status line          │
    │    Content-Type: text/plain\r\n            ◄── headers              │
    │    Content-Length: 5\r\n                                            │
    │    Connection: close\r\n                                            │
    │    Date: Mon, 19 Oct 2026 10:00:00 GMT\r\n                          │
    │    Cache-Control: public, max-age=3600\r\n                          │
    │    Expires: Mon, 19 Oct 2026 11:00:00 GMT\r\n                       │
    │    \r\n                                    ◄── end of headers       │
    │    hello                                   ◄── body                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every response this server sends carries "Connection: close". One
request, one response, then the socket is gone.

=============================================================================
RESPONSE KINDS
=============================================================================

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │ file_response()      │ 200, MIME type, Date, Cache-Control, Expires │
    │ directory_listing()  │ 200, generated HTML index of a directory     │
    │ forbidden()          │ 403, fixed HTML body                         │
    │ not_found()          │ 404, fixed HTML body                         │
    │ method_not_allowed() │ 405, fixed HTML body, Allow: GET             │
    └──────────────────────┴──────────────────────────────────────────────┘

=============================================================================
"""

import html
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

from .status_codes import HTTPStatus
from .mime_types import get_mime_type


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use ResponseBuilder or the canned response functions below rather
    than filling this in by hand.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns          to_bytes()              Socket sends
        HTTPResponse    ─────►   serializes    ─────►    raw bytes

    =========================================================================

    Attributes:
        status: HTTP status code
        headers: Response headers, serialized in insertion order
        body: Response body
        version: Protocol version for the status line
        source_path: File the body was read from, if any. Not sent on the
                     wire; compression and logging look at it.
        on_sent: Callbacks run by mark_sent() once the bytes are written.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"
    source_path: Optional[Path] = None
    on_sent: List[Callable[[], None]] = field(default_factory=list, repr=False)

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    def mark_sent(self):
        """Run the on_sent callbacks. Called after a successful write."""
        for callback in self.on_sent:
            callback()

    def to_bytes(self) -> bytes:
        """
        Serialize the response to bytes for sending over the socket.

        Content-Length is filled in from the body when the response does
        not already carry one. Header values are written as given, so a
        compressed body must come with its own, updated Content-Length.

        Returns:
            Complete HTTP response as bytes ready for socket.sendall()
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    Each method returns the builder, so calls chain:

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/css")
            .body(data)
            .close_connection()
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._source_path: Optional[Path] = None

    # =========================================================================
    # STATUS AND HEADERS
    # =========================================================================

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def content_length(self, length: int) -> "ResponseBuilder":
        return self.header("Content-Length", str(length))

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the response body. Strings are encoded as UTF-8."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def html(self, markup: str) -> "ResponseBuilder":
        """
        Set an HTML body.

        Content-Length is the UTF-8 byte count of the markup, which is
        what actually goes on the wire (not its character count).
        """
        self._body = markup.encode("utf-8")
        self._headers["Content-Type"] = "text/html"
        self._headers["Content-Length"] = str(len(self._body))
        return self

    def file(self, content: bytes, path: Path) -> "ResponseBuilder":
        """
        Set a file body.

        Detects Content-Type from the file extension and remembers the
        path so later stages (compression, access log) can see which
        file is being served.
        """
        self._body = content
        self._source_path = path
        self._headers["Content-Type"] = get_mime_type(path)
        self._headers["Content-Length"] = str(len(content))
        return self

    # =========================================================================
    # CACHING AND CONNECTION
    # =========================================================================

    def date(self, when: Optional[datetime] = None) -> "ResponseBuilder":
        """Add a Date header (now, unless a time is given)."""
        return self.header("Date", format_http_date(when or datetime.now(timezone.utc)))

    def cache(self, max_age: int, expires: str) -> "ResponseBuilder":
        """
        Add caching headers.

        Cache-Control directives:
        - public: Response can be cached by any cache
        - max-age: How long (in seconds) the response is fresh

        Args:
            max_age: Cache duration in seconds
            expires: Pre-formatted HTTP-date for the Expires header
        """
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        self._headers["Expires"] = expires
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Set Connection: close header."""
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            source_path=self._source_path,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 / RFC 1123).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 19 Oct 2026 12:00:00 GMT

    HTTP dates are always in GMT. Aware datetimes are converted to UTC
    first; naive ones are taken to be UTC already.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def _error_page(status: HTTPStatus) -> ResponseBuilder:
    return (ResponseBuilder()
        .status(status)
        .html(f"<html><body><h1>{status.value} {status.phrase}</h1></body></html>")
        .close_connection())


# =============================================================================
# CANNED RESPONSES
# =============================================================================

def file_response(
    path: Path,
    content: bytes,
    expires: str,
    cache_max_age: int = 3600,
) -> HTTPResponse:
    """
    Create a 200 OK response carrying a file.

    Args:
        path: The file on disk (used for Content-Type)
        content: The complete, uncompressed file content
        expires: Expires header value, computed once by the server
        cache_max_age: Cache-Control max-age in seconds

    Returns:
        HTTPResponse with status 200 and caching headers
    """
    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .file(content, path)
        .close_connection()
        .date()
        .cache(cache_max_age, expires)
        .build())


def directory_listing(request_path: str, names: Iterable[str]) -> HTTPResponse:
    """
    Create a 200 OK response listing a directory.

    =========================================================================
    LINK FORMAT
    =========================================================================

    Links are built from the requested path, not relative to it, so the
    page works whether or not the URL ended in a slash:

        request_path="/docs"   name="a.txt"  →  href="/docs/a.txt"
        request_path="/docs/"  name="img/"   →  href="/docs/img/"
        request_path="/"       name="a.txt"  →  href="/a.txt"
        request_path="/"       name="a b?.txt"  →  href="/a%20b%3F.txt"

    Hrefs are percent-encoded so names holding "?", "#", "%" or "+"
    survive the trip back through decode_path(). The link text is the
    plain name.

    =========================================================================

    Args:
        request_path: Decoded request path of the directory
        names: Child names in enumeration order, directories already
               suffixed with "/"

    Returns:
        HTTPResponse with a generated HTML body
    """
    prefix = request_path if request_path.endswith("/") else request_path + "/"
    items = []
    for name in names:
        href = html.escape(quote(prefix + name), quote=True)
        items.append(f'<li><a href="{href}">{html.escape(name)}</a></li>')

    markup = (
        f"<html><body><h1>Index of {html.escape(request_path)}</h1><ul>"
        f"{''.join(items)}"
        "</ul></body></html>"
    )

    return (ResponseBuilder()
        .status(HTTPStatus.OK)
        .html(markup)
        .close_connection()
        .build())


def forbidden() -> HTTPResponse:
    """
    Create a 403 Forbidden response.

    Sent for blocked clients, rate-limited requests and paths that
    escape the document root.
    """
    return _error_page(HTTPStatus.FORBIDDEN).build()


def not_found() -> HTTPResponse:
    """Create a 404 Not Found response."""
    return _error_page(HTTPStatus.NOT_FOUND).build()


def method_not_allowed(allowed_methods: Iterable[str] = ("GET",)) -> HTTPResponse:
    """
    Create a 405 Method Not Allowed response.

    Includes the Allow header listing valid methods (RFC 7231 requirement).
    """
    return (_error_page(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .build())
