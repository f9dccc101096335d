"""
=============================================================================
HTTP REQUEST LINE PARSING
=============================================================================

Turns the first line a client sends into an HTTPRequest record.

=============================================================================
ONLY THE REQUEST LINE MATTERS
=============================================================================

A full HTTP request has a request line, headers and an optional body:

    GET /css/site.css HTTP/1.1\r\n      ◄── request line (parsed)
    Host: localhost:8000\r\n            ◄── headers (ignored)
    Accept-Encoding: gzip\r\n
    \r\n

A static file server that closes every connection after one response
needs nothing but the method and the path. The headers are never read;
whatever the client sends after the first line is discarded when the
socket closes.

=============================================================================
TOKENIZING
=============================================================================

The line is split on single spaces:

    "GET /a%20b.txt HTTP/1.1"
      │       │         │
      ▼       ▼         ▼
    method  raw path  version (optional)

    ┌────────────────────────────┬──────────────────────────────────────┐
    │ Input                      │ Result                               │
    ├────────────────────────────┼──────────────────────────────────────┤
    │ ""  (EOF / blank line)     │ MalformedRequestLine → drop silently │
    │ "GET"                      │ MalformedRequestLine → drop silently │
    │ "GET "                     │ MalformedRequestLine (trailing       │
    │                            │ spaces never form a token)           │
    │ "GET /x"                   │ method=GET, path=/x, no version      │
    │ "POST /x HTTP/1.1"         │ method=POST (rejected later: 405)    │
    └────────────────────────────┴──────────────────────────────────────┘

The raw path is URL-decoded after dropping any query string or fragment,
so "/app.js?v=3" addresses the file "app.js" while "/what%3F.txt" still
addresses "what?.txt". Both "+" and "%20" decode to a space.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote_plus


class MalformedRequestLine(Exception):
    """
    Raised when the request line is missing or has too few tokens.

    Unlike most parse errors, this one never produces a response: the
    connection is simply closed. Idle connections and port scanners
    land here.
    """


@dataclass
class HTTPRequest:
    """
    A parsed request line plus the client it came from.

    Attributes:
        method:     Request method exactly as sent ("GET", "POST", ...)
        raw_path:   Path token as sent, still percent-encoded
        path:       Decoded path used for filesystem resolution and logs
        client_ip:  Remote IP address of the connection
        version:    Protocol token, empty when the client omitted it
    """

    method: str
    raw_path: str
    path: str
    client_ip: str = ""
    version: str = ""


def decode_path(raw_path: str) -> str:
    """
    URL-decode a request target, dropping query string and fragment.

    Decoding follows form rules, so "+" becomes a space. A literal plus
    sign is written "%2B".

    Examples:
        >>> decode_path("/a%20b.txt")
        '/a b.txt'
        >>> decode_path("/a+b.txt")
        '/a b.txt'
        >>> decode_path("/app.js?v=3")
        '/app.js'
        >>> decode_path("/%2e%2e/etc/passwd")
        '/../etc/passwd'
    """
    for delimiter in ("?", "#"):
        raw_path = raw_path.split(delimiter, 1)[0]
    return unquote_plus(raw_path, encoding="utf-8", errors="replace")


def parse_request_line(line: Optional[str], client_ip: str = "") -> HTTPRequest:
    """
    Parse an HTTP request line.

    Args:
        line: The request line without its line terminator, or None when
              the client closed the connection before sending anything.
        client_ip: Remote address the line was read from.

    Returns:
        The parsed request.

    Raises:
        MalformedRequestLine: If the line is empty or lacks a path token.
    """
    if not line:
        raise MalformedRequestLine("empty request line")

    # Trailing spaces never produce empty tokens
    parts = line.rstrip(" ").split(" ")
    if len(parts) < 2:
        raise MalformedRequestLine(f"too few tokens in request line: {line!r}")

    method, raw_path = parts[0], parts[1]
    version = parts[2] if len(parts) > 2 else ""

    return HTTPRequest(
        method=method,
        raw_path=raw_path,
        path=decode_path(raw_path),
        client_ip=client_ip,
        version=version,
    )
