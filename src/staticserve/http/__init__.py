"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The protocol layer of the server: turning the request line into an
HTTPRequest and HTTPResponse objects into bytes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST (request.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   "GET /docs/a%20b.txt HTTP/1.1"                             │
    │ Output:  HTTPRequest(method="GET", path="/docs/a b.txt", ...)       │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE (response.py)                                              │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   HTTPResponse(status=200, headers={...}, body=b"...")       │
    │ Output:  b"HTTP/1.1 200 OK\r\nContent-Type: ...\r\n\r\n..."         │
    └─────────────────────────────────────────────────────────────────────┘

    status_codes.py   HTTPStatus enum with reason phrases
    mime_types.py     Extension → Content-Type table

=============================================================================
"""

from .request import HTTPRequest, MalformedRequestLine, decode_path, parse_request_line
from .response import (
    HTTPResponse,
    ResponseBuilder,
    directory_listing,
    file_response,
    forbidden,
    format_http_date,
    method_not_allowed,
    not_found,
)
from .status_codes import HTTPStatus
from .mime_types import get_extension, get_mime_type

__all__ = [
    # Request
    "HTTPRequest",
    "MalformedRequestLine",
    "decode_path",
    "parse_request_line",

    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "directory_listing",
    "file_response",
    "forbidden",
    "format_http_date",
    "method_not_allowed",
    "not_found",

    # Status and MIME
    "HTTPStatus",
    "get_extension",
    "get_mime_type",
]
