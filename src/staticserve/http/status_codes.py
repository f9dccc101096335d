"""
=============================================================================
HTTP STATUS CODES (RFC 7231)
=============================================================================

The status codes this server can produce, with their reason phrases.

=============================================================================
STATUS CODES USED BY A STATIC FILE SERVER
=============================================================================

A static file server only ever answers with a handful of codes:

    ┌────────────────────────────────────────────────────────────────────┐
    │                      STATUS CODES WE SEND                          │
    ├────────┬───────────────────────────────────────────────────────────┤
    │  200   │ OK                 - File contents or directory listing   │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  403   │ Forbidden          - Blocked client, rate limit tripped,  │
    │        │                      or path escaping the document root   │
    │  404   │ Not Found          - Nothing at the resolved path         │
    │  405   │ Method Not Allowed - Anything other than GET              │
    └────────┴───────────────────────────────────────────────────────────┘

Note that a rate-limited client gets 403, not 429. The server treats an
abusive client the same way it treats a traversal attempt: access denied.

The status line format is fixed:

    HTTP/1.1 404 Not Found
    ──┬───── ─┬─ ────┬────
      │       │      │
    Version  Code  Reason phrase

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes compare and format as
    integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> f"{HTTPStatus.FORBIDDEN}"
        '403'
        >>> HTTPStatus.FORBIDDEN.phrase
        'Forbidden'
    """

    # =========================================================================
    # 2xx SUCCESS
    # =========================================================================
    OK = 200

    # =========================================================================
    # 4xx CLIENT ERRORS
    # =========================================================================
    FORBIDDEN = 403                     # Policy rejection (see module docs)
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405            # Only GET is served

    def __str__(self) -> str:
        return str(self.value)

    def __format__(self, format_spec: str) -> str:
        return format(self.value, format_spec)

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 200 OK
                     ─── ──
                      │   │
                      │   └── Reason phrase
                      └────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")


# =============================================================================
# REASON PHRASES
# =============================================================================

_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
}
