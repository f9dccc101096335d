"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

Writes one line per successfully served request, once the response has
been written to the socket:

    [Mon, 19 Oct 2026 10:00:00 GMT] 127.0.0.1 GET /index.html 200

Only 200 responses are logged, and only after the server's write
succeeds. Rejections (403, 404, 405), dropped connections and failed
writes leave no access log line; the components that reject a
request log their own diagnostics through their module loggers.

=============================================================================
LOGGER CONFIGURATION
=============================================================================

Lines go to the "staticserve.access" logger at INFO. The server gives
that logger its own stdout handler with a bare "%(message)s" format, so
the lines appear exactly as shown above. Embedders can reroute it:

    logging.getLogger("staticserve.access").addHandler(file_handler)

=============================================================================
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, format_http_date
from ..http.status_codes import HTTPStatus


ACCESS_LOGGER_NAME = "staticserve.access"

logger = logging.getLogger(ACCESS_LOGGER_NAME)


@dataclass
class RequestLog:
    """
    One access log entry.

    Attributes:
        timestamp: HTTP-date of when the response was produced
        client_ip: Client's IP address
        method: Request method
        path: Decoded request path
        status_code: Response status code
    """

    timestamp: str
    client_ip: str
    method: str
    path: str
    status_code: int

    def to_text(self) -> str:
        return (
            f"[{self.timestamp}] {self.client_ip} "
            f"{self.method} {self.path} {self.status_code}"
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Must be the outermost middleware, so it sees the final status of
    every request, including ones rejected by the rate limiter.

    The line is not written here. It is attached to the response as an
    on_sent callback, and the server fires it with mark_sent() after
    sendall() returns.
    """

    def __init__(self, log_level: int = logging.INFO):
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)

        if response.status == HTTPStatus.OK:
            response.on_sent.append(lambda: self._log(request, response))

        return response

    def _log(self, request: HTTPRequest, response: HTTPResponse):
        entry = RequestLog(
            timestamp=format_http_date(datetime.now(timezone.utc)),
            client_ip=request.client_ip,
            method=request.method,
            path=request.path,
            status_code=int(response.status),
        )
        logger.log(self.log_level, entry.to_text())
