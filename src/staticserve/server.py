"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Ties the networking core, the middleware pipeline and the static file
handler together.

=============================================================================
PER-CONNECTION PIPELINE
=============================================================================

Each accepted connection runs once, on a pool worker, and is always
closed at the end:

    client IP
       │
       ▼
    blocked? ───────────yes──► 403
       │ no
       ▼
    read request line ───────► (empty, malformed, timeout) close silently
       │
       ▼
    method == GET? ──────no──► 405 + Allow: GET
       │ yes
       ▼
    ┌─────────────────────────────────────────────┐
    │ LoggingMiddleware                           │
    │   RateLimitMiddleware ──over limit──► 403   │
    │     CompressionMiddleware                   │
    │       StaticFileHandler ──► 200 / 403 / 404 │
    └─────────────────────────────────────────────┘
       │
       ▼
    send ──ok──► access log (200 only), close

The blocklist check and the method check happen before the pipeline, so
neither a blocked client's requests nor non-GET requests are counted
against the rate limit.

=============================================================================
"""

import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, RequestLineTooLong, SocketServer, ThreadPool
from .handlers import StaticFileHandler
from .http import (
    HTTPResponse,
    MalformedRequestLine,
    forbidden,
    format_http_date,
    method_not_allowed,
    parse_request_line,
)
from .middleware import (
    ACCESS_LOGGER_NAME,
    CompressionMiddleware,
    LoggingMiddleware,
    MiddlewarePipeline,
    RateLimiter,
    RateLimitMiddleware,
)


logger = logging.getLogger(__name__)


ALLOWED_METHODS = ("GET",)


class StaticFileServer:
    """
    HTTP/1.1 static file server.

    =========================================================================
    USAGE
    =========================================================================

        server = StaticFileServer(ServerConfig(port=8000, root_dir="public"))
        server.run()  # Blocks until Ctrl+C / SIGTERM

    From another thread (tests):

        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_ready(5)
        host, port = server.address
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the server.

        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.root_dir = self.config.root_path

        # One Expires value for the lifetime of the process
        self.expires = format_http_date(
            datetime.now(timezone.utc) + timedelta(seconds=self.config.cache_max_age)
        )

        self.rate_limiter = RateLimiter(
            limit=self.config.rate_limit,
            block_seconds=self.config.block_seconds,
        )

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )

        self._static = StaticFileHandler(
            self.root_dir,
            expires=self.expires,
            cache_max_age=self.config.cache_max_age,
        )

        self._middleware = (MiddlewarePipeline()
            .add(LoggingMiddleware())
            .add(RateLimitMiddleware(self.rate_limiter))
            .add(CompressionMiddleware()))
        self._handler = self._middleware.wrap(self._static)

    @property
    def address(self) -> Tuple[str, int]:
        """The (host, port) the server is bound to."""
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections."""
        return self._socket_server.wait_until_ready(timeout)

    def run(self):
        """
        Start the server (blocking).

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        self._setup_logging()

        self._socket_server.bind()
        self._thread_pool.start()

        host, port = self.address
        logger.info(f"staticserve running at http://{host}:{port}/ serving {self.root_dir}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Stop accepting connections. run() returns once workers drain."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """
        Configure diagnostics and the access log.

        Diagnostics go through the root logger. Access lines get their
        own stdout handler with a bare message format so they read
        exactly "[date] ip method path status".
        """
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserve").setLevel(level)

        access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
        access_logger.setLevel(logging.INFO)
        if not access_logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter("%(message)s"))
            access_logger.addHandler(handler)
            access_logger.propagate = False

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a pool worker.

        Blocks while the pool's queue is full, which holds back the
        accept loop.
        """
        try:
            self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError as e:
            logger.warning(f"[{conn.id}] Dropping connection: {e}")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve one connection (runs in a worker thread).

        Failures stay inside this connection: they are logged and the
        socket is closed, the accept loop and shared rate limit state
        are unaffected.
        """
        with conn:
            try:
                self._serve(conn)
            except TimeoutError:
                logger.debug(f"[{conn.id}] {conn.client_ip} timed out")
            except RequestLineTooLong as e:
                logger.debug(f"[{conn.id}] {conn.client_ip}: {e}")
            except OSError as e:
                logger.warning(f"[{conn.id}] Connection error from {conn.client_ip}: {e}")
            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error: {e}")

    def _serve(self, conn: Connection):
        client_ip = conn.client_ip

        if self.rate_limiter.is_blocked(client_ip):
            logger.debug(f"[{conn.id}] Rejecting blocked client {client_ip}")
            self._send(conn, forbidden())
            return

        line = conn.read_request_line()

        try:
            request = parse_request_line(line, client_ip)
        except MalformedRequestLine as e:
            logger.debug(f"[{conn.id}] Dropping request: {e}")
            return

        if request.method not in ALLOWED_METHODS:
            self._send(conn, method_not_allowed(ALLOWED_METHODS))
            return

        self._send(conn, self._handler(request))

    def _send(self, conn: Connection, response: HTTPResponse) -> bool:
        if not conn.send_response(response.to_bytes()):
            return False
        response.mark_sent()
        return True
