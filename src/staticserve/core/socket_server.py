"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Listens on a TCP port and hands every accepted connection to a callback.
Knows nothing about HTTP.

=============================================================================
SOCKET LIFECYCLE (server side)
=============================================================================

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT
    3. listen()    Mark socket as a "listening" socket
    4. accept()    Wait for and accept an incoming connection
    5. close()     Release the socket resources

    ┌──────────┐     ┌──────────┐     ┌──────────┐     ┌──────────┐
    │ socket() │ ──► │  bind()  │ ──► │ listen() │ ──► │ accept() │◄─┐
    └──────────┘     └──────────┘     └──────────┘     └────┬─────┘  │
                                                             │        │
                                                   Connection(...)    │
                                                             │        │
                                                  connection_handler ─┘

Each accept() creates a new socket for that specific client; the
listening socket keeps listening.

=============================================================================
PORT 0
=============================================================================

Binding to port 0 lets the OS pick a free port. The `address` property
reports the port actually bound, and wait_until_ready() blocks until the
socket is listening, so tests can start a server in a thread and connect
to it without racing.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Features:
    - SO_REUSEADDR and TCP_NODELAY
    - Signal handling (SIGTERM, SIGINT) when run from the main thread
    - Graceful shutdown from any thread

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        The socket is created lazily in bind() or start().

        Args:
            config: Server configuration containing host, port, backlog, etc.
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._running = False
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        Get the server's address (IP, port).

        Once listening this is the address actually bound, which differs
        from the configured one when port 0 was requested.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are written in one sendall(); don't let Nagle hold them
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to check the running flag
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """
        Setup signal handlers for graceful shutdown.

        SIGTERM (docker stop, systemd, kill) and SIGINT (Ctrl+C) both
        trigger shutdown(). Python only allows installing handlers from
        the main thread; a server started from any other thread (tests,
        embedding) leaves signal handling to its host.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def bind(self):
        """
        Create the listening socket without accepting anything yet.

        start() calls this itself when needed. Calling it first lets the
        caller learn the bound address, or a bind failure, before the
        accept loop blocks.

        Raises:
            OSError: If the address cannot be bound (port in use,
                     permission denied, unknown host).
        """
        if self._socket is not None:
            return

        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Start accepting connections.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with each accepted Connection.

        Raises:
            OSError: If the address cannot be bound.
        """
        self.bind()

        self._running = True
        self._setup_signals()
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                # Periodic wakeup to check self._running
                continue
            except OSError as e:
                # Usually means the socket was closed during shutdown
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_request_line=self.config.max_request_line,
            )

            # Hand off to the HTTP server (which submits to the thread pool)
            connection_handler(conn)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the socket is bound and listening.

        Returns:
            True once ready, False on timeout.
        """
        return self._ready_event.wait(timeout)

    def shutdown(self):
        """
        Initiate graceful shutdown.

        Safe to call from a signal handler, from another thread, and
        more than once.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")
