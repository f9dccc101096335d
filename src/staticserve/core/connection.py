"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: read a single request line, write a
single response, close.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

Every response carries "Connection: close", so a connection lives for
exactly one request:

    accept ──► read request line ──► send response ──► close

Only the request line is read. Headers the client sends after it are
never parsed; whatever is left unread in the kernel buffer is drained
during close().

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

TCP does not preserve message boundaries. The request line

    GET /index.html HTTP/1.1\r\n

may arrive as "GET /ind" in one recv() and "ex.html HTTP/1.1\r\n" in the
next. read_request_line() buffers chunks until it sees the line
terminator, the peer closes, or the line grows past max_request_line.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► WRITING ──────► CLOSING ──────► CLOSED
     │             │                                ▲
     └─────────────┴────────────────────────────────┘
                 (EOF, timeout, malformed)

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and cleanup."""

    NEW = "new"              # Just accepted, nothing read yet
    READING = "reading"      # Waiting for the request line
    WRITING = "writing"      # Sending the response
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


class RequestLineTooLong(Exception):
    """The client sent more than max_request_line bytes without a newline."""


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier for log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        buffer_size: Bytes requested per recv() call.
        timeout: Socket timeout in seconds (None blocks forever).
        max_request_line: Longest request line accepted, in bytes.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_line: int = 8192

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request_line(self) -> Optional[str]:
        """
        Read the first line the client sends.

        Reads until "\\n" or end of stream. The trailing "\\r\\n" (or bare
        "\\n") is stripped and the bytes are decoded as UTF-8, replacing
        invalid sequences.

        Returns:
            The line without its terminator, or None if the client closed
            the connection without sending anything.

        Raises:
            TimeoutError: If the client stays silent past the timeout.
            RequestLineTooLong: If no newline arrives within
                max_request_line bytes.
        """
        self.state = ConnectionState.READING

        try:
            while b"\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk

                if len(self._buffer) > self.max_request_line:
                    raise RequestLineTooLong(
                        f"Request line exceeds {self.max_request_line} bytes"
                    )
        except socket.timeout:
            raise TimeoutError("Request line read timeout")

        if not self._buffer:
            return None

        line, _, rest = self._buffer.partition(b"\n")
        self._buffer = rest

        if len(line) > self.max_request_line:
            raise RequestLineTooLong(
                f"Request line exceeds {self.max_request_line} bytes"
            )

        return line.rstrip(b"\r").decode("utf-8", errors="replace")

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        Uses sendall(), since send() may write only part of the data.

        Returns:
            True if send succeeded, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send to {self.client_ip} failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN, telling the client we're done
        2. Drain whatever the client still sends (headers we never read)
        3. close() releases the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows:

            with conn:
                line = conn.read_request_line()
                conn.send_response(data)
            # Connection closed here
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
