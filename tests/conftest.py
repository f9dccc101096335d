"""
pytest configuration and fixtures.
"""

import logging
import socket
import threading
from pathlib import Path
from typing import Dict, Generator, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserve import StaticFileServer, ServerConfig
from staticserve.middleware import ACCESS_LOGGER_NAME


@pytest.fixture(autouse=True, scope="session")
def quiet_access_log():
    """
    Keep the server from attaching its stdout handler to the access log.

    The server only adds that handler when the logger has none, and it
    would outlive pytest's per-test stdout capture. With a NullHandler
    in place records still propagate, so caplog sees them.
    """
    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
    handler = logging.NullHandler()
    access_logger.addHandler(handler)
    yield
    access_logger.removeHandler(handler)


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """
    A document root with a little of everything:

        root/
        ├── a.txt            "hello"
        ├── style.css
        ├── app.js
        ├── logo.png
        ├── site/
        │   └── index.html
        └── files/
            ├── one.txt
            └── nested/
    """
    root = tmp_path / "root"
    root.mkdir()

    (root / "a.txt").write_text("hello")
    (root / "style.css").write_text("body { color: red; }\n" * 20)
    (root / "app.js").write_text("console.log('hi');\n" * 20)
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(range(256)))

    site = root / "site"
    site.mkdir()
    (site / "index.html").write_text("<p>hi</p>")

    files = root / "files"
    files.mkdir()
    (files / "one.txt").write_text("one")
    (files / "nested").mkdir()

    return root


@pytest.fixture
def config(doc_root: Path) -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root_dir=str(doc_root),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


class RunningServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: StaticFileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes and read the whole response."""
        return send_raw(self.port, raw)

    def get(self, path: str) -> "ParsedResponse":
        """GET a path and parse the response."""
        raw = self.request(f"GET {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode())
        return parse_response(raw)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """A server on an OS-assigned port serving doc_root."""
    srv = RunningServer(StaticFileServer(config))
    srv.start()

    yield srv

    srv.stop()


# =============================================================================
# RAW HTTP HELPERS
# =============================================================================

def send_raw(port: int, raw: bytes, timeout: float = 5.0) -> bytes:
    """Connect, send raw bytes, and read until the server closes."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        if raw:
            s.sendall(raw)
        s.shutdown(socket.SHUT_WR)

        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)

    return b"".join(chunks)


class ParsedResponse:
    """A response split into status line, headers and body."""

    def __init__(self, status_line: str, headers: Dict[str, str], body: bytes):
        self.status_line = status_line
        self.headers = headers
        self.body = body

    @property
    def status(self) -> int:
        return int(self.status_line.split(" ")[1])


def parse_response(raw: bytes) -> ParsedResponse:
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")

    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip()] = value.strip()

    return ParsedResponse(lines[0], headers, body)


def header_names(raw: bytes) -> Tuple[str, ...]:
    """Header names in wire order, duplicates included."""
    head = raw.partition(b"\r\n\r\n")[0].decode("utf-8")
    return tuple(line.partition(":")[0] for line in head.split("\r\n")[1:])
