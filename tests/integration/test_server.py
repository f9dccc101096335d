"""
End-to-end tests against a running server over real sockets.
"""

import gzip
import html
import logging
import re
import socket
from pathlib import Path

import pytest

from conftest import RunningServer, header_names, parse_response, send_raw
from staticserve import ServerConfig, StaticFileServer
from staticserve.core import Connection
from staticserve.middleware import ACCESS_LOGGER_NAME


class TestFileServing:
    """Tests for plain file responses."""

    def test_text_file(self, running_server: RunningServer):
        """Test the basic a.txt scenario."""
        response = running_server.get("/a.txt")

        assert response.status_line == "HTTP/1.1 200 OK"
        assert response.headers["Content-Type"] == "text/plain"
        assert response.headers["Content-Length"] == "5"
        assert response.headers["Connection"] == "close"
        assert "Content-Encoding" not in response.headers
        assert response.body == b"hello"

    def test_cache_headers(self, running_server: RunningServer):
        response = running_server.get("/a.txt")

        assert response.headers["Cache-Control"] == "public, max-age=3600"
        assert response.headers["Expires"].endswith(" GMT")
        assert response.headers["Date"].endswith(" GMT")

    def test_expires_fixed_for_process(self, running_server: RunningServer):
        """Test that Expires is computed once, not per request."""
        first = running_server.get("/a.txt").headers["Expires"]
        second = running_server.get("/logo.png").headers["Expires"]

        assert first == second == running_server.server.expires

    def test_png_not_compressed(self, running_server: RunningServer, doc_root: Path):
        response = running_server.get("/logo.png")

        assert response.status == 200
        assert response.headers["Content-Type"] == "image/png"
        assert "Content-Encoding" not in response.headers
        assert response.body == (doc_root / "logo.png").read_bytes()

    @pytest.mark.parametrize("path, content_type", [
        ("/style.css", "text/css"),
        ("/app.js", "application/javascript"),
        ("/site/index.html", "text/html"),
    ])
    def test_web_assets_gzipped(self, running_server: RunningServer, doc_root: Path, path, content_type):
        """Test that html, css and js arrive gzipped and decompress to the file."""
        raw = running_server.request(f"GET {path} HTTP/1.1\r\n\r\n".encode())
        response = parse_response(raw)

        assert response.status == 200
        assert response.headers["Content-Type"] == content_type
        assert response.headers["Content-Encoding"] == "gzip"
        assert int(response.headers["Content-Length"]) == len(response.body)
        assert header_names(raw).count("Content-Length") == 1
        assert gzip.decompress(response.body) == (doc_root / path.lstrip("/")).read_bytes()

    def test_query_string_ignored(self, running_server: RunningServer):
        assert running_server.get("/a.txt?v=2").body == b"hello"

    def test_percent_encoded_name(self, running_server: RunningServer, doc_root: Path):
        (doc_root / "my file.txt").write_text("spaced")
        assert running_server.get("/my%20file.txt").body == b"spaced"

    def test_plus_decodes_to_space(self, running_server: RunningServer, doc_root: Path):
        (doc_root / "a b.txt").write_text("spaced")

        response = running_server.get("/a+b.txt")

        assert response.status == 200
        assert response.body == b"spaced"

    def test_missing_file(self, running_server: RunningServer):
        response = running_server.get("/nope.txt")

        assert response.status_line == "HTTP/1.1 404 Not Found"
        assert response.headers["Content-Type"] == "text/html"
        assert response.headers["Connection"] == "close"


class TestDirectories:
    """Tests for index files and listings."""

    def test_index_served_for_directory(self, running_server: RunningServer):
        """Test that a directory with index.html serves the file, gzipped."""
        response = running_server.get("/site/")

        assert response.status == 200
        assert response.headers["Content-Type"] == "text/html"
        assert response.headers["Content-Encoding"] == "gzip"
        assert gzip.decompress(response.body) == b"<p>hi</p>"

    def test_root_index(self, doc_root: Path, config: ServerConfig):
        """Test that "/" returns the root's index.html rather than a listing."""
        (doc_root / "index.html").write_text("<p>hi</p>")
        srv = RunningServer(StaticFileServer(config))
        srv.start()

        try:
            response = srv.get("/")
        finally:
            srv.stop()

        assert response.status == 200
        assert response.headers["Content-Type"] == "text/html"
        assert gzip.decompress(response.body) == b"<p>hi</p>"

    def test_listing(self, running_server: RunningServer):
        """Test that a directory without index.html is listed."""
        response = running_server.get("/files")
        body = response.body.decode("utf-8")

        assert response.status == 200
        assert response.headers["Content-Type"] == "text/html"
        assert "Content-Encoding" not in response.headers
        assert '<a href="/files/one.txt">' in body
        assert '<a href="/files/nested/">' in body

    @pytest.mark.parametrize("name", ["what?.txt", "tag#1.txt", "100%.txt", "a+b.txt"])
    def test_listing_links_resolve(self, running_server: RunningServer, doc_root: Path, name: str):
        """Test that following a link from a listing fetches that file."""
        (doc_root / "files" / name).write_text("linked")

        body = running_server.get("/files/").body.decode("utf-8")
        match = re.search(r'<a href="([^"]*)">' + re.escape(name) + "</a>", body)
        assert match is not None

        response = running_server.get(html.unescape(match.group(1)))
        assert response.status == 200
        assert response.body == b"linked"

    def test_root_listing(self, running_server: RunningServer):
        body = running_server.get("/").body.decode("utf-8")

        for name in ("a.txt", "style.css", "app.js", "logo.png", "site/", "files/"):
            assert f'href="/{name}"' in body


class TestSecurity:
    """Tests for path containment."""

    @pytest.mark.parametrize("path", [
        "/../../etc/passwd",
        "/..",
        "/files/../../x",
        "/%2e%2e/%2e%2e/etc/passwd",
        "/..%2f..%2fetc%2fpasswd",
    ])
    def test_traversal_is_forbidden(self, running_server: RunningServer, path: str):
        """Test that every escape gets 403, never 404 or 200."""
        raw = running_server.request(f"GET {path} HTTP/1.1\r\n\r\n".encode())
        response = parse_response(raw)

        assert response.status_line == "HTTP/1.1 403 Forbidden"
        assert b"root:" not in response.body

    def test_absolute_path_stays_in_root(self, running_server: RunningServer):
        """Test that //etc/passwd is looked up under the root."""
        assert running_server.get("//etc/passwd").status == 404


class TestMethods:
    """Tests for method handling."""

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "HEAD", "get"])
    def test_non_get_is_405(self, running_server: RunningServer, method: str):
        raw = running_server.request(f"{method} /a.txt HTTP/1.1\r\n\r\n".encode())
        response = parse_response(raw)

        assert response.status_line == "HTTP/1.1 405 Method Not Allowed"
        assert response.headers["Allow"] == "GET"
        assert response.headers["Connection"] == "close"

    def test_non_get_not_counted(self, running_server: RunningServer):
        running_server.request(b"POST /a.txt HTTP/1.1\r\n\r\n")

        assert running_server.server.rate_limiter.request_count("127.0.0.1") == 0


class TestMalformedRequests:
    """Tests for requests that get no response at all."""

    @pytest.mark.parametrize("raw", [b"", b"\r\n", b"GET\r\n", b"GARBAGE\r\n\r\n"])
    def test_closed_without_response(self, running_server: RunningServer, raw: bytes):
        assert running_server.request(raw) == b""

    def test_server_survives_malformed(self, running_server: RunningServer):
        running_server.request(b"\r\n")
        assert running_server.get("/a.txt").body == b"hello"

    def test_request_line_without_version(self, running_server: RunningServer):
        assert parse_response(running_server.request(b"GET /a.txt\r\n")).body == b"hello"


class TestRateLimiting:
    """Tests for per-IP rate limiting over the wire."""

    def test_101st_request_forbidden(self, running_server: RunningServer):
        statuses = [running_server.get("/a.txt").status for _ in range(101)]

        assert statuses[:100] == [200] * 100
        assert statuses[100] == 403

    def test_blocked_client_stays_blocked(self, running_server: RunningServer):
        """Test that a blocked IP gets 403 for everything, including 405s."""
        limiter = running_server.server.rate_limiter
        for _ in range(101):
            limiter.check_and_record("127.0.0.1")

        assert running_server.get("/a.txt").status == 403
        assert parse_response(running_server.request(b"POST / HTTP/1.1\r\n\r\n")).status == 403
        # Blocked requests are not counted
        assert limiter.request_count("127.0.0.1") == 101

    def test_blocked_client_needs_no_request_line(self, running_server: RunningServer):
        """Test that a blocked client is answered before it sends anything."""
        limiter = running_server.server.rate_limiter
        for _ in range(101):
            limiter.check_and_record("127.0.0.1")

        raw = running_server.request(b"")
        assert parse_response(raw).status == 403

    def test_served_again_after_reset(self, running_server: RunningServer):
        limiter = running_server.server.rate_limiter
        for _ in range(101):
            limiter.check_and_record("127.0.0.1")

        limiter.reset("127.0.0.1")

        assert running_server.get("/a.txt").status == 200


class TestAccessLog:
    """Tests for the access log."""

    def test_success_logged(self, running_server: RunningServer, caplog):
        caplog.set_level(logging.INFO, logger=ACCESS_LOGGER_NAME)

        running_server.get("/a.txt")
        running_server.get("/files")

        lines = [r.getMessage() for r in caplog.records if r.name == ACCESS_LOGGER_NAME]
        assert any(line.endswith("] 127.0.0.1 GET /a.txt 200") for line in lines)
        assert any(line.endswith("] 127.0.0.1 GET /files 200") for line in lines)

    def test_failures_not_logged(self, running_server: RunningServer, caplog):
        caplog.set_level(logging.INFO, logger=ACCESS_LOGGER_NAME)

        running_server.get("/missing.txt")
        running_server.get("/../x")
        running_server.request(b"POST / HTTP/1.1\r\n\r\n")

        assert [r for r in caplog.records if r.name == ACCESS_LOGGER_NAME] == []

    def test_failed_write_not_logged(self, running_server: RunningServer, caplog, monkeypatch):
        """Test that a 200 the client never received leaves no access line."""
        caplog.set_level(logging.INFO, logger=ACCESS_LOGGER_NAME)
        monkeypatch.setattr(Connection, "send_response", lambda self, data: False)

        assert running_server.request(b"GET /a.txt HTTP/1.1\r\n\r\n") == b""
        assert [r for r in caplog.records if r.name == ACCESS_LOGGER_NAME] == []


class TestLifecycle:
    """Tests for startup and shutdown."""

    def test_port_zero_gets_real_port(self, running_server: RunningServer):
        assert running_server.port != 0

    def test_bind_failure_raises(self, config: ServerConfig):
        import dataclasses

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            server = StaticFileServer(dataclasses.replace(config, port=port))
            with pytest.raises(OSError):
                server.run()

    def test_shutdown_stops_accepting(self, config: ServerConfig):
        srv = RunningServer(StaticFileServer(config))
        srv.start()
        port = srv.port

        srv.stop()

        with pytest.raises(OSError):
            send_raw(port, b"GET / HTTP/1.1\r\n\r\n", timeout=1.0)

    def test_concurrent_clients(self, running_server: RunningServer):
        import threading

        results = []
        lock = threading.Lock()

        def client():
            response = running_server.get("/a.txt")
            with lock:
                results.append(response.body)

        threads = [threading.Thread(target=client) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [b"hello"] * 20
