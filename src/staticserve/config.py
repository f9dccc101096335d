"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server in one typed, validated place.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    defaults (this file)
        ▲ overridden by
    environment variables (ServerConfig.from_env)
        ▲ overridden by
    command line (--port, --dir)

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the static file server.

    Frozen: build a modified copy with dataclasses.replace() rather than
    mutating a config the server already holds.

        ServerConfig(port=8080, root_dir="/srv/www")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """The IP address to bind to. "0.0.0.0" listens on all interfaces."""

    port: int = 8000
    """The port to listen on. 0 asks the OS for a free port."""

    backlog: int = 128
    """Connections the kernel queues while every worker is busy."""

    buffer_size: int = 8192
    """Bytes per recv() call."""

    timeout: Optional[float] = 30.0
    """
    Seconds a client may stay silent before its connection is dropped.
    None waits forever.
    """

    max_request_line: int = 8192
    """Longest request line accepted, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # DOCUMENT ROOT
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """Directory whose contents are served."""

    cache_max_age: int = 3600
    """Seconds for Cache-Control max-age and the Expires header."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 64
    queue_size: int = 256

    # ─────────────────────────────────────────────────────────────────────
    # RATE LIMITING
    # ─────────────────────────────────────────────────────────────────────

    rate_limit: int = 100
    """Requests an IP may make before it is blocked."""

    block_seconds: float = 300.0
    """How long a block lasts."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Diagnostics level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @property
    def root_path(self) -> Path:
        """The document root as an absolute, symlink-free path."""
        return Path(self.root_dir).resolve()

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

            HTTP_HOST       Server host (default: 0.0.0.0)
            HTTP_PORT       Server port (default: 8000)
            HTTP_ROOT_DIR   Document root (default: .)
            HTTP_WORKERS    Max worker threads (default: 64)
            HTTP_TIMEOUT    Client read timeout in seconds (default: 30)
            HTTP_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================

        Raises:
            ValueError: If a numeric variable doesn't parse.
        """
        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8000")),
            root_dir=os.getenv("HTTP_ROOT_DIR", "."),
            max_workers=int(os.getenv("HTTP_WORKERS", "64")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails immediately instead of on
        the first request.

        Raises:
            ValueError: Describing the first invalid value found.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.rate_limit < 0:
            raise ValueError("rate_limit must be >= 0")

        if not Path(self.root_dir).is_dir():
            raise ValueError(f"Root directory does not exist: {self.root_dir}")
