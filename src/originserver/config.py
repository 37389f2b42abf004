"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the origin server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── originserver --port 3000                                   │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 originserver                                │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog, buffer_size, read_timeout

    REQUEST LIMITS
    - request_line_limit, header_limit, body_limit

    APPLICATION
    - directory, gzip_level

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 4221
    """
    The port number to listen on. 0 asks the OS for a free port, which
    the server then reports in its "listening on" log line.
    """

    backlog: int = 128
    """Maximum number of connections queued by the kernel before accept()."""

    buffer_size: int = 8192
    """Size of each connection's read buffer in bytes."""

    read_timeout: Optional[float] = 10.0
    """
    Seconds a single socket read may block before the connection is
    dropped. Applies between keep-alive requests as well as within one.
    None = wait forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    request_line_limit: int = 1024
    """Budget in bytes for the request line, CRLF included."""

    header_limit: int = 8192
    """Budget in bytes for the whole header block, blank line included."""

    body_limit: int = 8192
    """Largest Content-Length accepted for a request body."""

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """
    Base directory for the /files/ endpoints. When None, /files/ is not
    mounted at all.
    """

    gzip_level: int = 1
    """Compression level for gzip responses, 1 (fastest) to 9."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST          Server host (default: 127.0.0.1)
        HTTP_PORT          Server port (default: 4221)
        HTTP_READ_TIMEOUT  Read timeout in seconds (default: 10)
        HTTP_DIRECTORY     Base directory for /files/ (default: None)
        HTTP_LOG_LEVEL     Logging level (default: INFO)

        =====================================================================

        Raises:
            ValueError: a numeric variable does not parse.
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "4221")),
            read_timeout=float(os.getenv("HTTP_READ_TIMEOUT", "10")),
            directory=os.getenv("HTTP_DIRECTORY"),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    @property
    def log_level_value(self) -> int:
        """The numeric logging level, e.g. logging.INFO."""
        return getattr(logging, self.log_level.upper())

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast: a bad value is reported at startup, not on the first
        request that happens to need it.

        Raises:
            ValueError: describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError("read_timeout must be > 0")

        for name in ("request_line_limit", "header_limit", "body_limit"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")

        if not 1 <= self.gzip_level <= 9:
            raise ValueError(f"gzip_level must be 1-9, got {self.gzip_level}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
