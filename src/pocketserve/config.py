"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything tunable about the server lives in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Arguments to start() / command-line flags                      │
    │      └── python -m pocketserve --port 3000 --root ./share          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── POCKETSERVE_PORT=3000 python -m pocketserve               │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
DEFAULTS
=============================================================================

The defaults describe the intended deployment: a phone or laptop sharing a
folder with a few devices on the same WiFi.

    host 0.0.0.0     reachable from the LAN, not just localhost
    max_workers 10   enough for a browser's parallel fetches
    chunk_size 8 KiB streaming granularity for file bodies
    timeout 30 s     a stalled client frees its worker eventually

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigError


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK      host, port, backlog, timeout
    FILES        document_root, index_file, strict_containment
    HTTP         chunk_size, max_line_size
    THREADING    max_workers
    LOGGING      log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All interfaces (other devices on the WiFi can connect)
    - "127.0.0.1" - This machine only
    """

    port: int = 8080
    """The port to listen on. 0 asks the OS for any free port."""

    backlog: int = 50
    """Connections the OS queues before accept() picks them up."""

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds, for reads and writes alike.
    None = block forever: a client that connects and never sends anything
    then holds a worker until it disconnects.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "."
    """Directory whose files are served. Fixed while the server runs."""

    index_file: str = "index.html"
    """File served for a request to "/"."""

    strict_containment: bool = True
    """
    In addition to refusing paths containing "..", require the canonical
    file path to stay inside the canonical document root. Blocks symlinks
    that point outside the share.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    chunk_size: int = 8192
    """Bytes read from disk and written to the socket per iteration."""

    max_line_size: int = 8192
    """Longest request line accepted; longer lines get 400 Bad Request."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 10
    """Connections handled concurrently. Extra connections wait in a queue."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level used by the command-line host."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        POCKETSERVE_HOST        Bind address (default: 0.0.0.0)
        POCKETSERVE_PORT        Port (default: 8080)
        POCKETSERVE_ROOT        Document root (default: .)
        POCKETSERVE_WORKERS     Worker threads (default: 10)
        POCKETSERVE_TIMEOUT     Socket timeout in seconds, "none" to disable
        POCKETSERVE_LOG_LEVEL   Logging level (default: INFO)
        POCKETSERVE_LOG_FORMAT  Access log format (default: text)

        Keyword arguments override the environment.

        =====================================================================
        """
        try:
            values = dict(
                host=os.getenv("POCKETSERVE_HOST", "0.0.0.0"),
                port=int(os.getenv("POCKETSERVE_PORT", "8080")),
                document_root=os.getenv("POCKETSERVE_ROOT", "."),
                max_workers=int(os.getenv("POCKETSERVE_WORKERS", "10")),
                timeout=_parse_timeout(os.getenv("POCKETSERVE_TIMEOUT", "30")),
                log_level=os.getenv("POCKETSERVE_LOG_LEVEL", "INFO"),
                log_format=os.getenv("POCKETSERVE_LOG_FORMAT", "text"),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid environment configuration: {e}") from e

        values.update(overrides)
        return cls(**values)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by the server before it binds anything, so a bad value is
        reported as a failed start instead of a crash on the first request.

        Raises:
            ConfigError: A value is out of range.
        """
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ConfigError(f"Invalid port: {self.port!r}. Must be an integer.")

        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.max_workers < 1:
            raise ConfigError("max_workers must be >= 1")

        if self.backlog < 1:
            raise ConfigError("backlog must be >= 1")

        if self.chunk_size < 1024:
            raise ConfigError("chunk_size must be >= 1024")

        if self.max_line_size < 1024:
            raise ConfigError("max_line_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be > 0 (or None to disable)")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {', '.join(LOG_FORMATS)}")

        if not self.document_root:
            raise ConfigError("document_root must not be empty")


def _parse_timeout(value: str) -> Optional[float]:
    if value.strip().lower() in ("", "none", "0"):
        return None
    return float(value)
