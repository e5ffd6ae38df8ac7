"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with buffered file-like streams, a state
tag for logging, and a careful close sequence.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

When a browser sends

    GET /index.html HTTP/1.1\r\n
    Host: 192.168.1.23:8080\r\n
    \r\n

the server may receive it in one recv() or in five. TCP only guarantees the
bytes arrive in order. Rather than juggling a buffer by hand we ask the
socket for a buffered binary file (socket.makefile("rb")), whose readline()
keeps calling recv() until it sees "\n". The response side gets a matching
buffered writer (makefile("wb")), flushed once per response.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

There is no keep-alive. Every connection goes through the same short life:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
              │                                       ▲
              └──── nothing to answer ────────────────┘

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)

# close() reads leftover client bytes for at most this long, and at most
# this many of them, so a client that never stops sending can't hold a
# worker.
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Where a connection is in its single request/response cycle."""

    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Reading the request line and headers
    PROCESSING = "processing"  # Resolving the path, opening the file
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    An accepted client connection.

    Attributes:
        socket: The client socket returned by accept().
        address: Client's (ip, port) tuple.
        id: Short random identifier used to tag log lines.
        state: Current ConnectionState.
        created_at: Time the connection was accepted.
        timeout: Socket timeout for reads and writes (None blocks forever).

    Usage:
        with Connection(sock, addr, timeout=30.0) as conn:
            line = conn.rfile.readline()
            conn.wfile.write(b"...")
        # socket shut down and closed here
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    timeout: Optional[float] = None

    _rfile: Optional[BinaryIO] = field(default=None, repr=False)
    _wfile: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # settimeout(None) puts the socket in plain blocking mode
        self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def rfile(self) -> BinaryIO:
        """Buffered reader over the socket (created on first use)."""
        if self._rfile is None:
            self._rfile = self.socket.makefile("rb")
        return self._rfile

    @property
    def wfile(self) -> BinaryIO:
        """Buffered writer over the socket (created on first use)."""
        if self._wfile is None:
            self._wfile = self.socket.makefile("wb")
        return self._wfile

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    Close Sequence                                │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   1. Flush and close the buffered streams                       │
        │   2. shutdown(SHUT_WR)  → FIN to the client: "no more data"     │
        │   3. Drain anything the client still sends (bounded)            │
        │   4. close()            → release the file descriptor           │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Draining before close() matters: closing with unread bytes in the
        receive buffer makes the kernel answer with RST, and the client may
        discard the response it has not yet read.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        for stream in (self._wfile, self._rfile):
            if stream is None:
                continue
            try:
                stream.close()  # Flushes the writer
            except OSError:
                pass  # Client already gone

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Includes socket.timeout: we're closing anyway

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
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
