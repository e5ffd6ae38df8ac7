"""
=============================================================================
HTTP REQUEST READING
=============================================================================

The server only needs two things from a request: the METHOD and the PATH.
Everything else a browser sends (Host, User-Agent, Accept, cookies...) is
read off the socket and thrown away.

=============================================================================
WHAT ARRIVES ON THE SOCKET
=============================================================================

    GET /photos/cat.png?size=large HTTP/1.1\r\n    ← request line (parsed)
    Host: 192.168.1.23:8080\r\n                    ← header   (discarded)
    User-Agent: Mozilla/5.0 ...\r\n                ← header   (discarded)
    Accept: image/*\r\n                            ← header   (discarded)
    \r\n                                           ← end of header block

The request line splits on whitespace into tokens:

    "GET"  "/photos/cat.png?size=large"  "HTTP/1.1"
      │               │                       │
    method        raw path               version (optional here)

=============================================================================
WHY DRAIN THE HEADERS AT ALL?
=============================================================================

If we answer and close the socket while the client's header bytes are still
sitting unread in the kernel's receive buffer, most TCP stacks send a RST
instead of a clean FIN. The browser may then throw away our response and
report "connection reset". Reading up to the blank line avoids that.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional

from ..exceptions import HTTPParseError
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)

# Browsers percent-encode paths, but curl and friends send file names as
# raw UTF-8. Bytes that are not valid UTF-8 survive as surrogates, so
# decoding never fails and the file system sees the exact bytes again.
WIRE_ENCODING = "utf-8"
WIRE_ERRORS = "surrogateescape"

DEFAULT_MAX_LINE_SIZE = 8192


@dataclass(frozen=True)
class IncomingRequest:
    """
    The parsed request line.

    Attributes:
        method: Request method exactly as sent (e.g. "GET").
        raw_path: Request target, query string included (e.g. "/a.txt?x=1").
        version: Protocol token if the client sent one, else "".
    """

    method: str
    raw_path: str
    version: str = ""


class RequestReader:
    """
    Reads one request from a connection's input stream.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       read() outcomes                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   EOF before any byte, or blank first line ──► None (no response)   │
    │   Request line too long ─────────────────────► HTTPParseError(400)  │
    │   Fewer than two tokens ─────────────────────► HTTPParseError(400)  │
    │   Otherwise ─────────────────────────────────► IncomingRequest      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        reader = RequestReader(max_line_size=8192)
        request = reader.read(conn.rfile)
    """

    def __init__(self, max_line_size: int = DEFAULT_MAX_LINE_SIZE):
        self.max_line_size = max_line_size

    def read(self, rfile: BinaryIO) -> Optional[IncomingRequest]:
        """
        Read and parse the request line, then drain the header block.

        Args:
            rfile: Buffered binary stream over the client socket.

        Returns:
            The parsed request, or None when the client sent nothing usable.

        Raises:
            HTTPParseError: The request line is malformed.
            OSError: The socket failed or timed out while reading.
        """
        raw_line = rfile.readline(self.max_line_size + 1)
        if not raw_line:
            return None  # Client connected and closed without sending

        if len(raw_line) > self.max_line_size:
            # Don't bother draining: whatever follows is not a header block
            # we can trust to end soon.
            raise HTTPParseError("Request line too long", HTTPStatus.BAD_REQUEST)

        line = raw_line.decode(WIRE_ENCODING, WIRE_ERRORS).rstrip("\r\n")
        if not line:
            return None

        self._discard_headers(rfile)
        return parse_request_line(line)

    def _discard_headers(self, rfile: BinaryIO) -> int:
        """
        Read and drop header lines until the blank line or EOF.

        Overlong lines are consumed in max_line_size pieces, so a client
        can't make us buffer an unbounded header.

        Returns:
            Number of header bytes discarded (for debug logging).
        """
        discarded = 0
        while True:
            chunk = rfile.readline(self.max_line_size + 1)
            if not chunk or chunk in (b"\r\n", b"\n"):
                break
            discarded += len(chunk)
        if discarded:
            logger.debug(f"Discarded {discarded} header bytes")
        return discarded


def parse_request_line(line: str) -> IncomingRequest:
    """
    Split a decoded request line into an IncomingRequest.

        >>> parse_request_line("GET /index.html HTTP/1.1")
        IncomingRequest(method='GET', raw_path='/index.html', version='HTTP/1.1')

    Raises:
        HTTPParseError: Fewer than two whitespace-separated tokens.
    """
    parts = line.split()
    if len(parts) < 2:
        raise HTTPParseError(f"Malformed request line: {line!r}", HTTPStatus.BAD_REQUEST)

    method, raw_path = parts[0], parts[1]
    version = parts[2] if len(parts) > 2 else ""
    return IncomingRequest(method=method, raw_path=raw_path, version=version)
