"""
=============================================================================
HTTP RESPONSE WRITING
=============================================================================

Every response this server sends has the same shape:

    HTTP/1.1 200 OK\r\n                          ← status line
    Content-Type: text/html\r\n
    Content-Length: 42\r\n                       ← exact body size in bytes
    Connection: close\r\n                        ← one request per connection
    Access-Control-Allow-Origin: *\r\n           ← browsers on other origins
    \r\n                                         ← end of headers
    <42 bytes of body>

The body comes from one of two sources:

    LITERAL   bytes already in memory (the plain-text error pages)
    FILE      an open file, streamed in fixed-size chunks so a 2 GB video
              never has to fit in memory

=============================================================================
WHY CONTENT-LENGTH MUST BE EXACT
=============================================================================

With "Connection: close" a client could in theory read until EOF, but
browsers trust Content-Length: too small and the tail of the file is cut
off, too big and the download hangs until the socket closes and is then
reported as failed. For literal bodies we measure the encoded bytes; for
files we use the size of the already-open file (fstat), not of whatever
the path points at later.

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

from .status_codes import HTTPStatus, status_text


logger = logging.getLogger(__name__)

HTTP_VERSION = "HTTP/1.1"
DEFAULT_CHUNK_SIZE = 8192
TEXT_CONTENT_TYPE = "text/plain"


@dataclass
class HTTPResponse:
    """
    A response waiting to be written.

    Exactly one of `body` or `file` is the body source. A response is
    consumed once by ResponseWriter.write(), which also closes `file`.

    Attributes:
        status: Status code (HTTPStatus, or a plain int).
        content_type: Value of the Content-Type header.
        body: Literal body bytes.
        file: Open binary file to stream instead of `body`.
        content_length: Size of `file` in bytes; ignored for literal bodies.
    """

    status: Union[HTTPStatus, int] = HTTPStatus.OK
    content_type: str = TEXT_CONTENT_TYPE
    body: bytes = b""
    file: Optional[BinaryIO] = None
    content_length: Optional[int] = None

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{HTTP_VERSION} {int(self.status)} {status_text(self.status)}"

    @property
    def is_file(self) -> bool:
        return self.file is not None

    @property
    def body_length(self) -> int:
        """Number of body bytes that will follow the headers."""
        if self.file is not None:
            return self.content_length or 0
        return len(self.body)

    def header_bytes(self) -> bytes:
        """Serialize the status line and the fixed header set."""
        lines = [
            self.status_line,
            f"Content-Type: {self.content_type}",
            f"Content-Length: {self.body_length}",
            "Connection: close",
            "Access-Control-Allow-Origin: *",
            "",
            "",
        ]
        return "\r\n".join(lines).encode("latin-1")

    def close(self):
        """Release the file handle, if any. Safe to call twice."""
        if self.file is not None:
            self.file.close()


# =============================================================================
# FACTORIES
# =============================================================================

def text_response(status: Union[HTTPStatus, int], message: Optional[str] = None) -> HTTPResponse:
    """
    Build a plain-text response.

    The body defaults to the reason phrase, so a 404 reads "Not Found".

        >>> text_response(HTTPStatus.FORBIDDEN).body
        b'Forbidden'
    """
    if message is None:
        message = status_text(status)
    return HTTPResponse(
        status=status,
        content_type=TEXT_CONTENT_TYPE,
        body=message.encode("utf-8"),
    )


def file_response(path: Union[str, os.PathLike], content_type: str) -> HTTPResponse:
    """
    Open a file for streaming as a 200 OK response.

    The size is taken from the open descriptor so the Content-Length
    matches what we will actually read.

    Raises:
        OSError: The file could not be opened or stat'ed.
    """
    f = open(path, "rb")
    try:
        size = os.fstat(f.fileno()).st_size
    except OSError:
        f.close()
        raise
    return HTTPResponse(
        status=HTTPStatus.OK,
        content_type=content_type,
        file=f,
        content_length=size,
    )


# =============================================================================
# WRITER
# =============================================================================

class ResponseWriter:
    """
    Writes HTTPResponse objects onto a binary output stream.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     write(response) flow                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   header_bytes() ──► wfile.write()                                  │
    │          │                                                           │
    │          ├── literal ──► wfile.write(body)                          │
    │          │                                                           │
    │          └── file ────► loop: read(chunk_size) ──► wfile.write()    │
    │                              until EOF or content_length reached    │
    │                                                                      │
    │   wfile.flush()                                                     │
    │   response.close()   (always, even on error)                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        writer = ResponseWriter(conn.wfile, chunk_size=8192)
        sent = writer.write(text_response(HTTPStatus.NOT_FOUND))
    """

    def __init__(self, wfile: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.wfile = wfile
        self.chunk_size = chunk_size
        # Set once the first header byte has gone out; after that an error
        # page can no longer be sent on this stream.
        self.headers_sent = False

    def write(self, response: HTTPResponse) -> int:
        """
        Write the full response and flush.

        Returns:
            Number of body bytes written.

        Raises:
            OSError: The client went away or the file could not be read.
        """
        try:
            self.wfile.write(response.header_bytes())
            self.headers_sent = True

            if response.is_file:
                written = self._stream_file(response.file, response.body_length)
            else:
                self.wfile.write(response.body)
                written = len(response.body)

            self.wfile.flush()
            return written
        finally:
            response.close()

    def _stream_file(self, f: BinaryIO, length: int) -> int:
        """
        Copy up to `length` bytes from f in chunk_size pieces.

        Never writes more than announced in Content-Length, even if the
        file grew after it was opened.
        """
        remaining = length
        written = 0
        while remaining > 0:
            chunk = f.read(min(self.chunk_size, remaining))
            if not chunk:
                break
            self.wfile.write(chunk)
            written += len(chunk)
            remaining -= len(chunk)

        if written < length:
            # File shrank underneath us; the client will see a short body.
            logger.warning(f"File truncated while streaming: sent {written} of {length} bytes")
        return written
