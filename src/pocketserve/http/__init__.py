"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

The small slice of HTTP/1.1 this server speaks:

    REQUEST (read):                    RESPONSE (written):
    ───────────────                    ───────────────────
    GET /path?q HTTP/1.1\r\n           HTTP/1.1 200 OK\r\n
    Header: ignored\r\n                Content-Type: text/html\r\n
    \r\n                               Content-Length: 42\r\n
                                       Connection: close\r\n
                                       Access-Control-Allow-Origin: *\r\n
                                       \r\n
                                       <body>

    request.py       RequestReader → IncomingRequest(method, raw_path)
    response.py      HTTPResponse + ResponseWriter (literal or streamed file)
    status_codes.py  The six status codes and their reason phrases
    mime_types.py    File extension → Content-Type

=============================================================================
"""

from .request import IncomingRequest, RequestReader, parse_request_line
from .response import HTTPResponse, ResponseWriter, text_response, file_response
from .status_codes import HTTPStatus, status_text
from .mime_types import get_mime_type, MIME_TYPES, DEFAULT_MIME_TYPE

__all__ = [
    # Request reading
    "IncomingRequest",
    "RequestReader",
    "parse_request_line",

    # Response writing
    "HTTPResponse",
    "ResponseWriter",
    "text_response",
    "file_response",

    # Status codes
    "HTTPStatus",
    "status_text",

    # MIME types
    "get_mime_type",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
]
