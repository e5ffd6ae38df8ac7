"""
Unit tests for response serialization and status codes.
"""

import io

import pytest

from pocketserve.http.response import (
    HTTPResponse,
    ResponseWriter,
    text_response,
    file_response,
)
from pocketserve.http.status_codes import HTTPStatus, status_text


def split(raw: bytes):
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


class TestStatusCodes:
    """Tests for HTTPStatus and status_text()."""

    @pytest.mark.parametrize("code,text", [
        (200, "OK"),
        (400, "Bad Request"),
        (403, "Forbidden"),
        (404, "Not Found"),
        (405, "Method Not Allowed"),
        (500, "Internal Server Error"),
    ])
    def test_known_codes(self, code, text):
        assert status_text(code) == text

    def test_unknown_code(self):
        assert status_text(418) == "Unknown"
        assert status_text(302) == "Unknown"

    def test_is_error(self):
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error


class TestHTTPResponse:
    """Tests for HTTPResponse."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_status_line_unknown_code(self):
        assert HTTPResponse(status=418).status_line == "HTTP/1.1 418 Unknown"

    def test_fixed_header_set(self):
        response = HTTPResponse(content_type="text/html", body=b"hello")

        assert response.header_bytes() == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/html\r\n"
            b"Content-Length: 5\r\n"
            b"Connection: close\r\n"
            b"Access-Control-Allow-Origin: *\r\n"
            b"\r\n"
        )

    def test_text_response_body_is_phrase(self):
        response = text_response(HTTPStatus.NOT_FOUND)

        assert response.status == 404
        assert response.content_type == "text/plain"
        assert response.body == b"Not Found"

    def test_text_response_custom_message(self):
        assert text_response(HTTPStatus.BAD_REQUEST, "nope").body == b"nope"

    def test_file_response_uses_file_size(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(b"\x89PNG" + b"\x00" * 96)

        response = file_response(path, "image/png")
        try:
            assert response.is_file
            assert response.content_length == 100
            assert response.body_length == 100
        finally:
            response.close()

    def test_file_response_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            file_response(tmp_path / "nope.txt", "text/plain")


class TestResponseWriter:
    """Tests for ResponseWriter."""

    def test_literal_body(self):
        out = io.BytesIO()
        writer = ResponseWriter(out)

        sent = writer.write(text_response(HTTPStatus.FORBIDDEN))

        status_line, headers, body = split(out.getvalue())
        assert status_line == "HTTP/1.1 403 Forbidden"
        assert headers["Content-Type"] == "text/plain"
        assert headers["Content-Length"] == "9"
        assert headers["Connection"] == "close"
        assert headers["Access-Control-Allow-Origin"] == "*"
        assert body == b"Forbidden"
        assert sent == 9
        assert writer.headers_sent

    def test_streams_file_in_chunks(self, tmp_path):
        data = bytes(range(256)) * 100  # 25600 bytes, several chunks
        path = tmp_path / "blob.bin"
        path.write_bytes(data)

        out = io.BytesIO()
        response = file_response(path, "application/octet-stream")
        sent = ResponseWriter(out, chunk_size=1024).write(response)

        _, headers, body = split(out.getvalue())
        assert headers["Content-Length"] == str(len(data))
        assert body == data
        assert sent == len(data)

    def test_closes_file_after_write(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"abc")
        response = file_response(path, "text/plain")

        ResponseWriter(io.BytesIO()).write(response)

        assert response.file.closed

    def test_never_writes_past_content_length(self, tmp_path):
        """If the file grew after it was opened, the extra bytes are not sent."""
        path = tmp_path / "growing.txt"
        path.write_bytes(b"0123456789")
        f = open(path, "rb")
        response = HTTPResponse(content_type="text/plain", file=f, content_length=4)

        out = io.BytesIO()
        sent = ResponseWriter(out).write(response)

        _, headers, body = split(out.getvalue())
        assert headers["Content-Length"] == "4"
        assert body == b"0123"
        assert sent == 4

    def test_closes_file_when_client_gone(self, tmp_path):
        class BrokenPipe(io.RawIOBase):
            def writable(self):
                return True

            def write(self, b):
                raise BrokenPipeError("client went away")

        path = tmp_path / "a.txt"
        path.write_bytes(b"abc")
        response = file_response(path, "text/plain")
        writer = ResponseWriter(BrokenPipe())

        with pytest.raises(OSError):
            writer.write(response)

        assert response.file.closed
        assert not writer.headers_sent
