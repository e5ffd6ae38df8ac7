"""
Unit tests for path resolution and the static file handler.
"""

import os

import pytest

from pocketserve.handlers.static import (
    PathResolver,
    StaticFileHandler,
    TargetError,
)
from pocketserve.http.request import IncomingRequest
from pocketserve.http.status_codes import HTTPStatus


class TestPathResolver:
    """Tests for PathResolver."""

    def test_resolves_existing_file(self, doc_root):
        target = PathResolver(doc_root).resolve("/style.css")

        assert target.ok
        assert target.path == doc_root / "style.css"

    def test_root_maps_to_index(self, doc_root):
        resolver = PathResolver(doc_root)

        assert resolver.resolve("/").path == resolver.resolve("/index.html").path

    def test_custom_index_file(self, doc_root):
        target = PathResolver(doc_root, index_file="data.json").resolve("/")

        assert target.path == doc_root / "data.json"

    def test_query_string_ignored(self, doc_root):
        target = PathResolver(doc_root).resolve("/style.css?v=3")

        assert target.path == doc_root / "style.css"

    def test_root_with_query_maps_to_index(self, doc_root):
        assert PathResolver(doc_root).resolve("/?utm=x").path == doc_root / "index.html"

    def test_nested_file(self, doc_root):
        assert PathResolver(doc_root).resolve("/sub/page.htm").ok

    @pytest.mark.parametrize("path", [
        "/../../etc/passwd",
        "/sub/../index.html",
        "/..",
        "/a..b",
    ])
    def test_dot_dot_always_forbidden(self, doc_root, path):
        """Any '..' in the path is refused, whether or not the file exists."""
        assert PathResolver(doc_root).resolve(path).error is TargetError.FORBIDDEN

    def test_dot_dot_in_query_ignored(self, doc_root):
        assert PathResolver(doc_root).resolve("/index.html?..").ok

    def test_dot_dot_forbidden_without_strict_mode(self, doc_root):
        target = PathResolver(doc_root, strict_containment=False).resolve("/../../etc/passwd")

        assert target.error is TargetError.FORBIDDEN

    def test_missing_file(self, doc_root):
        assert PathResolver(doc_root).resolve("/nope.txt").error is TargetError.NOT_FOUND

    def test_directory_is_not_found(self, doc_root):
        assert PathResolver(doc_root).resolve("/sub").error is TargetError.NOT_FOUND
        assert PathResolver(doc_root).resolve("/sub/").error is TargetError.NOT_FOUND

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_symlink_escaping_root(self, doc_root, tmp_path):
        secret = tmp_path / "secret.txt"
        secret.write_bytes(b"top secret")
        (doc_root / "link.txt").symlink_to(secret)

        strict = PathResolver(doc_root).resolve("/link.txt")
        lenient = PathResolver(doc_root, strict_containment=False).resolve("/link.txt")

        assert strict.error is TargetError.FORBIDDEN
        assert lenient.ok

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_symlink_inside_root_allowed(self, doc_root):
        (doc_root / "alias.css").symlink_to(doc_root / "style.css")

        assert PathResolver(doc_root).resolve("/alias.css").ok

    def test_path_without_leading_slash_refused(self, doc_root):
        """Concatenated onto the root it would name a sibling of the root."""
        target = PathResolver(doc_root).resolve("index.html")

        assert target.error is TargetError.FORBIDDEN


class TestStaticFileHandler:
    """Tests for StaticFileHandler."""

    def test_get_index(self, doc_root):
        handler = StaticFileHandler.for_root(doc_root)

        response = handler.handle(IncomingRequest("GET", "/"))
        try:
            assert response.status == HTTPStatus.OK
            assert response.content_type == "text/html"
            assert response.content_length == 42
        finally:
            response.close()

    def test_unknown_type_is_octet_stream(self, doc_root):
        response = StaticFileHandler.for_root(doc_root).handle(IncomingRequest("GET", "/README"))
        try:
            assert response.content_type == "application/octet-stream"
        finally:
            response.close()

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "HEAD", "get"])
    def test_other_methods_not_allowed(self, doc_root, method):
        response = StaticFileHandler.for_root(doc_root).handle(IncomingRequest(method, "/index.html"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.body == b"Method Not Allowed"
        assert not response.is_file

    def test_traversal_forbidden(self, doc_root, caplog):
        response = StaticFileHandler.for_root(doc_root).handle_get("/../../etc/passwd")

        assert response.status == HTTPStatus.FORBIDDEN
        assert response.body == b"Forbidden"
        assert "traversal" in caplog.text

    def test_missing_file(self, doc_root):
        response = StaticFileHandler.for_root(doc_root).handle_get("/missing.png")

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.content_type == "text/plain"
        assert response.body == b"Not Found"

    def test_unreadable_file_is_500(self, doc_root, monkeypatch):
        def refuse(path, content_type):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr("pocketserve.handlers.static.file_response", refuse)

        response = StaticFileHandler.for_root(doc_root).handle_get("/index.html")

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.body == b"Internal Server Error"
