"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a GET request into a file on disk, or into the reason it can't be
served.

=============================================================================
THE GET PIPELINE
=============================================================================

    raw path "/docs/../../etc/passwd?x=1"
        │
        ├──► strip query           "/docs/../../etc/passwd"
        ├──► "/" → "/index.html"   (only the exact root path)
        ├──► contains ".." ?       ──► 403 Forbidden   (no disk access)
        ├──► root + path           "/srv/share" + "/docs/a.txt"
        ├──► strict containment ?  resolved path outside root ──► 403
        ├──► missing / directory ? ──► 404 Not Found
        └──► regular file          ──► 200 OK, streamed

=============================================================================
PATH TRAVERSAL
=============================================================================

An attacker sends:   GET /../../../etc/passwd HTTP/1.1

Without protection the server would open /srv/share/../../../etc/passwd,
which is /etc/passwd. Two guards stand in the way:

1. SUBSTRING GUARD: any path containing ".." is refused outright. It is
   simple and catches every classic attempt before touching the disk.

2. CONTAINMENT CHECK (strict_containment=True): the joined path is
   canonicalized (symlinks followed, case folded by the OS) and must still
   be inside the canonical document root. This catches what the substring
   guard can't see, such as a symlink inside the share that points at /etc.

The joined path itself is never normalized: "/a//b.txt" is looked up as
root + "/a//b.txt", which the OS treats like "/a/b.txt".

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..http.request import IncomingRequest
from ..http.response import HTTPResponse, text_response, file_response
from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)


class TargetError(Enum):
    """Why a path could not be resolved to a servable file."""

    FORBIDDEN = HTTPStatus.FORBIDDEN
    NOT_FOUND = HTTPStatus.NOT_FOUND


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Result of resolving a request path.

    Exactly one of `path` and `error` is set.
    """

    path: Optional[Path] = None
    error: Optional[TargetError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def found(cls, path: Path) -> "ResolvedTarget":
        return cls(path=path)

    @classmethod
    def forbidden(cls) -> "ResolvedTarget":
        return cls(error=TargetError.FORBIDDEN)

    @classmethod
    def not_found(cls) -> "ResolvedTarget":
        return cls(error=TargetError.NOT_FOUND)


class PathResolver:
    """
    Maps URL paths to files under a fixed document root.

    Usage:
        resolver = PathResolver("/srv/share")
        target = resolver.resolve("/photos/cat.png?size=large")
        if target.ok:
            serve(target.path)
    """

    def __init__(
        self,
        document_root: Union[str, os.PathLike],
        index_file: str = "index.html",
        strict_containment: bool = True,
    ):
        """
        Args:
            document_root: Directory all paths are resolved under.
            index_file: File served for the bare "/" path.
            strict_containment: Also require the canonical path to stay
                                inside the canonical root.
        """
        # Kept exactly as given: the lookup is plain concatenation.
        self.document_root = os.fspath(document_root)
        self.index_file = index_file
        self.strict_containment = strict_containment
        self._canonical_root = Path(self.document_root).resolve()

    def clean_path(self, raw_path: str) -> str:
        """Drop the query string and map "/" to the index file."""
        path = raw_path.split("?", 1)[0]
        if path == "/":
            path = "/" + self.index_file
        return path

    def resolve(self, raw_path: str) -> ResolvedTarget:
        """
        Resolve a raw request path.

        Returns:
            ResolvedTarget with either the file path or the error class.
        """
        path = self.clean_path(raw_path)

        if ".." in path:
            return ResolvedTarget.forbidden()

        candidate = Path(self.document_root + path)

        if self.strict_containment and not self._is_contained(candidate):
            return ResolvedTarget.forbidden()

        if not candidate.is_file():
            # Missing, a directory, or something exotic (socket, fifo)
            return ResolvedTarget.not_found()

        return ResolvedTarget.found(candidate)

    def _is_contained(self, candidate: Path) -> bool:
        try:
            candidate.resolve().relative_to(self._canonical_root)
        except ValueError:
            return False
        except OSError:
            # Symlink loops and the like: nothing we could serve anyway.
            return False
        return True


class StaticFileHandler:
    """
    Produces the response for one parsed request.

    =========================================================================
    DISPATCH
    =========================================================================

        GET          → resolve path → 200 / 403 / 404 / 500
        anything else → 405 Method Not Allowed

    The handler never writes to the socket; it returns an HTTPResponse
    and the connection handler writes it. A 200 response holds an open
    file that the writer closes after streaming.

    =========================================================================
    """

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    @classmethod
    def for_root(cls, document_root: Union[str, os.PathLike], **kwargs) -> "StaticFileHandler":
        """Convenience constructor: StaticFileHandler.for_root("/srv/share")."""
        return cls(PathResolver(document_root, **kwargs))

    def handle(self, request: IncomingRequest) -> HTTPResponse:
        if request.method != "GET":
            return text_response(HTTPStatus.METHOD_NOT_ALLOWED)
        return self.handle_get(request.raw_path)

    def handle_get(self, raw_path: str) -> HTTPResponse:
        target = self.resolver.resolve(raw_path)

        if target.error is TargetError.FORBIDDEN:
            logger.warning(f"Path traversal attempt blocked: {raw_path!r}")
            return text_response(HTTPStatus.FORBIDDEN)

        if target.error is TargetError.NOT_FOUND:
            return text_response(HTTPStatus.NOT_FOUND)

        try:
            return file_response(target.path, get_mime_type(target.path.name))
        except OSError as e:
            # Exists but can't be opened: permissions, removed since the
            # check, too many open files...
            logger.error(f"Error opening {target.path}: {e}")
            return text_response(HTTPStatus.INTERNAL_SERVER_ERROR)
