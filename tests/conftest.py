"""
pytest configuration and fixtures.
"""

import os
import socket
from dataclasses import dataclass
from typing import Dict, Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pocketserve import StaticServer, ServerConfig, control


# Exactly 42 bytes
INDEX_HTML = b"<html><body><h1>Hello!</h1></body></html>\n"


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """
    A small document root:

        index.html      42 bytes
        style.css
        data.json
        README          (no extension)
        big.bin         100 KiB, several chunks
        sub/page.htm
    """
    root = tmp_path / "share"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(b"body { color: red; }\n")
    (root / "data.json").write_bytes(b'{"ok": true}')
    (root / "README").write_bytes(b"plain file without an extension\n")
    (root / "big.bin").write_bytes(os.urandom(100 * 1024))
    (root / "sub").mkdir()
    (root / "sub" / "page.htm").write_bytes(b"<p>sub page</p>")
    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration: loopback only, short timeout."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def server(config: ServerConfig, doc_root: Path) -> Generator[StaticServer, None, None]:
    """A running StaticServer serving doc_root."""
    srv = StaticServer(config)
    result = srv.start(document_root=str(doc_root))
    assert result.success, result.error

    yield srv

    srv.stop()


# =============================================================================
# RAW SOCKET CLIENT
# =============================================================================

@dataclass
class RawResponse:
    """A response as it came off the wire."""

    status: int
    reason: str
    headers: Dict[str, str]
    body: bytes


class RawHTTPClient:
    """
    Speaks to the server over a plain socket, so tests see exactly the
    bytes the server wrote.
    """

    def __init__(self, port: int, host: str = "127.0.0.1", timeout: float = 5.0):
        self.port = port
        self.host = host
        self.timeout = timeout

    def send(self, data: bytes) -> bytes:
        """Send data, half-close, return everything the server sent back."""
        with socket.create_connection((self.host, self.port), timeout=self.timeout) as s:
            if data:
                s.sendall(data)
            s.shutdown(socket.SHUT_WR)

            chunks = []
            while True:
                chunk = s.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def request(self, data: bytes) -> Optional[RawResponse]:
        raw = self.send(data)
        if not raw:
            return None
        return parse_response(raw)

    def get(self, path: str, method: str = "GET") -> RawResponse:
        return self.request(
            f"{method} {path} HTTP/1.1\r\n"
            f"Host: {self.host}:{self.port}\r\n"
            f"User-Agent: pytest\r\n"
            f"\r\n".encode("latin-1")
        )


def parse_response(raw: bytes) -> RawResponse:
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    _, code, reason = lines[0].split(" ", 2)
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return RawResponse(status=int(code), reason=reason, headers=headers, body=body)


@pytest.fixture
def client(server: StaticServer) -> RawHTTPClient:
    """Raw HTTP client pointed at the running server."""
    return RawHTTPClient(server.port)


@pytest.fixture
def make_client():
    """Factory for clients to servers the test starts itself."""
    return RawHTTPClient


@pytest.fixture
def fresh_control():
    """Reset the process-wide server in pocketserve.control around a test."""
    control.stop()
    control._server = None

    yield control

    control.stop()
    control._server = None
