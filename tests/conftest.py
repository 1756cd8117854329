"""
pytest configuration and fixtures.
"""

import socket
import time
from typing import Dict, Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from weblite.config import ServerConfig
from weblite.controller import build_router
from weblite.core.listener import Listener
from weblite.counter import RequestCounter
from weblite.handlers.files import FileResponder


INDEX_HTML = b"<html><body><h1>weblite test index</h1></body></html>"
SAMPLE_TEXT = b"plain text sample\nsecond line\n"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + bytes(range(32))


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /docs/report%20final.pdf?download=1&x= HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_head_request() -> bytes:
    """Sample HTTP HEAD request that closes the connection."""
    return (
        b"HEAD /sample.txt HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Connection: close\r\n"
        b"\r\n"
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A small document root: index, a text file, a PNG and a nested PDF."""
    (tmp_path / "index.html").write_bytes(INDEX_HTML)
    (tmp_path / "sample.txt").write_bytes(SAMPLE_TEXT)
    (tmp_path / "image.png").write_bytes(PNG_BYTES)
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "manual.pdf").write_bytes(b"%PDF-1.4\n%fake\n")
    return tmp_path


# =============================================================================
# RAW-SOCKET CLIENT
# =============================================================================

class RawResponse:
    """A response read straight off the socket."""

    def __init__(self, status: int, reason: str, headers: Dict[str, str], body: bytes):
        self.status = status
        self.reason = reason
        self.headers = headers
        self.body = body

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


def read_response(sock: socket.socket, expect_body: bool = True) -> RawResponse:
    """
    Read exactly one response framed by Content-Length.

    Headers are read a byte at a time so a pipelined response that follows
    stays in the socket.
    """
    head = b""
    while not head.endswith(b"\r\n\r\n"):
        byte = sock.recv(1)
        if not byte:
            raise ConnectionError(f"Connection closed mid-headers: {head!r}")
        head += byte

    head = head[:-4]
    rest = b""
    lines = head.decode("latin-1").split("\r\n")
    _, status, reason = lines[0].split(" ", 2)

    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()

    length = int(headers.get("content-length", 0)) if expect_body else 0
    while len(rest) < length:
        chunk = sock.recv(length - len(rest))
        if not chunk:
            break
        rest += chunk

    return RawResponse(int(status), reason, headers, rest[:length])


def http_request(
    port: int,
    path: str = "/",
    method: str = "GET",
    extra_headers: str = "",
) -> RawResponse:
    """Send one request on a fresh connection with Connection: close."""
    with socket.create_connection(("127.0.0.1", port), timeout=5.0) as sock:
        sock.sendall(
            f"{method} {path} HTTP/1.1\r\n"
            f"Host: 127.0.0.1:{port}\r\n"
            f"Connection: close\r\n"
            f"{extra_headers}"
            f"\r\n".encode()
        )
        return read_response(sock, expect_body=(method != "HEAD"))


# =============================================================================
# LIVE SERVER
# =============================================================================

class LiveServer:
    """A started Listener wired to a FileResponder, for integration tests."""

    def __init__(self, config: ServerConfig):
        self.config = config
        self.counter = RequestCounter(config.initial_budget)
        self.responder = FileResponder.from_config(config, self.counter)
        self.listener = Listener(config, build_router(self.responder))

    @property
    def port(self) -> int:
        return self.listener.address[1]

    def start(self) -> "LiveServer":
        self.listener.start()
        if not self.listener.is_running:
            raise RuntimeError("Server failed to start")
        return self

    def get(self, path: str = "/", **kwargs) -> RawResponse:
        return http_request(self.port, path, **kwargs)

    def stop(self):
        self.listener.shutdown()


def wait_for(predicate, timeout: float = 5.0) -> bool:
    """Poll predicate until it is true or the timeout expires."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


def make_config(port: int, root: Path, **overrides) -> ServerConfig:
    options = dict(
        host="127.0.0.1",
        port=port,
        root_dir=str(root),
        timeout=5.0,
        keep_alive_timeout=2.0,
    )
    options.update(overrides)
    return ServerConfig(**options)


@pytest.fixture
def live_server(free_port: int, site_dir: Path) -> Generator[LiveServer, None, None]:
    """A running server over site_dir with a budget of 100 files."""
    server = LiveServer(make_config(free_port, site_dir, run_amount=100)).start()
    yield server
    server.stop()
