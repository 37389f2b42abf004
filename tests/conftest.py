"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from originserver import HTTPServer, ServerConfig, create_app
from originserver.http import HTTPStatus


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/hello HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: deflate, gzip\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b"hello world"
    return (
        b"POST /files/greeting.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config(tmp_path) -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        read_timeout=5.0,
        directory=str(tmp_path),
        log_level="WARNING",
    )


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class, despite the name

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self):
        return self.server.address

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"setup_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def connect(self, timeout: float = 5.0) -> socket.socket:
        """Open a client socket to the server."""
        sock = socket.create_connection(self.address, timeout=timeout)
        return sock

    def stop(self):
        """Stop the server and wait for every worker to finish."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """The stock application plus a few extra routes, running on a free port."""
    server = create_app(config)

    @server.get("/about")
    def about(response, request):
        response.set_status(HTTPStatus.OK).set_body_str("about")

    @server.post("/todos")
    def create_todo(response, request):
        response.set_status(HTTPStatus.CREATED)

    @server.get("/boom")
    def boom(response, request):
        raise RuntimeError("handler failure")

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
