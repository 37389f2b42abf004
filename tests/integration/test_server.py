"""
Integration tests: the full server over real TCP sockets.
"""

import gzip
import socket
import threading
import time

import pytest

from originserver import ServerConfig, create_app


def read_response(reader):
    """
    Read one response from a socket file (``sock.makefile("rb")``).

    Keep one reader per socket: it buffers, so a second response may
    already be sitting in it.

    Returns:
        (status_line, headers dict with lowercased names, body bytes).
    """
    status_line = reader.readline().decode("iso-8859-1").rstrip("\r\n")
    if not status_line:
        raise ConnectionError("connection closed before a response")

    headers = {}
    while True:
        line = reader.readline().decode("iso-8859-1")
        if line in ("\r\n", ""):
            break
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()

    length = int(headers.get("content-length", "0"))
    body = reader.read(length) if length else b""
    return status_line, headers, body


def request(test_server, data: bytes):
    """Send one request on a fresh connection and read one response."""
    with test_server.connect() as sock:
        sock.sendall(data)
        with sock.makefile("rb") as reader:
            return read_response(reader)


def wait_closed(sock: socket.socket, timeout: float = 5.0) -> bool:
    """True once the server has closed ``sock`` (recv returns EOF)."""
    sock.settimeout(timeout)
    try:
        while sock.recv(1024):
            pass
        return True
    except ConnectionResetError:
        return True
    except socket.timeout:
        return False


class TestRoutes:
    """Tests for the stock routes."""

    def test_home(self, test_server):
        status, headers, body = request(test_server, b"GET / HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-length"] == "0"
        assert body == b""

    def test_echo(self, test_server):
        status, headers, body = request(test_server, b"GET /echo/hello HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"] == "text/plain"
        assert body == b"hello"

    def test_echo_utf8(self, test_server):
        """Test that a non-ASCII segment comes back as the same bytes."""
        status, headers, body = request(
            test_server, "GET /echo/café HTTP/1.1\r\n\r\n".encode("utf-8")
        )

        assert status == "HTTP/1.1 200 OK"
        assert body == "café".encode("utf-8")
        assert headers["content-length"] == "5"

    def test_invalid_utf8_target(self, test_server):
        status, _, _ = request(test_server, b"GET /echo/caf\xe9 HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 400 Bad Request"

    def test_user_agent(self, test_server):
        status, _, body = request(
            test_server,
            b"GET /user-agent HTTP/1.1\r\nUser-Agent: foobar/1.2.3\r\n\r\n",
        )

        assert status == "HTTP/1.1 200 OK"
        assert body == b"foobar/1.2.3"

    def test_user_agent_missing(self, test_server):
        status, _, body = request(test_server, b"GET /user-agent HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert body == b""

    def test_user_agent_multiple(self, test_server):
        status, _, _ = request(
            test_server,
            b"GET /user-agent HTTP/1.1\r\nUser-Agent: a\r\nUser-Agent: b\r\n\r\n",
        )

        assert status == "HTTP/1.1 400 Bad Request"

    def test_not_found_is_bare(self, test_server):
        with test_server.connect() as sock:
            sock.sendall(b"GET /nowhere HTTP/1.1\r\nConnection: close\r\n\r\n")
            data = b""
            while True:
                chunk = sock.recv(1024)
                if not chunk:
                    break
                data += chunk

        assert data == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_method_not_allowed(self, test_server):
        status, headers, _ = request(test_server, b"GET /todos HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 405 Method Not Allowed"
        assert headers["allow"] == "POST"

    def test_unknown_method(self, test_server):
        status, _, _ = request(test_server, b"DELETE / HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 400 Bad Request"


class TestGzip:
    """Tests for gzip negotiation on /echo."""

    def test_gzip_accepted(self, test_server):
        status, headers, body = request(
            test_server,
            b"GET /echo/hello HTTP/1.1\r\nAccept-Encoding: gzip\r\n\r\n",
        )

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-encoding"] == "gzip"
        assert headers["content-type"] == "text/plain"
        assert int(headers["content-length"]) == len(body)
        assert gzip.decompress(body) == b"hello"

    def test_gzip_among_others(self, test_server):
        _, headers, body = request(
            test_server,
            b"GET /echo/abc HTTP/1.1\r\nAccept-Encoding: invalid-1, gzip, invalid-2\r\n\r\n",
        )

        assert headers["content-encoding"] == "gzip"
        assert gzip.decompress(body) == b"abc"

    def test_no_gzip(self, test_server):
        _, headers, body = request(test_server, b"GET /echo/hello HTTP/1.1\r\n\r\n")

        assert "content-encoding" not in headers
        assert body == b"hello"

    def test_unsupported_encoding(self, test_server):
        _, headers, body = request(
            test_server,
            b"GET /echo/hello HTTP/1.1\r\nAccept-Encoding: br\r\n\r\n",
        )

        assert "content-encoding" not in headers
        assert body == b"hello"


class TestFiles:
    """Tests for /files/ against the configured directory."""

    def test_write_then_read(self, test_server, config):
        status, _, _ = request(
            test_server,
            b"POST /files/notes/a.txt HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello",
        )
        assert status == "HTTP/1.1 201 Created"

        status, headers, body = request(test_server, b"GET /files/notes/a.txt HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"] == "application/octet-stream"
        assert body == b"hello"

    def test_utf8_name(self, test_server, config):
        status, _, _ = request(
            test_server,
            "POST /files/café.txt HTTP/1.1\r\nContent-Length: 4\r\n\r\nnoir".encode("utf-8"),
        )
        assert status == "HTTP/1.1 201 Created"

        with open(f"{config.directory}/café.txt", "rb") as f:
            assert f.read() == b"noir"

        status, _, body = request(test_server, "GET /files/café.txt HTTP/1.1\r\n\r\n".encode("utf-8"))
        assert status == "HTTP/1.1 200 OK"
        assert body == b"noir"

    def test_missing_file(self, test_server):
        status, _, _ = request(test_server, b"GET /files/nope HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 404 Not Found"

    def test_traversal(self, test_server):
        status, _, _ = request(test_server, b"GET /files/../../etc/passwd HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 400 Bad Request"

    def test_post_without_length(self, test_server):
        status, _, _ = request(test_server, b"POST /files/x HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 400 Bad Request"

    def test_concurrent_writes(self, test_server, config):
        """Test that five racing uploads leave exactly one complete body."""
        bodies = [bytes([i]) * 4096 for i in range(5)]
        results = []
        barrier = threading.Barrier(len(bodies))

        def upload(body):
            data = b"POST /files/hello HTTP/1.1\r\nContent-Length: 4096\r\n\r\n" + body
            with test_server.connect() as sock:
                barrier.wait()
                sock.sendall(data)
                with sock.makefile("rb") as reader:
                    results.append(read_response(reader)[0])

        threads = [threading.Thread(target=upload, args=(body,)) for body in bodies]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10.0)

        assert results == ["HTTP/1.1 201 Created"] * 5
        with open(f"{config.directory}/hello", "rb") as f:
            content = f.read()
        assert len(content) == 4096
        assert content in bodies

    def test_not_mounted_without_directory(self):
        server = create_app(ServerConfig(port=0))

        assert server.router.allowed_methods("/files/x") == []


class TestConnections:
    """Tests for keep-alive, close and error handling on one socket."""

    def test_persistent_connection(self, test_server):
        with test_server.connect() as sock:
            sock.sendall(b"GET / HTTP/1.1\r\n\r\nGET /about HTTP/1.1\r\n\r\n")
            reader = sock.makefile("rb")

            first = read_response(reader)
            second = read_response(reader)
            assert first[0] == "HTTP/1.1 200 OK"
            assert second[0] == "HTTP/1.1 200 OK"
            assert second[2] == b"about"

            # Still open: a third request is answered
            sock.sendall(b"GET /echo/again HTTP/1.1\r\n\r\n")
            assert read_response(reader)[2] == b"again"
            reader.close()

    def test_connection_close(self, test_server):
        with test_server.connect() as sock:
            sock.sendall(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n")
            reader = sock.makefile("rb")

            assert read_response(reader)[0] == "HTTP/1.1 200 OK"
            assert reader.read() == b""
            reader.close()

    def test_post_then_get_on_one_connection(self, test_server):
        with test_server.connect() as sock:
            sock.sendall(
                b"POST /files/k HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc"
                b"GET /files/k HTTP/1.1\r\n\r\n"
            )
            reader = sock.makefile("rb")

            assert read_response(reader)[0] == "HTTP/1.1 201 Created"
            assert read_response(reader)[2] == b"abc"
            reader.close()

    def test_bad_request_closes(self, test_server):
        with test_server.connect() as sock:
            sock.sendall(b"this is not http\r\n\r\nGET / HTTP/1.1\r\n\r\n")
            reader = sock.makefile("rb")

            assert read_response(reader)[0] == "HTTP/1.1 400 Bad Request"
            assert reader.read() == b""
            reader.close()

    def test_request_line_too_long(self, test_server):
        target = b"/" + b"a" * 2000
        status, _, _ = request(test_server, b"GET " + target + b" HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 400 Bad Request"

    def test_header_block_too_large(self, test_server):
        headers = b"".join(b"X-Filler-%04d: %s\r\n" % (i, b"v" * 50) for i in range(200))
        status, _, _ = request(test_server, b"GET / HTTP/1.1\r\n" + headers + b"\r\n")

        assert status == "HTTP/1.1 400 Bad Request"

    def test_handler_error_is_500(self, test_server):
        with test_server.connect() as sock:
            sock.sendall(b"GET /boom HTTP/1.1\r\n\r\nGET /echo/ok HTTP/1.1\r\n\r\n")
            reader = sock.makefile("rb")

            assert read_response(reader)[0] == "HTTP/1.1 500 Internal Server Error"
            assert read_response(reader)[2] == b"ok"
            reader.close()

    def test_clean_client_close(self, test_server):
        """Test that a client hanging up between requests is not answered."""
        with test_server.connect() as sock:
            sock.sendall(b"GET / HTTP/1.1\r\n\r\n")
            reader = sock.makefile("rb")
            assert read_response(reader)[0] == "HTTP/1.1 200 OK"
            sock.shutdown(socket.SHUT_WR)

            assert reader.read() == b""
            reader.close()


class TestTimeout:
    """Tests for the per-read timeout."""

    @pytest.fixture
    def short_timeout(self, config):
        config.read_timeout = 0.5
        return config

    def test_stalled_request_is_dropped(self, short_timeout, test_server):
        with test_server.connect() as sock:
            sock.sendall(b"GET / HTTP/1.1\r\n")
            started = time.monotonic()

            assert wait_closed(sock, timeout=5.0)
            assert time.monotonic() - started < 4.0

    def test_idle_keep_alive_is_dropped(self, short_timeout, test_server):
        with test_server.connect() as sock:
            sock.sendall(b"GET / HTTP/1.1\r\n\r\n")
            reader = sock.makefile("rb")
            assert read_response(reader)[0] == "HTTP/1.1 200 OK"

            assert reader.read() == b""
            reader.close()


class TestShutdown:
    """Tests for stopping the server."""

    def test_shutdown_with_idle_connection(self, test_server):
        """Test that an open keep-alive connection does not block shutdown."""
        sock = test_server.connect()
        try:
            sock.sendall(b"GET / HTTP/1.1\r\n\r\n")
            reader = sock.makefile("rb")
            assert read_response(reader)[0] == "HTTP/1.1 200 OK"

            started = time.monotonic()
            test_server.stop()

            assert test_server.server.wait_for_shutdown(timeout=5.0)
            assert time.monotonic() - started < 4.0
            assert reader.read() == b""
            reader.close()
        finally:
            sock.close()

    def test_port_reported(self, test_server):
        assert test_server.port != 0
