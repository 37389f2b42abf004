"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

One Connection per accepted socket: the socket itself, the bounded reader
that turns its bytes into requests, and the bookkeeping used in logs.

=============================================================================
REQUESTS DO NOT LINE UP WITH recv() CALLS
=============================================================================

TCP does NOT preserve message boundaries. Two requests written back to
back may arrive in one recv(), and one request may arrive in ten:

    Client sends:
        "GET / HTTP/1.1\r\n\r\nGET /about HTTP/1.1\r\n\r\n"

    Server might receive:
        recv() → "GET / HTTP/1.1\r\n\r\nGET /ab"
        recv() → "out HTTP/1.1\r\n\r\n"

So the connection keeps ONE buffered StreamReader for its whole life.
Whatever was read past the end of the first request stays in the buffer
and is where the second request starts.

=============================================================================
KEEP-ALIVE CONNECTIONS
=============================================================================

Unless told otherwise, an HTTP/1.1 client reuses its connection, so the
worker keeps reading requests off the same socket:

    ┌─────────────────────────────────────────────────────────────────┐
    │                    With Keep-Alive (HTTP/1.1)                    │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   TCP Connect                                                    │
    │       │                                                          │
    │       ├── Request 1: Read → Handle → Write      KEEP_ALIVE       │
    │       ├── Request 2: Read → Handle → Write      KEEP_ALIVE       │
    │       ├── Request 3 (Connection: close) ...     CLOSE            │
    │       │                                                          │
    │   TCP Close                                                      │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

The per-request decision is a two-state machine, ConnectionControl:
KEEP_ALIVE unless a Connection header value is exactly "close". Every
error also ends in CLOSE.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ────────┐
     │             │                                    │           │
     │             │                                    │           ▼
     │             │                                    │      KEEP_ALIVE
     │             │                                    │           │
     │             ▼                                    │           │
     └──────────► CLOSING ◄─────────────────────────────┴───────────┘
                    │
                    ▼
                  CLOSED

The states are informational (logging, debugging); the control flow
lives in HTTPServer._process_connection().

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.request import (
    BODY_LIMIT,
    HEADER_BLOCK_LIMIT,
    REQUEST_LINE_LIMIT,
    HTTPRequest,
    RequestReader,
)
from ..http.stream_reader import StreamReader


logger = logging.getLogger(__name__)

DEFAULT_READ_TIMEOUT = 10.0
CLOSE_DRAIN_TIMEOUT = 0.5
CLOSE_DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Where a connection is in its life. Only read by logs and tests."""
    NEW = "new"
    READING = "reading"            # blocked in read_request()
    PROCESSING = "processing"      # handler running
    WRITING = "writing"            # in sendall()
    KEEP_ALIVE = "keep_alive"      # idle between requests
    CLOSING = "closing"
    CLOSED = "closed"


class ConnectionControl(Enum):
    """What happens to the connection after the current response."""
    KEEP_ALIVE = "keep-alive"
    CLOSE = "close"

    @classmethod
    def for_request(cls, request: HTTPRequest) -> "ConnectionControl":
        return cls.CLOSE if request.wants_close else cls.KEEP_ALIVE


@dataclass(eq=False)
class Connection:
    """
    An accepted client socket and its request reader.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BOUNDED READING                                                  │
    │     └── one StreamReader + RequestReader per connection              │
    │     └── 1024 / 8192 / 8192 byte budgets per request segment          │
    │                                                                      │
    │  2. READ TIMEOUT                                                     │
    │     └── every socket read gives up after read_timeout seconds        │
    │     └── a timeout surfaces as an OSError and ends the connection     │
    │                                                                      │
    │  3. STATE TRACKING                                                   │
    │     └── state + requests_handled, for logs                           │
    │                                                                      │
    │  4. GRACEFUL CLOSE                                                   │
    │     └── shutdown(SHUT_WR), drain, close                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The accepted socket. The connection owns it.
        address: Peer (ip, port) as returned by accept().
        read_timeout: Cap in seconds on every blocking read.
        id: Eight hex characters, prefixed to every log line.
        state: See ConnectionState.
        created_at: time.time() at accept.
        requests_handled: Requests read so far, malformed ones excluded.
    """

    socket: socket.socket
    address: tuple[str, int]

    read_timeout: Optional[float] = DEFAULT_READ_TIMEOUT
    buffer_size: int = 8192
    request_line_limit: int = REQUEST_LINE_LIMIT
    header_limit: int = HEADER_BLOCK_LIMIT
    body_limit: int = BODY_LIMIT

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    _reader: StreamReader = field(init=False, repr=False)
    _requests: RequestReader = field(init=False, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.read_timeout)

        self._reader = StreamReader.from_socket(self.socket, self.buffer_size)
        self._requests = RequestReader(
            self._reader,
            request_line_limit=self.request_line_limit,
            header_limit=self.header_limit,
            body_limit=self.body_limit,
        )

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since accept."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> HTTPRequest:
        """
        Read the next request on this connection.

        Raises:
            EndOfFile: the client closed the connection between requests.
            HTTPParseError: the request is malformed or over a limit.
            OSError: socket failure, including the read timeout.
        """
        self.state = ConnectionState.READING
        request = self._requests.read(self.address)
        self.requests_handled += 1
        self.state = ConnectionState.PROCESSING
        return request

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write one serialised response.

        Returns:
            False if the peer is gone, which ends the keep-alive loop.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Could not send response: {e}")
            return False

    def set_keep_alive(self):
        """The response went out and another request may follow."""
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def interrupt(self):
        """
        Wake a worker blocked reading this connection.

        Called from the server thread at shutdown. SHUT_RD makes the
        pending read return end-of-file, so the worker leaves its loop
        the same way it would for a client close.
        """
        try:
            self.socket.shutdown(socket.SHUT_RD)
        except OSError:
            pass  # Already closed by the worker

    def close(self):
        """
        Release the connection. Safe to call twice.

        1. shutdown(SHUT_WR): tell the client we're done sending (FIN)
        2. drain whatever the client still had in flight, bounded in time
           and bytes
        3. close the reader and the socket, releasing the descriptor

        The makefile() stream holds its own reference to the socket, so
        both have to be closed before the descriptor is released.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self._drain()
        except OSError:
            pass  # Timed out or reset, we're closing anyway

        try:
            self._reader.close()
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Closed after {self.age:.2f}s, "
            f"{self.requests_handled} request(s) served"
        )

    def _drain(self):
        """
        Discard what the client still sends, for at most CLOSE_DRAIN_TIMEOUT
        seconds in total and at most CLOSE_DRAIN_LIMIT bytes.
        """
        deadline = time.monotonic() + CLOSE_DRAIN_TIMEOUT
        drained = 0
        while drained < CLOSE_DRAIN_LIMIT:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            self.socket.settimeout(remaining)
            chunk = self.socket.recv(4096)
            if not chunk:
                return
            drained += len(chunk)

    def __enter__(self):
        """
        Context manager entry.

            with conn:
                request = conn.read_request()
                conn.send_response(data)
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Always close, even if the worker raised."""
        self.close()
        return False


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. One StreamReader per connection keeps bytes buffered across requests
# 2. read_timeout is set once on the socket and applies to every read
# 3. ConnectionControl is the keep-alive/close decision per request
# 4. interrupt() unblocks a reader at shutdown; close() is idempotent
# =============================================================================
