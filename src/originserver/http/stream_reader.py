"""
=============================================================================
BOUNDED STREAM READER
=============================================================================

Wraps a byte stream (usually a client socket) with a settable byte budget.

=============================================================================
WHY A BUDGET?
=============================================================================

A naive server reads "until \\r\\n" and trusts the client to send one. A
hostile (or broken) client can then stream gigabytes without a newline and
the server buffers all of it.

The reader enforces a budget per logical read segment instead:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    BUDGETS DURING ONE REQUEST                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   set_limit(1024)   GET /echo/hi HTTP/1.1\\r\\n      ← request line  │
    │                                                                      │
    │   set_limit(8192)   Host: localhost\\r\\n             ┐              │
    │                     Accept-Encoding: gzip\\r\\n       ├ header block │
    │                     \\r\\n                            ┘ (cumulative) │
    │                                                                      │
    │   set_limit(8192)   <Content-Length bytes>           ← body          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

When the budget runs out mid-line, read_line() returns what it has (no LF)
and every further read reports EndOfFile. The parser sees a line without
CRLF and rejects the request.

=============================================================================
END OF FILE IS NOT AN ERROR (SOMETIMES)
=============================================================================

A keep-alive client that is done simply closes its socket. The next
read_line() then returns zero bytes *at a line boundary*: EndOfFile. The
connection loop treats that as a normal close.

Running out of bytes inside read_exact() is different: the client promised
Content-Length bytes and did not deliver. That is UnexpectedEndOfFile.

=============================================================================
"""

import io
import socket
from typing import BinaryIO, Optional


class EndOfFile(EOFError):
    """Zero bytes were available at the start of a line."""

    def __init__(self, message: str = "end of file"):
        super().__init__(message)


class UnexpectedEndOfFile(EOFError):
    """The stream ended (or the budget ran out) inside an exact read."""

    def __init__(self, expected: int, received: int):
        super().__init__(f"unexpected end of file: expected {expected} bytes, got {received}")
        self.expected = expected
        self.received = received


class StreamReader:
    """
    Buffered reader with a per-segment byte budget.

    Args:
        stream: Binary stream to read from. Unbuffered raw streams are
                wrapped in io.BufferedReader so that reading a line does
                not cost one syscall per byte.
        buffer_size: Size of that internal buffer.

    Example:
        reader = StreamReader(io.BytesIO(b"GET / HTTP/1.1\\r\\n\\r\\n"))
        reader.set_limit(1024)
        reader.read_line()    # b"GET / HTTP/1.1\\r\\n"
    """

    def __init__(self, stream: BinaryIO, buffer_size: int = io.DEFAULT_BUFFER_SIZE):
        if isinstance(stream, io.RawIOBase):
            stream = io.BufferedReader(stream, buffer_size)
        self._stream = stream
        self._remaining: Optional[int] = None  # None = unlimited

    @classmethod
    def from_socket(cls, sock: socket.socket, buffer_size: int = io.DEFAULT_BUFFER_SIZE) -> "StreamReader":
        """Reader over a connected socket (socket timeouts still apply)."""
        return cls(sock.makefile("rb", buffering=buffer_size))

    @property
    def remaining(self) -> Optional[int]:
        """Bytes left in the current budget, None when unlimited."""
        return self._remaining

    def set_limit(self, limit: Optional[int]) -> None:
        """Replace the budget. None removes it."""
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        self._remaining = limit

    def read_line(self) -> bytes:
        """
        Read up to and including the next LF, or until the budget is spent.

        Raises:
            EndOfFile: no bytes could be read.
            OSError: the underlying read failed (including socket timeouts).
        """
        if self._remaining == 0:
            raise EndOfFile()

        size = -1 if self._remaining is None else self._remaining
        line = self._stream.readline(size)
        if not line:
            raise EndOfFile()

        if self._remaining is not None:
            self._remaining -= len(line)
        return line

    def read_exact(self, n: int) -> bytes:
        """
        Read exactly ``n`` bytes.

        Raises:
            UnexpectedEndOfFile: the stream ended first, or ``n`` exceeds
                                 the current budget.
            OSError: the underlying read failed.
        """
        if self._remaining is not None and n > self._remaining:
            raise UnexpectedEndOfFile(n, 0)

        chunks = []
        missing = n
        while missing > 0:
            chunk = self._stream.read(missing)
            if not chunk:
                raise UnexpectedEndOfFile(n, n - missing)
            chunks.append(chunk)
            missing -= len(chunk)

        if self._remaining is not None:
            self._remaining -= n
        return b"".join(chunks)

    def close(self) -> None:
        self._stream.close()
