"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request message from a StreamReader, under strict
size limits, into an HTTPRequest object.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE (≤ 1024 bytes) ──────────────────────────────────┐ │
    │  │    POST /files/hello HTTP/1.1\r\n                              │ │
    │  │    ─┬── ──────┬───── ────┬───                                  │ │
    │  │     │         │          │                                      │ │
    │  │   Method    Target     Version                                  │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS (≤ 8192 bytes in total) ──────────────────────────────┐ │
    │  │    Host: localhost:4221\r\n                                    │ │
    │  │    Accept-Encoding: gzip, deflate\r\n                          │ │
    │  │    Content-Length: 5\r\n                                       │ │
    │  │    \r\n                                   ← end of header block│ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY (POST only, exactly Content-Length ≤ 8192 bytes) ────────┐ │
    │  │    hello                                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TWO-PHASE PARSING
=============================================================================

1. METADATA PHASE
   - budget 1024, read the request line, require CRLF
   - budget 8192, read header lines until an empty line
   - every header line must end in CRLF and contain a colon

2. BODY PHASE (only for methods that carry a body, i.e. POST)
   - Content-Length is mandatory and must be a single decimal integer
   - budget 8192, read exactly Content-Length bytes

Any violation raises HTTPParseError, which the connection loop turns into
400 Bad Request followed by a close. The one exception is a clean close
before the request line: EndOfFile passes through untouched so the loop
can hang up silently.

=============================================================================
INTERVIEW QUESTIONS ABOUT HTTP PARSING
=============================================================================

Q: "Why not read the whole request into memory and parse it afterwards?"
A: "Because you don't know where it ends. Reading line by line with a
   budget per segment bounds memory and leaves the next pipelined request
   untouched in the buffer for the following iteration."

Q: "Why is the header limit cumulative?"
A: "A per-line limit still lets a client send ten thousand short header
   lines. Capping the whole block caps the memory a request can pin."

=============================================================================
"""

import io
from dataclasses import dataclass, field
from typing import Optional

from .headers import Headers
from .methods import HTTPMethod
from .multimap import NotScalarError
from .stream_reader import EndOfFile, StreamReader, UnexpectedEndOfFile


# =============================================================================
# LIMITS
# =============================================================================

REQUEST_LINE_LIMIT = 1024
HEADER_BLOCK_LIMIT = 8192
BODY_LIMIT = 8192

# Request line and header lines must be valid UTF-8; anything else is a 400.
HEADER_ENCODING = "utf-8"


class HTTPParseError(Exception):
    """
    Raised when a request message is malformed (the invalid-request kind).

    Carries the HTTP status the client should receive, 400 in practice.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RequestLine:
    """
    The ``METHOD SP TARGET SP VERSION`` triple.

    ``method`` is kept verbatim; compare it through ``http_method`` to get
    case-insensitive matching.
    """

    method: str
    target: str
    version: str

    @classmethod
    def parse(cls, line: str) -> "RequestLine":
        """
        Parse a request line without its CRLF.

        Splits on single spaces, so ``"GET  / HTTP/1.1"`` (two spaces)
        yields an empty part and is rejected.

        Raises:
            HTTPParseError: not exactly three non-empty parts.
        """
        parts = line.split(" ")
        if len(parts) != 3 or not all(parts):
            raise HTTPParseError(f"invalid request line: {line!r}")
        method, target, version = parts
        return cls(method, target, version)

    def __str__(self) -> str:
        return f"{self.method} {self.target} {self.version}"


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        request_line:   RequestLine(method, target, version)

        headers:        Headers, lowercased names, multi-valued

        body:           Raw body bytes. None unless the method carries a
                        body, in which case its length equals Content-Length.

        param:          Set by the router after a dynamic or subtree match.
                        "/echo/:str" with "/echo/hi" → "hi"
                        "/files/"    with "/files/a/b" → "a/b"

        client_address: (ip, port) of the peer, for logging

    =========================================================================
    """

    request_line: RequestLine
    headers: Headers = field(default_factory=Headers)
    body: Optional[bytes] = None
    param: Optional[str] = None
    client_address: tuple[str, int] = ("", 0)

    # =========================================================================
    # REQUEST LINE SHORTCUTS
    # =========================================================================

    @property
    def method(self) -> str:
        return self.request_line.method

    @property
    def target(self) -> str:
        return self.request_line.target

    @property
    def version(self) -> str:
        return self.request_line.version

    @property
    def http_method(self) -> Optional[HTTPMethod]:
        """The recognised method, or None for anything but GET/POST."""
        try:
            return HTTPMethod.parse(self.method)
        except ValueError:
            return None

    @property
    def wants_close(self) -> bool:
        """
        True when any Connection value is exactly ``close``.

        The comparison is case-sensitive: ``Connection: Close`` keeps the
        connection alive.
        """
        values = self.headers.connection
        return values is not None and any(value == "close" for value in values)


class RequestReader:
    """
    Reads successive requests off one StreamReader.

    A connection owns exactly one RequestReader for its whole lifetime,
    so bytes buffered past the end of one request (a pipelined follow-up)
    are still there for the next read().

    Args:
        reader: The bounded stream to read from.
        request_line_limit: Budget for the request line.
        header_limit: Cumulative budget for the header block.
        body_limit: Budget for the body window.
    """

    def __init__(
        self,
        reader: StreamReader,
        request_line_limit: int = REQUEST_LINE_LIMIT,
        header_limit: int = HEADER_BLOCK_LIMIT,
        body_limit: int = BODY_LIMIT,
    ):
        self.reader = reader
        self.request_line_limit = request_line_limit
        self.header_limit = header_limit
        self.body_limit = body_limit

    def read(self, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Read one complete request.

        Raises:
            EndOfFile: the peer closed before sending a request line.
            HTTPParseError: the request is malformed or over a limit.
            OSError: the socket failed or timed out.
        """
        request_line, headers = self._read_metadata()
        request = HTTPRequest(
            request_line=request_line,
            headers=headers,
            client_address=client_address,
        )

        method = request.http_method
        if method is not None and method.carries_body:
            request.body = self._read_body(headers)

        return request

    # =========================================================================
    # METADATA PHASE
    # =========================================================================

    def _read_metadata(self) -> tuple[RequestLine, Headers]:
        self.reader.set_limit(self.request_line_limit)
        # EndOfFile here is a clean close and is left to propagate
        line = self.reader.read_line()
        request_line = RequestLine.parse(self._strip_crlf(line, "request line"))

        self.reader.set_limit(self.header_limit)
        headers = Headers()
        while True:
            try:
                line = self.reader.read_line()
            except EndOfFile:
                raise HTTPParseError("header block truncated or over limit") from None

            if line == b"\r\n":
                break

            text = self._strip_crlf(line, "header line")
            try:
                headers.add_line(text)
            except ValueError as e:
                raise HTTPParseError(f"invalid header line: {e}") from None

        return request_line, headers

    @staticmethod
    def _strip_crlf(line: bytes, what: str) -> str:
        if not line.endswith(b"\r\n"):
            raise HTTPParseError(f"{what} is not terminated by CRLF")
        try:
            return line[:-2].decode(HEADER_ENCODING)
        except UnicodeDecodeError as e:
            raise HTTPParseError(f"{what} is not valid UTF-8: {e}") from None

    # =========================================================================
    # BODY PHASE
    # =========================================================================

    def _read_body(self, headers: Headers) -> bytes:
        try:
            length = headers.content_length
        except (NotScalarError, ValueError) as e:
            raise HTTPParseError(f"invalid Content-Length: {e}") from None
        if length is None:
            raise HTTPParseError("missing Content-Length")

        self.reader.set_limit(self.body_limit)
        try:
            return self.reader.read_exact(length)
        except UnexpectedEndOfFile as e:
            raise HTTPParseError(f"incomplete body: {e}") from None


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
    """
    Parse a request held entirely in memory.

    Builds a throwaway RequestReader over ``data``; handy for tests and for
    tools that already have the bytes. Servers reading from a socket should
    keep one RequestReader per connection instead.
    """
    return RequestReader(StreamReader(io.BytesIO(data))).read(client_address)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. RequestLine.parse: exactly three space-separated, non-empty parts
# 2. RequestReader.read: metadata phase then optional body phase
# 3. Limits: 1024 request line, 8192 header block, 8192 body window
# 4. EndOfFile before the request line means the client is done
# 5. Everything else that goes wrong is HTTPParseError → 400
# =============================================================================
