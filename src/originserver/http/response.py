"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Accumulates a status, an ordered header list and a body, then serializes
them to HTTP/1.1 bytes.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ STATUS LINE ──────────────────────────────────────────────────┐ │
    │  │    HTTP/1.1 200 OK\r\n                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS (insertion order) ────────────────────────────────────┐ │
    │  │    Content-Type: text/plain\r\n                                │ │
    │  │    Content-Length: 5\r\n                                       │ │
    │  │    Content-Encoding: gzip\r\n                                  │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY ─────────────────────────────────────────────────────────┐ │
    │  │    hello                                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    The one exception is 404 Not Found, which is sent as a bare status
    line plus the terminating CRLF:

        HTTP/1.1 404 Not Found\r\n\r\n

=============================================================================
THE HANDLER CONTRACT
=============================================================================

Handlers do not return responses. They receive a fresh ResponseBuilder
and mutate it:

    def echo(response: ResponseBuilder, request: HTTPRequest) -> None:
        response.set_status(HTTPStatus.OK)
        response.set_body_str(request.param)

That lets middleware run the inner handler and then rewrite whatever it
produced (see middleware/gzip.py) without any special return plumbing.

=============================================================================
HEADER UPSERT
=============================================================================

Headers are an ordered list, but adding a header whose name is already
present (case-insensitively) replaces that entry in place:

    add_header("Content-Type", "text/plain")
    add_header("X-Id", "1")
    add_header("content-type", "text/html")

    → [("content-type", "text/html"), ("X-Id", "1")]

=============================================================================
"""

from typing import Iterable, List, Optional, Tuple, Union

from .methods import HTTPMethod
from .status_codes import HTTPStatus, reason_phrase, status_code

DEFAULT_CONTENT_TYPE = "text/plain"
HEADER_ENCODING = "utf-8"


class ResponseBuilder:
    """
    Mutable HTTP response under construction.

    All setters return self, so calls can be chained:

        (ResponseBuilder()
            .set_status(HTTPStatus.OK)
            .set_body(b"\\x00\\x01", "application/octet-stream"))
    """

    def __init__(self) -> None:
        self._status_code: Optional[int] = None
        self._reason_phrase: Optional[str] = None
        self._headers: List[Tuple[str, str]] = []
        self._body: bytes = b""

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def status_code(self) -> Optional[int]:
        return self._status_code

    @property
    def reason_phrase(self) -> Optional[str]:
        return self._reason_phrase

    def set_status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set code and phrase from a registry member."""
        self._status_code = int(status)
        self._reason_phrase = status.phrase
        return self

    def set_status_code(self, code: int) -> "ResponseBuilder":
        """
        Set the numeric code and look up its phrase.

        Unregistered codes are allowed; they serialize without a phrase
        (``HTTP/1.1 299\\r\\n``).
        """
        self._status_code = code
        self._reason_phrase = reason_phrase(code)
        return self

    def set_reason_phrase(self, phrase: str) -> "ResponseBuilder":
        """
        Set the phrase and look up its code.

        Raises:
            ValueError: ``phrase`` is not a registered reason phrase.
        """
        status = status_code(phrase)
        if status is None:
            raise ValueError(f"unknown reason phrase: {phrase!r}")
        return self.set_status(status)

    def set_status_line(self, code: int, phrase: str) -> "ResponseBuilder":
        """Set code and phrase verbatim, bypassing the registry."""
        self._status_code = code
        self._reason_phrase = phrase
        return self

    # =========================================================================
    # HEADERS
    # =========================================================================

    @property
    def headers(self) -> List[Tuple[str, str]]:
        """Copy of the header list in serialization order."""
        return list(self._headers)

    def get_header(self, name: str) -> Optional[str]:
        index = self._find_header(name)
        return None if index is None else self._headers[index][1]

    def add_header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a header, replacing any existing one of the same name in place."""
        index = self._find_header(name)
        if index is None:
            self._headers.append((name, value))
        else:
            self._headers[index] = (name, value)
        return self

    def add_content_encoding(self, encoding: str) -> "ResponseBuilder":
        return self.add_header("Content-Encoding", encoding)

    def add_allow(self, methods: Iterable[Union[HTTPMethod, str]]) -> "ResponseBuilder":
        """Write an ``Allow`` header, e.g. ``Allow: GET, POST``."""
        value = ", ".join(str(method).upper() for method in methods)
        return self.add_header("Allow", value)

    @property
    def content_type(self) -> Optional[str]:
        return self.get_header("Content-Type")

    def _find_header(self, name: str) -> Optional[int]:
        lowered = name.lower()
        for index, (existing, _) in enumerate(self._headers):
            if existing.lower() == lowered:
                return index
        return None

    # =========================================================================
    # BODY
    # =========================================================================

    @property
    def body(self) -> bytes:
        return self._body

    def set_body(self, body: Union[str, bytes], content_type: str) -> "ResponseBuilder":
        """
        Set the body together with its Content-Type and Content-Length.

        Strings are encoded as UTF-8.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        self.add_header("Content-Type", content_type)
        self.add_header("Content-Length", str(len(body)))
        return self

    def set_body_str(self, text: str) -> "ResponseBuilder":
        """Shorthand for a text/plain body."""
        return self.set_body(text, DEFAULT_CONTENT_TYPE)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def status_line(self) -> str:
        """
        ``HTTP/1.1 <code> <phrase>``, or ``HTTP/1.1 <code>`` without a phrase.

        Raises:
            RuntimeError: no status was ever set.
        """
        if self._status_code is None:
            raise RuntimeError("response status was never set")
        if self._reason_phrase:
            return f"HTTP/1.1 {self._status_code} {self._reason_phrase}"
        return f"HTTP/1.1 {self._status_code}"

    def to_bytes(self) -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Type (text/plain) and Content-Length are appended when the
        handler never set a body.

        Raises:
            RuntimeError: no status was ever set.
        """
        status_line = self.status_line()

        if self._status_code == HTTPStatus.NOT_FOUND:
            return f"{status_line}\r\n\r\n".encode(HEADER_ENCODING)

        headers = list(self._headers)
        names = {name.lower() for name, _ in headers}
        if "content-type" not in names:
            headers.append(("Content-Type", DEFAULT_CONTENT_TYPE))
        if "content-length" not in names:
            headers.append(("Content-Length", str(len(self._body))))

        lines = [status_line]
        lines.extend(f"{name}: {value}" for name, value in headers)
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode(HEADER_ENCODING) + self._body

    def __repr__(self) -> str:
        return (
            f"ResponseBuilder(status={self._status_code}, "
            f"headers={self._headers!r}, body={len(self._body)} bytes)"
        )


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Status set by enum, by code, by phrase, or verbatim
# 2. Ordered headers with case-insensitive upsert
# 3. set_body() keeps Content-Type and Content-Length in step
# 4. to_bytes(): 404 is a bare status line, everything else is complete
# =============================================================================
