"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The HTTP/1.1 message layer: everything between raw socket bytes and a
handler call, with no networking of its own.

=============================================================================
DATA FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket bytes                                                       │
    │        │                                                             │
    │        ▼                                                             │
    │   StreamReader      (stream_reader.py)  budgets, EndOfFile          │
    │        │                                                             │
    │        ▼                                                             │
    │   RequestReader     (request.py)        request line, Headers, body │
    │        │                                                             │
    │        ▼                                                             │
    │   Router            (router.py)         exact → dynamic → subtree   │
    │        │                                                             │
    │        ▼                                                             │
    │   handler(response, request)                                         │
    │        │                                                             │
    │        ▼                                                             │
    │   ResponseBuilder   (response.py)       to_bytes()                  │
    │        │                                                             │
    │        ▼                                                             │
    │   socket bytes                                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Supporting modules:
    status_codes.py   IANA code ↔ reason phrase registry
    multimap.py       scalar-or-vector dictionary
    headers.py        case-insensitive header map built on MultiMap
    methods.py        the recognised methods (GET, POST)

=============================================================================
"""

from .headers import Headers
from .methods import HTTPMethod
from .multimap import MultiMap, NotScalarError
from .request import (
    HTTPParseError,
    HTTPRequest,
    RequestLine,
    RequestReader,
    parse_request,
)
from .response import ResponseBuilder
from .router import (
    DynamicMatcher,
    ExactMatcher,
    Handler,
    Match,
    MatcherChain,
    Router,
    SubtreeMatcher,
)
from .status_codes import HTTPStatus, reason_phrase, status_code
from .stream_reader import EndOfFile, StreamReader, UnexpectedEndOfFile

__all__ = [
    # Reading
    "StreamReader",
    "EndOfFile",
    "UnexpectedEndOfFile",

    # Requests
    "HTTPRequest",
    "RequestLine",
    "RequestReader",
    "HTTPParseError",
    "parse_request",
    "Headers",
    "MultiMap",
    "NotScalarError",
    "HTTPMethod",

    # Responses
    "ResponseBuilder",
    "HTTPStatus",
    "reason_phrase",
    "status_code",

    # Routing
    "Router",
    "Handler",
    "Match",
    "MatcherChain",
    "ExactMatcher",
    "DynamicMatcher",
    "SubtreeMatcher",
]
