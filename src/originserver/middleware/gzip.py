"""
=============================================================================
GZIP MIDDLEWARE
=============================================================================

Compresses a handler's response body with gzip when the client asked for
it. The wrapped handler runs first; compression is applied to whatever it
produced.

=============================================================================
CONTENT NEGOTIATION
=============================================================================

    Request:
    ┌───────────────────────────────────────────────────────────────┐
    │ GET /echo/abc HTTP/1.1                                        │
    │ Accept-Encoding: deflate, gzip                                │
    │                           ────                                │
    │                           exact "gzip" token present          │
    └───────────────────────────────────────────────────────────────┘

    Response:
    ┌───────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK                                               │
    │ Content-Type: text/plain                                      │
    │ Content-Length: 23            ← length of the COMPRESSED body │
    │ Content-Encoding: gzip                                        │
    │                                                               │
    │ <gzip member>                                                 │
    └───────────────────────────────────────────────────────────────┘

Matching is deliberately literal. ``Accept-Encoding: deflate`` or
``Accept-Encoding: gzip;q=1`` leave the body alone, and so does a
header-less request. No quality values are parsed.

=============================================================================
WHEN THE BODY IS LEFT ALONE
=============================================================================

    body empty ....................... nothing to compress
    no "gzip" token .................. client can't decode it
    handler set no Content-Type ...... logged as an error; the builder
                                       needs a type to re-set the body
    compression fails ................ logged; original body kept

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why compress AFTER the handler instead of letting handlers do it?"
A: "Handlers stay oblivious to transfer encodings. The same echo handler
   serves plain and gzip clients; only the wrapper knows the difference."

Q: "Why level 1?"
A: "The bodies here are small and produced per request. The fastest level
   gets nearly all of the size win for a fraction of the CPU."

=============================================================================
"""

import gzip
import logging
import zlib

from .base import Middleware
from ..http.request import HTTPRequest
from ..http.response import ResponseBuilder
from ..http.router import Handler


logger = logging.getLogger(__name__)

GZIP_TOKEN = "gzip"
DEFAULT_LEVEL = 1


def accepts_gzip(request: HTTPRequest) -> bool:
    """True when any Accept-Encoding value is exactly ``gzip``."""
    values = request.headers.accept_encoding
    return values is not None and any(value == GZIP_TOKEN for value in values)


class GzipMiddleware(Middleware):
    """
    Gzip response compression.

    Usage:
        router.add_route("GET", "/echo/:str", GzipMiddleware().wrap(echo))

    Args:
        level: zlib compression level, 1 (fastest) to 9 (smallest).
    """

    def __init__(self, level: int = DEFAULT_LEVEL):
        if not 1 <= level <= 9:
            raise ValueError(f"gzip level must be between 1 and 9, got {level}")
        self.level = level

    def __call__(self, response: ResponseBuilder, request: HTTPRequest, next: Handler) -> None:
        next(response, request)

        body = response.body
        if not body:
            return

        if not accepts_gzip(request):
            return

        content_type = response.content_type
        if content_type is None:
            logger.error(
                f"Cannot gzip response to {request.method} {request.target}: "
                f"handler set no Content-Type"
            )
            return

        try:
            compressed = gzip.compress(body, compresslevel=self.level)
        except (OSError, zlib.error) as e:
            logger.error(f"gzip compression failed: {e}")
            return

        logger.debug(f"gzip: {len(body)} -> {len(compressed)} bytes")
        response.set_body(compressed, content_type)
        response.add_content_encoding(GZIP_TOKEN)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Inner handler first, compression second
# 2. Only for an exact "gzip" Accept-Encoding token
# 3. Content-Length is recomputed by set_body(), Content-Encoding added
# 4. Every failure path leaves the uncompressed response intact
# =============================================================================
