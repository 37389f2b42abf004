"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware wraps a handler and produces another handler with the same
``(response, request)`` shape, so it can sit on a single route or around
the whole router.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request                                                            │
    │      │                                                               │
    │      ▼                                                               │
    │   AccessLogMiddleware     whole server, outermost                    │
    │      │                                                               │
    │      ▼                                                               │
    │   Router                                                             │
    │      │                                                               │
    │      ▼                                                               │
    │   GzipMiddleware          per route, e.g. /echo/:str                 │
    │      │                                                               │
    │      ▼                                                               │
    │   handler                                                            │
    │                                                                      │
    │   The response object flows back up through every layer.             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Available middleware:

    AccessLogMiddleware   one log line per request on "originserver.access"
    GzipMiddleware        gzip the body for clients sending the "gzip" token

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline
from .gzip import GzipMiddleware, accepts_gzip
from .logging import AccessLogMiddleware, RequestLog

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",

    # Built-in middleware
    "AccessLogMiddleware",
    "RequestLog",
    "GzipMiddleware",
    "accepts_gzip",
]
