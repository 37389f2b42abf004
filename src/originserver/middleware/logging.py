"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

Writes one line per request to the ``originserver.access`` logger, after
the wrapped handler has produced its response.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [19/Oct/2026:10:55:36 +0000] "GET /echo/hi" 200 2 0.4ms│
    │ ─────────     ───────────────────────────   ─────────────  ─── ─ ─── │
    │ client        timestamp                     method/target  st  sz ms │
    └─────────────────────────────────────────────────────────────────────┘

    JSON:
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"method": "GET", "target": "/echo/hi", "status_code": 200, ...}    │
    └─────────────────────────────────────────────────────────────────────┘

The logger is namespaced so it can be routed on its own:

    logging.getLogger("originserver.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass

from .base import Middleware
from ..http.request import HTTPRequest
from ..http.response import ResponseBuilder
from ..http.router import Handler


logger = logging.getLogger("originserver.access")


@dataclass
class RequestLog:
    """
    Structured access log entry.

    client_ip:      peer address
    method:         request method, verbatim
    target:         request target, verbatim
    user_agent:     User-Agent values joined with ", ", or "-"
    status_code:    response status, 0 if the handler never set one
    body_size:      response body length in bytes
    duration_ms:    time spent in the wrapped handler
    timestamp:      Apache-style local time
    """

    client_ip: str
    method: str
    target: str
    user_agent: str
    status_code: int
    body_size: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.body_size} {self.duration_ms:.2f}ms'
        )


class AccessLogMiddleware(Middleware):
    """
    Request logging middleware.

    Should be the outermost layer so the logged status and size are the
    ones actually sent:

        pipeline.add(AccessLogMiddleware())   # first = outermost
        handler = pipeline.wrap(router)

    Args:
        log_format: "text" or "json".
        log_level: Level the entries are logged at.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        if log_format not in ("text", "json"):
            raise ValueError(f"unknown access log format: {log_format!r}")
        self.log_format = log_format
        self.log_level = log_level

    def __call__(self, response: ResponseBuilder, request: HTTPRequest, next: Handler) -> None:
        start_time = time.perf_counter()
        try:
            next(response, request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.target} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise
        duration_ms = (time.perf_counter() - start_time) * 1000

        user_agent = ", ".join(request.headers.get_list("user-agent")) or "-"
        entry = RequestLog(
            client_ip=request.client_address[0],
            method=request.method,
            target=request.target,
            user_agent=user_agent,
            status_code=response.status_code or 0,
            body_size=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Times the wrapped handler with perf_counter
# 2. Logs failures at ERROR and re-raises them
# 3. One text or JSON line per request on "originserver.access"
# =============================================================================
