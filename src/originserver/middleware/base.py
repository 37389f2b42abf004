"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Defines the middleware protocol and the pipeline for chaining middleware.
Implements the Chain of Responsibility design pattern.

=============================================================================
MIDDLEWARE IS JUST A HANDLER THAT OWNS A HANDLER
=============================================================================

Every handler in this server has the same shape:

    handler(response: ResponseBuilder, request: HTTPRequest) -> None

Middleware receives one extra argument, ``next``, the handler it wraps.
Wrapping produces a closure with the plain handler shape again, so a
wrapped handler can be mounted on the router like any other:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   router.add_route("GET", "/echo/:str", GzipMiddleware().wrap(echo))│
    │                                                                      │
    │   request ──► wrapped(response, request)                             │
    │                  │                                                   │
    │                  ├──► GzipMiddleware(response, request, next=echo)   │
    │                  │        │                                          │
    │                  │        ├──► echo(response, request)   [inner]     │
    │                  │        │                                          │
    │                  │        └──► compress response.body    [after]     │
    │                  │                                                   │
    │   response ◄─────┘                                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
INTERVIEW INSIGHT
=============================================================================

Q: "Why do handlers mutate a response instead of returning one?"
A: "The connection loop owns the response object and knows it always
   gets one back, even from a handler that forgot to set a status. It
   also keeps middleware symmetrical: the outer layer just inspects the
   same object after the inner call."

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import ResponseBuilder
from ..http.router import Handler


logger = logging.getLogger(__name__)


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Subclasses implement ``__call__(response, request, next)`` and must
    call ``next(response, request)`` unless they mean to short-circuit.

        class ServerHeader(Middleware):
            def __call__(self, response, request, next):
                next(response, request)
                response.add_header("Server", "originserver")
    """

    @abstractmethod
    def __call__(self, response: ResponseBuilder, request: HTTPRequest, next: Handler) -> None:
        """
        Process one request.

        Args:
            response: The response being built
            request: The incoming request
            next: The wrapped handler (call this to continue!)
        """

    def wrap(self, handler: Handler) -> Handler:
        """Return a handler that runs this middleware around ``handler``."""
        def wrapped(response: ResponseBuilder, request: HTTPRequest) -> None:
            self(response, request, handler)

        wrapped.__name__ = f"{self.name}({getattr(handler, '__name__', type(handler).__name__)})"
        return wrapped

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains multiple middleware around a final handler.

    First added = outermost:

        pipeline.add(AccessLogMiddleware())   # sees the final status
        pipeline.add(GzipMiddleware())        # closest to the handler
        handler = pipeline.wrap(router)

        → AccessLog(Gzip(router))
    """

    def __init__(self) -> None:
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append ``middleware``; returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: Handler) -> Handler:
        """
        Wrap ``handler`` with every middleware in the pipeline.

        Wraps in reverse so the first-added middleware ends up outermost.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = middleware.wrap(current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
