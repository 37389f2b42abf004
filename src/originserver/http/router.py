"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, target) to a handler using three kinds of pattern:

- Exact:    /            /user-agent        matches the target verbatim
- Dynamic:  /echo/:str   /items/:id         matches one trailing segment
- Subtree:  /files/      /static/css/       matches any target under it

=============================================================================
ROUTING ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                            ROUTER                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET  chain                        POST chain                      │
    │   ┌──────────────────────────┐      ┌──────────────────────────┐    │
    │   │ 1. Exact    {"/", ...}   │      │ 1. Exact                 │    │
    │   │ 2. Dynamic  {"/echo":…}  │      │ 2. Dynamic               │    │
    │   │ 3. Subtree  ["/files/"]  │      │ 3. Subtree  ["/files/"]  │    │
    │   └──────────────────────────┘      └──────────────────────────┘    │
    │                                                                      │
    │   GET /echo/hi                                                       │
    │     └── exact? no ── dynamic "/echo" + "hi"? yes ── param = "hi"    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One MatcherChain per recognised method. Within a chain the first hit wins,
in the fixed order exact → dynamic → subtree.

=============================================================================
DISPATCH OUTCOMES
=============================================================================

    method not GET/POST ............................ 400 Bad Request
    match in the request's own chain ............... run the handler
    no match there, but a match in another chain ... 405 + Allow header
    no match anywhere .............................. 404 Not Found

=============================================================================
PATTERN RULES
=============================================================================

1. SUBTREE PATTERNS KEEP THEIR SLASH
   "/files/" matches "/files/", "/files/a" and "/files/a/b/c".
   The parameter is whatever follows the pattern, possibly "".
   "/files" (no slash) does NOT match: targets are never normalised.

2. LONGER SUBTREES WIN
   Subtree patterns are kept sorted in descending order, so "/a/b/" is
   tried before "/a/" and claims "/a/b/x".

3. DYNAMIC MEANS EXACTLY ONE NON-EMPTY SEGMENT
   "/items/:id" matches "/items/42" but not "/items/" or "/items/4/2".

=============================================================================
INTERVIEW QUESTIONS ABOUT ROUTING
=============================================================================

Q: "Why one table per method instead of a method field on each route?"
A: "Lookup for the request's method touches only its own chain, and the
   405 check becomes a scan over a handful of chains."

Q: "Why dictionaries for exact and dynamic, but a list for subtree?"
A: "Exact and dynamic lookups have a single candidate key derived from
   the target. A subtree match is a prefix test, so every pattern has to
   be considered, longest first."

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from .methods import HTTPMethod
from .request import HTTPRequest
from .response import ResponseBuilder
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

# A handler mutates the response it is given. Plain functions, closures,
# bound methods and objects with __call__ all qualify.
Handler = Callable[[ResponseBuilder, HTTPRequest], None]


@dataclass(frozen=True)
class Match:
    """
    Result of a successful lookup.

    Example:
        pattern "/echo/:str", target "/echo/hi"
        → Match(pattern="/echo/:str", handler=echo, param="hi")
    """

    pattern: str
    handler: Handler
    param: Optional[str] = None


# =============================================================================
# MATCHERS
# =============================================================================

class ExactMatcher:
    """Pattern equals target. Patterns are "/" or do not end in "/"."""

    def __init__(self) -> None:
        self._routes: Dict[str, Handler] = {}

    def add_route(self, pattern: str, handler: Handler) -> None:
        if pattern != "/" and pattern.endswith("/"):
            raise ValueError(f"exact pattern must not end with '/': {pattern!r}")
        self._routes[pattern] = handler

    def match(self, target: str) -> Optional[Match]:
        handler = self._routes.get(target)
        if handler is None:
            return None
        return Match(target, handler)

    def __len__(self) -> int:
        return len(self._routes)


class DynamicMatcher:
    """
    Pattern ``<prefix>/:name`` matches ``<prefix>/<segment>``.

    Routes are stored under the prefix, so a lookup is a single rpartition
    of the target plus one dictionary probe.
    """

    def __init__(self) -> None:
        # prefix → (pattern, handler)
        self._routes: Dict[str, Tuple[str, Handler]] = {}

    def add_route(self, pattern: str, handler: Handler) -> None:
        prefix, _, name = pattern.rpartition("/")
        if not name.startswith(":"):
            raise ValueError(f"dynamic pattern must end with '/:name': {pattern!r}")
        self._routes[prefix] = (pattern, handler)

    def match(self, target: str) -> Optional[Match]:
        prefix, sep, param = target.rpartition("/")
        if not sep or not param:
            return None
        route = self._routes.get(prefix)
        if route is None:
            return None
        pattern, handler = route
        return Match(pattern, handler, param)

    def __len__(self) -> int:
        return len(self._routes)


class SubtreeMatcher:
    """Pattern ending in "/" matches every target it prefixes."""

    def __init__(self) -> None:
        self._routes: List[Tuple[str, Handler]] = []

    def add_route(self, pattern: str, handler: Handler) -> None:
        if pattern == "/" or not pattern.endswith("/"):
            raise ValueError(f"subtree pattern must end with '/' and not be '/': {pattern!r}")
        self._routes = [route for route in self._routes if route[0] != pattern]
        self._routes.append((pattern, handler))
        self._routes.sort(key=lambda route: route[0], reverse=True)

    def match(self, target: str) -> Optional[Match]:
        for pattern, handler in self._routes:
            if target.startswith(pattern):
                return Match(pattern, handler, target[len(pattern):])
        return None

    @property
    def patterns(self) -> List[str]:
        return [pattern for pattern, _ in self._routes]

    def __len__(self) -> int:
        return len(self._routes)


class MatcherChain:
    """
    The exact, dynamic and subtree matchers for one method.

    A plain aggregate: the three matchers are fields, searched in a fixed
    order, not a polymorphic list.
    """

    def __init__(self) -> None:
        self.exact = ExactMatcher()
        self.dynamic = DynamicMatcher()
        self.subtree = SubtreeMatcher()

    def add_route(self, pattern: str, handler: Handler) -> None:
        """
        Classify ``pattern`` and register it with the right matcher.

            "/"              → exact
            "/files/"        → subtree
            "/echo/:str"     → dynamic
            "/user-agent"    → exact

        Raises:
            ValueError: ``pattern`` does not start with "/".
        """
        if not pattern.startswith("/"):
            raise ValueError(f"pattern must start with '/': {pattern!r}")

        if pattern == "/":
            self.exact.add_route(pattern, handler)
        elif pattern.endswith("/"):
            self.subtree.add_route(pattern, handler)
        elif pattern.rpartition("/")[2].startswith(":"):
            self.dynamic.add_route(pattern, handler)
        else:
            self.exact.add_route(pattern, handler)

    def match(self, target: str) -> Optional[Match]:
        return (
            self.exact.match(target)
            or self.dynamic.match(target)
            or self.subtree.match(target)
        )


# =============================================================================
# ROUTER
# =============================================================================

class Router:
    """
    Method-keyed route table.

    Usage:
        router = Router()

        @router.get("/echo/:str")
        def echo(response, request):
            response.set_status(HTTPStatus.OK).set_body_str(request.param)

        router.add_route(HTTPMethod.POST, "/files/", FileWriter("/srv"))

    The table is filled before the server starts and only read afterwards,
    so worker threads share one Router without locking.
    """

    def __init__(self) -> None:
        self._chains: Dict[HTTPMethod, MatcherChain] = {
            method: MatcherChain() for method in HTTPMethod
        }

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(self, method: Union[HTTPMethod, str], pattern: str, handler: Handler) -> None:
        """
        Register ``handler`` for ``method`` and ``pattern``.

        Raises:
            ValueError: unrecognised method, or malformed pattern.
        """
        if not isinstance(method, HTTPMethod):
            method = HTTPMethod.parse(method)
        self._chains[method].add_route(pattern, handler)
        logger.debug(f"Route registered: {method} {pattern}")

    def route(self, method: Union[HTTPMethod, str], pattern: str) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, pattern, handler)
            return handler
        return decorator

    def get(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(HTTPMethod.GET, pattern)

    def post(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(HTTPMethod.POST, pattern)

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: HTTPMethod, target: str) -> Optional[Match]:
        """Look ``target`` up in the chain for ``method`` only."""
        return self._chains[method].match(target)

    def allowed_methods(self, target: str) -> List[HTTPMethod]:
        """Every method whose chain matches ``target``, in enum order."""
        return [
            method for method, chain in self._chains.items()
            if chain.match(target) is not None
        ]

    def handle(self, response: ResponseBuilder, request: HTTPRequest) -> None:
        """
        Dispatch ``request`` and let the chosen handler fill ``response``.

        Sets the request's ``param`` when the match produced one.
        """
        method = request.http_method
        if method is None:
            response.set_status(HTTPStatus.BAD_REQUEST)
            return

        match = self.match(method, request.target)
        if match is not None:
            logger.debug(f"match: {match.pattern}")
            if match.param is not None:
                request.param = match.param
            match.handler(response, request)
            return

        allowed = self.allowed_methods(request.target)
        if allowed:
            response.add_allow(allowed)
            response.set_status(HTTPStatus.METHOD_NOT_ALLOWED)
            return

        response.set_status(HTTPStatus.NOT_FOUND)

    __call__ = handle


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Three matcher kinds: exact (dict), dynamic (dict by prefix),
#    subtree (list sorted descending)
# 2. MatcherChain tries them in that order, first hit wins
# 3. Router keeps one chain per HTTPMethod
# 4. Dispatch: 400 bad method, handler, 405 + Allow, or 404
# =============================================================================
