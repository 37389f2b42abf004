"""
Unit tests for the router.
"""

import pytest

from originserver.http.methods import HTTPMethod
from originserver.http.request import parse_request
from originserver.http.response import ResponseBuilder
from originserver.http.router import (
    DynamicMatcher,
    ExactMatcher,
    MatcherChain,
    Router,
    SubtreeMatcher,
)
from originserver.http.status_codes import HTTPStatus


def make_request(method: str, target: str):
    """Helper to create a request for testing."""
    return parse_request(f"{method} {target} HTTP/1.1\r\n\r\n".encode())


def dummy_handler(response, request):
    """Dummy handler for testing."""
    response.set_status(HTTPStatus.OK).set_body_str(request.param or "")


def other_handler(response, request):
    response.set_status(HTTPStatus.ACCEPTED)


def dispatch(router: Router, method: str, target: str):
    request = make_request(method, target)
    response = ResponseBuilder()
    router.handle(response, request)
    return response, request


class TestMatchers:
    """Tests for the three matcher kinds."""

    def test_exact(self):
        matcher = ExactMatcher()
        matcher.add_route("/user-agent", dummy_handler)

        assert matcher.match("/user-agent").pattern == "/user-agent"
        assert matcher.match("/user-agent/") is None
        assert matcher.match("/user") is None

    def test_exact_rejects_trailing_slash(self):
        with pytest.raises(ValueError):
            ExactMatcher().add_route("/foo/", dummy_handler)

    def test_dynamic(self):
        matcher = DynamicMatcher()
        matcher.add_route("/items/:id", dummy_handler)

        match = matcher.match("/items/42")
        assert match.pattern == "/items/:id"
        assert match.param == "42"

    @pytest.mark.parametrize("target", ["/items/", "/items/a/b", "/items", "/other/1"])
    def test_dynamic_needs_one_nonempty_segment(self, target):
        matcher = DynamicMatcher()
        matcher.add_route("/items/:id", dummy_handler)

        assert matcher.match(target) is None

    def test_subtree(self):
        matcher = SubtreeMatcher()
        matcher.add_route("/files/", dummy_handler)

        assert matcher.match("/files/a/b").param == "a/b"
        assert matcher.match("/files/").param == ""
        assert matcher.match("/files") is None

    def test_subtree_longest_wins(self):
        matcher = SubtreeMatcher()
        matcher.add_route("/a/", dummy_handler)
        matcher.add_route("/a/b/", other_handler)

        match = matcher.match("/a/b/x")
        assert match.pattern == "/a/b/"
        assert match.param == "x"
        assert matcher.match("/a/c").pattern == "/a/"
        assert matcher.patterns == ["/a/b/", "/a/"]

    def test_subtree_reregister_replaces(self):
        matcher = SubtreeMatcher()
        matcher.add_route("/a/", dummy_handler)
        matcher.add_route("/a/", other_handler)

        assert len(matcher) == 1
        assert matcher.match("/a/x").handler is other_handler


class TestMatcherChain:
    """Tests for pattern classification and match order."""

    def test_classification(self):
        chain = MatcherChain()
        chain.add_route("/", dummy_handler)
        chain.add_route("/user-agent", dummy_handler)
        chain.add_route("/echo/:str", dummy_handler)
        chain.add_route("/files/", dummy_handler)

        assert len(chain.exact) == 2
        assert len(chain.dynamic) == 1
        assert len(chain.subtree) == 1

    def test_pattern_must_start_with_slash(self):
        with pytest.raises(ValueError):
            MatcherChain().add_route("echo/:str", dummy_handler)

    def test_exact_beats_dynamic(self):
        chain = MatcherChain()
        chain.add_route("/echo/:str", dummy_handler)
        chain.add_route("/echo/special", other_handler)

        assert chain.match("/echo/special").handler is other_handler
        assert chain.match("/echo/other").handler is dummy_handler

    def test_dynamic_beats_subtree(self):
        chain = MatcherChain()
        chain.add_route("/files/", other_handler)
        chain.add_route("/files/:name", dummy_handler)

        assert chain.match("/files/a").handler is dummy_handler
        assert chain.match("/files/a/b").handler is other_handler

    def test_match_is_deterministic(self):
        chain = MatcherChain()
        chain.add_route("/a/", dummy_handler)
        chain.add_route("/a/:x", other_handler)

        assert chain.match("/a/b") == chain.match("/a/b")


class TestRouter:
    """Tests for Router dispatch."""

    def test_dispatch_sets_param(self):
        router = Router()
        router.add_route(HTTPMethod.GET, "/echo/:s", dummy_handler)

        response, request = dispatch(router, "GET", "/echo/hello")

        assert response.status_code == 200
        assert response.body == b"hello"
        assert request.param == "hello"

    def test_method_string(self):
        router = Router()
        router.add_route("post", "/todos", dummy_handler)

        assert router.match(HTTPMethod.POST, "/todos") is not None

    def test_unknown_method_registration(self):
        with pytest.raises(ValueError):
            Router().add_route("DELETE", "/todos", dummy_handler)

    def test_method_not_allowed(self):
        router = Router()
        router.add_route(HTTPMethod.POST, "/todos", dummy_handler)

        response, _ = dispatch(router, "GET", "/todos")

        assert response.status_code == 405
        assert response.get_header("Allow") == "POST"

    def test_allow_lists_every_method(self):
        router = Router()
        router.add_route(HTTPMethod.GET, "/files/", dummy_handler)
        router.add_route(HTTPMethod.POST, "/files/", dummy_handler)

        assert router.allowed_methods("/files/x") == [HTTPMethod.GET, HTTPMethod.POST]

    def test_not_found(self):
        router = Router()
        router.add_route(HTTPMethod.GET, "/", dummy_handler)

        response, _ = dispatch(router, "GET", "/missing")

        assert response.status_code == 404
        assert response.get_header("Allow") is None

    def test_unknown_method_is_bad_request(self):
        router = Router()
        router.add_route(HTTPMethod.GET, "/", dummy_handler)

        response, _ = dispatch(router, "DELETE", "/")

        assert response.status_code == 400

    def test_case_insensitive_method(self):
        router = Router()
        router.add_route(HTTPMethod.GET, "/", dummy_handler)

        response, _ = dispatch(router, "get", "/")

        assert response.status_code == 200

    def test_trailing_slash_not_normalised(self):
        router = Router()
        router.add_route(HTTPMethod.GET, "/about", dummy_handler)

        response, _ = dispatch(router, "GET", "/about/")

        assert response.status_code == 404

    def test_exact_match_leaves_param_unset(self):
        router = Router()
        router.add_route(HTTPMethod.GET, "/", dummy_handler)

        _, request = dispatch(router, "GET", "/")

        assert request.param is None

    def test_decorators(self):
        router = Router()

        @router.get("/hello")
        def hello(response, request):
            response.set_status(HTTPStatus.OK)

        @router.post("/hello")
        def post_hello(response, request):
            response.set_status(HTTPStatus.CREATED)

        assert router.match(HTTPMethod.GET, "/hello").handler is hello
        assert router.match(HTTPMethod.POST, "/hello").handler is post_hello

    def test_callable_objects_as_handlers(self):
        class Counter:
            def __init__(self):
                self.calls = 0

            def __call__(self, response, request):
                self.calls += 1
                response.set_status(HTTPStatus.OK)

        counter = Counter()
        router = Router()
        router.add_route(HTTPMethod.GET, "/count", counter)
        dispatch(router, "GET", "/count")

        assert counter.calls == 1

    def test_router_is_a_handler(self):
        router = Router()
        router.add_route(HTTPMethod.GET, "/", dummy_handler)
        response = ResponseBuilder()

        router(response, make_request("GET", "/"))

        assert response.status_code == 200
