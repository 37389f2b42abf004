"""
Demonstration endpoints mounted by create_app().

    GET /             200, empty body
    GET /echo/:str    200, the path segment as text/plain
    GET /user-agent   200, the User-Agent header as text/plain
"""

from ..http.multimap import NotScalarError
from ..http.request import HTTPRequest
from ..http.response import ResponseBuilder
from ..http.status_codes import HTTPStatus


def home(response: ResponseBuilder, request: HTTPRequest) -> None:
    response.set_status(HTTPStatus.OK)


def echo(response: ResponseBuilder, request: HTTPRequest) -> None:
    """Reply with the dynamic segment, e.g. "/echo/abc" → "abc"."""
    if request.param is None:
        response.set_status(HTTPStatus.BAD_REQUEST)
        return
    response.set_status(HTTPStatus.OK).set_body_str(request.param)


def user_agent(response: ResponseBuilder, request: HTTPRequest) -> None:
    """
    Reply with the client's User-Agent.

    A missing header echoes as an empty body. A User-Agent holding several
    values (repeated lines or commas) is not a single agent: 400.
    """
    try:
        agent = request.headers.user_agent
    except NotScalarError:
        response.set_status(HTTPStatus.BAD_REQUEST)
        return
    response.set_status(HTTPStatus.OK).set_body_str(agent or "")
