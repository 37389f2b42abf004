"""
Recognised HTTP request methods.

Only GET and POST are served. Anything else is answered with
400 Bad Request before routing is attempted.
"""

from enum import Enum


class HTTPMethod(Enum):
    """
    Request methods the router keeps a matcher chain for.

    Member order is significant: it is the order methods are listed in
    an ``Allow`` header.
    """

    GET = "GET"
    POST = "POST"

    @classmethod
    def parse(cls, token: str) -> "HTTPMethod":
        """
        Map a request-line method token to a member, ignoring case.

            >>> HTTPMethod.parse("get") is HTTPMethod.GET
            True

        Raises:
            ValueError: the token is not a recognised method.
        """
        try:
            return cls(token.upper())
        except ValueError:
            raise ValueError(f"unrecognised method: {token!r}") from None

    @property
    def carries_body(self) -> bool:
        """Whether requests with this method are read with a body."""
        return self is HTTPMethod.POST

    def __str__(self) -> str:
        return self.value
