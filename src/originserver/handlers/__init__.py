"""
=============================================================================
HANDLERS MODULE
=============================================================================

Request handlers shipped with the server. Every handler has the same
shape and fills in the response it is given:

    handler(response: ResponseBuilder, request: HTTPRequest) -> None

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Type              │ Examples                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Function handler  │ home, echo, user_agent              (demo.py)   │
    ├─────────────────────────────────────────────────────────────────────┤
    │ Class handler     │ FileRetriever("/srv"), FileWriter("/srv")       │
    │                   │ configured once, called per request (files.py)  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
USAGE
=============================================================================

    from originserver.handlers import FileRetriever, FileWriter

    router.add_route("GET", "/files/", FileRetriever("/srv/data"))
    router.add_route("POST", "/files/", FileWriter("/srv/data"))

=============================================================================
"""

from .demo import echo, home, user_agent
from .files import FileRetriever, FileWriter, InvalidPathError, build_path, write_atomic

__all__ = [
    # Demo endpoints
    "home",
    "echo",
    "user_agent",

    # Files
    "FileRetriever",
    "FileWriter",
    "InvalidPathError",
    "build_path",
    "write_atomic",
]
