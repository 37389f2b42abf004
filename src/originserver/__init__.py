"""
=============================================================================
ORIGINSERVER - A MINIMAL HTTP/1.1 ORIGIN SERVER
=============================================================================

A small, threaded HTTP/1.1 server built directly on sockets:

    - bounded, buffered request parsing (1 KiB request line, 8 KiB headers,
      8 KiB body)
    - multi-valued headers (repeated lines and comma lists)
    - persistent connections with a per-read timeout
    - routing by method with exact, dynamic (/echo/:str) and subtree
      (/files/) patterns, including 405 Method Not Allowed + Allow
    - middleware: gzip compression, access logging
    - file retrieval and atomic file upload under a base directory

=============================================================================
PACKAGE LAYOUT
=============================================================================

    originserver/
    ├── http/           messages: reader, parser, headers, response, router
    ├── core/           sockets: listener, worker threads, connections
    ├── middleware/     gzip, access log, pipeline
    ├── handlers/       demo endpoints, file retriever / writer
    ├── server.py       HTTPServer + create_app()
    ├── config.py       ServerConfig
    └── __main__.py     command line

=============================================================================
QUICK START
=============================================================================

    from originserver import HTTPServer, ServerConfig
    from originserver.http import HTTPStatus

    server = HTTPServer(ServerConfig(port=4221))

    @server.get("/hello/:name")
    def hello(response, request):
        response.set_status(HTTPStatus.OK).set_body_str(f"hi {request.param}")

    server.run()

=============================================================================
"""

__version__ = "0.1.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
