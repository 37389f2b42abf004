"""
=============================================================================
HTTP SERVER - MAIN ENTRY POINT
=============================================================================

Ties together the socket server, the router and the middleware pipeline,
and runs the per-connection request loop.

=============================================================================
SERVER ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         HTTPServer                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ┌─────────────────┐                                               │
    │   │  SocketServer   │  accept() loop, one worker thread per client  │
    │   └────────┬────────┘                                               │
    │            │  _process_connection(conn)   [worker thread]            │
    │            ▼                                                         │
    │   ┌─────────────────┐                                               │
    │   │   Connection    │  read_request() under size limits + timeout   │
    │   └────────┬────────┘                                               │
    │            ▼                                                         │
    │   ┌─────────────────┐                                               │
    │   │   Middleware    │  AccessLogMiddleware, ...                     │
    │   └────────┬────────┘                                               │
    │            ▼                                                         │
    │   ┌─────────────────┐                                               │
    │   │     Router      │  400 / handler / 405 + Allow / 404            │
    │   └────────┬────────┘                                               │
    │            ▼                                                         │
    │   ResponseBuilder.to_bytes() ──► conn.send_response()               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE CONNECTION LOOP
=============================================================================

    read request
        ├── EndOfFile ............. client hung up between requests: close
        ├── HTTPParseError ........ send 400 Bad Request, close
        ├── read timeout .......... log, close
        ├── OSError ............... log, close
        │
    decide KEEP_ALIVE / CLOSE  (Connection: close → CLOSE)
    run handler on a fresh ResponseBuilder
        └── handler raised ........ log, send 500 instead
    send response
        └── send failed ........... close
    CLOSE → close, KEEP_ALIVE → read the next request

=============================================================================
"""

import logging
import socket
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, ConnectionControl, SocketServer
from .handlers import FileRetriever, FileWriter, echo, home, user_agent
from .http import (
    EndOfFile,
    Handler,
    HTTPMethod,
    HTTPParseError,
    HTTPRequest,
    HTTPStatus,
    ResponseBuilder,
    Router,
)
from .middleware import AccessLogMiddleware, GzipMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 origin server.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=4221))

        @server.get("/")
        def index(response, request):
            response.set_status(HTTPStatus.OK)

        @server.get("/echo/:str")
        def echo(response, request):
            response.set_status(HTTPStatus.OK).set_body_str(request.param)

        server.use(AccessLogMiddleware())
        server.run()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            router: Route table to serve. A new empty one if not given.

        Raises:
            ValueError: the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._router = router or Router()
        self._middleware = MiddlewarePipeline()

        self._handler: Optional[Handler] = None

    # =========================================================================
    # CONFIGURATION API
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """
        Add server-wide middleware around the router.

        Middleware added first runs outermost.

        Returns:
            Self for method chaining.
        """
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    def add_route(self, method, pattern: str, handler: Handler) -> None:
        self._router.add_route(method, pattern, handler)

    def get(self, pattern: str):
        """Register a GET route."""
        return self._router.get(pattern)

    def post(self, pattern: str):
        """Register a POST route."""
        return self._router.post(pattern)

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (IP, port); the real port once listening on port 0."""
        return self._socket_server.address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, setup_logging: bool = True):
        """
        Start the server (blocking).

        Returns after shutdown() is called (or SIGINT/SIGTERM arrives on
        the main thread) and every connection worker has been joined.

        Args:
            setup_logging: Configure the root logger from config.log_level.

        Raises:
            OSError: the configured address could not be bound.
        """
        if setup_logging:
            self._setup_logging()

        # Route table and middleware are frozen from here on; workers
        # share them without locking.
        self._handler = self._middleware.wrap(self._router.handle)

        try:
            self._socket_server.start(self._process_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        logger.info("Server stopped")

    def shutdown(self):
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        """Root logger at config.log_level, in the same line format everywhere."""
        level = self.config.log_level_value

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("originserver").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _process_connection(self, conn: Connection):
        """
        Serve requests on one connection until it should close.

        Runs on the connection's worker thread. The SocketServer closes
        the connection when this returns.
        """
        while self._socket_server.is_running:
            try:
                request = conn.read_request()
            except EndOfFile:
                logger.debug(f"[{conn.id}] Client closed the connection")
                break
            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                self._send_error(conn, HTTPStatus.BAD_REQUEST)
                break
            except socket.timeout:
                logger.info(f"[{conn.id}] Read timed out after {conn.read_timeout}s")
                break
            except OSError as e:
                logger.error(f"[{conn.id}] Read failed: {e}")
                break

            control = ConnectionControl.for_request(request)

            response_bytes = self._respond(conn, request)
            if not conn.send_response(response_bytes):
                break

            if control is ConnectionControl.CLOSE:
                break

            conn.set_keep_alive()

    def _respond(self, conn: Connection, request: HTTPRequest) -> bytes:
        """Run the handler on a fresh builder and serialize the result."""
        response = ResponseBuilder()
        try:
            self._handler(response, request)
            return response.to_bytes()
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error on {request.method} {request.target}: {e}")
            return ResponseBuilder().set_status(HTTPStatus.INTERNAL_SERVER_ERROR).to_bytes()

    def _send_error(self, conn: Connection, status: HTTPStatus):
        """Send a bare error response, used before any handler ran."""
        conn.send_response(ResponseBuilder().set_status(status).to_bytes())


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Build the server with its stock routes.

        GET  /             home
        GET  /echo/:str    echo, gzip-compressed on request
        GET  /user-agent   user_agent
        GET  /files/       FileRetriever   ┐ only when config.directory
        POST /files/       FileWriter      ┘ is set

    Every request is access-logged.
    """
    server = HTTPServer(config)
    config = server.config

    server.use(AccessLogMiddleware())

    server.add_route(HTTPMethod.GET, "/", home)
    server.add_route(HTTPMethod.GET, "/echo/:str", GzipMiddleware(config.gzip_level).wrap(echo))
    server.add_route(HTTPMethod.GET, "/user-agent", user_agent)

    if config.directory is not None:
        server.add_route(HTTPMethod.GET, "/files/", FileRetriever(config.directory))
        server.add_route(HTTPMethod.POST, "/files/", FileWriter(config.directory))
        logger.debug(f"Serving files from {config.directory}")

    return server


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. HTTPServer = SocketServer + Router + MiddlewarePipeline
# 2. _process_connection(): the keep-alive loop, one per worker thread
# 3. Parse errors answer 400 and close; EOF and I/O errors just close
# 4. Handler exceptions answer 500; the connection stays usable
# 5. create_app(): stock routes, gzip on /echo, access log everywhere
# =============================================================================
