"""
=============================================================================
SOCKET SERVER - THREAD PER CONNECTION
=============================================================================

Owns the listening socket, accepts clients, and runs each connection on
its own worker thread. All workers are joined before start() returns, so
no connection outlives the server.

=============================================================================
THE TCP SERVER LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket() ──► bind() ──► listen() ──► accept() loop                 │
    │                                           │                          │
    │                       ┌───────────────────┼───────────────────┐      │
    │                       ▼                   ▼                   ▼      │
    │                  worker-1            worker-2            worker-3    │
    │                  conn A              conn B              conn C      │
    │                  (keep-alive loop)   (keep-alive loop)   ...         │
    │                                                                      │
    │   shutdown() ──► accept loop exits                                   │
    │              ──► listening socket closed                             │
    │              ──► live connections interrupted (SHUT_RD)              │
    │              ──► every worker joined                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY ONE THREAD PER CONNECTION?
=============================================================================

A keep-alive connection spends most of its life blocked in recv(),
waiting for the next request. Giving it a dedicated thread means a slow
or idle client only ever blocks itself; the read timeout bounds how long
that can last. The GIL is released during blocking socket calls, so the
threads overlap on I/O.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR
    Rebind immediately after a restart instead of waiting out TIME_WAIT.

TCP_NODELAY
    Disable Nagle's algorithm. Responses are written with one sendall(),
    so there is nothing to gain from coalescing.

Listening socket timeout (1 s)
    accept() wakes up once a second to notice a shutdown request.

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "How do you stop a server whose workers are blocked in recv()?"
A: "Half-close each client socket for reading. The blocked recv()
   returns 0, the worker sees end-of-file and exits its loop like it
   would for a normal client close. Then join the threads."

Q: "What does the backlog argument to listen() do?"
A: "It sizes the kernel queue of completed handshakes that haven't been
   accept()ed yet. Connections beyond it are refused or retried by
   the client's TCP stack."

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Set, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Listener plus one worker thread per accepted connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   SO_REUSEADDR, TCP_NODELAY             │
    │        ├──► bind(), listen()                                         │
    │        ├──► _setup_signals()   SIGTERM/SIGINT (main thread only)     │
    │        ├──► _accept_loop()     BLOCKS here                           │
    │        │       └──► Connection(...)                                  │
    │        │       └──► Thread(target=_run_worker)                       │
    │        └──► _cleanup()         close, interrupt, join                │
    │                                                                      │
    │    shutdown()                                                        │
    │        └──► _running = False   (picked up within one poll interval)  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...  # runs on the connection's own thread

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Supplies the bind address and backlog, and the limits and
                    timeout handed to every Connection.

        Note: The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening / once cleanup has finished
        self._ready_event = threading.Event()
        self._stopped_event = threading.Event()

        self._lock = threading.Lock()
        self._workers: Set[threading.Thread] = set()
        self._connections: Set[Connection] = set()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """False once shutdown() has been requested."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (IP, port).

        Reports the real port when the config asked for port 0.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        """
        Turn SIGTERM and SIGINT into a graceful shutdown.

        Python only allows signal handlers on the main thread, so a server
        started from any other thread (tests, embedding) skips this.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # SERVING
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Start accepting connections.

        This method BLOCKS until shutdown() is called and every worker has
        finished.

        Args:
            connection_handler: Called on a fresh worker thread with each
                                accepted Connection. The worker closes
                                the connection when the handler returns.

        Raises:
            OSError: the address could not be bound.
        """
        self._stopped_event.clear()
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            self._stopped_event.set()
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept until shutdown, spawning one worker per client.

            while self._running:
                accept()            BLOCKS up to ACCEPT_POLL_INTERVAL
                Connection(...)     read timeout + bounded reader
                Thread(...).start() the worker owns the connection now
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                read_timeout=self.config.read_timeout,
                buffer_size=self.config.buffer_size,
                request_line_limit=self.config.request_line_limit,
                header_limit=self.config.header_limit,
                body_limit=self.config.body_limit,
            )

            worker = threading.Thread(
                target=self._run_worker,
                args=(conn, connection_handler),
                name=f"conn-{conn.id}",
                daemon=True,
            )
            with self._lock:
                self._connections.add(conn)
                self._workers.add(worker)
            worker.start()

    def _run_worker(self, conn: Connection, connection_handler: Callable[[Connection], None]):
        try:
            with conn:
                connection_handler(conn)
        except Exception:
            logger.exception(f"[{conn.id}] Unhandled error on connection")
        finally:
            with self._lock:
                self._connections.discard(conn)
                self._workers.discard(threading.current_thread())

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """
        Initiate graceful shutdown.

        Safe to call from a signal handler, from another thread, and more
        than once.
        """
        if self._running:
            logger.info("Shutdown requested, no longer accepting")
        self._running = False

    def _cleanup(self):
        """Close the listener, then wind down and join every worker."""
        self._running = False
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass

        with self._lock:
            connections = list(self._connections)
            workers = list(self._workers)

        if connections:
            logger.info(f"Closing {len(connections)} open connection(s)")
        for conn in connections:
            conn.interrupt()
        for worker in workers:
            worker.join()

        self._socket = None
        self._ready_event.clear()
        self._stopped_event.set()
        logger.info("All connection workers joined")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the server is listening.

        Returns:
            True once listening, False if timeout expired first.
        """
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until start() has fully wound down.

        Args:
            timeout: Maximum time to wait in seconds. None = wait forever.

        Returns:
            True if shutdown completed, False if timeout.
        """
        return self._stopped_event.wait(timeout)
