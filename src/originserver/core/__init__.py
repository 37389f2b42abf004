"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking layer: sockets, threads and connection lifecycle. Nothing
in here knows about routes or handlers; HTTPServer plugs those in.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Creates the listening socket, binds, listens                     │
    │  • Runs the accept() loop                                           │
    │  • Spawns ONE worker thread per accepted connection                 │
    │  • Joins every worker before returning from start()                 │
    │  • SIGTERM / SIGINT trigger a graceful shutdown                     │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one thread per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Wraps a client socket with a bounded, buffered request reader    │
    │  • Applies the read timeout to every socket read                    │
    │  • Tracks state (NEW → READING → PROCESSING → WRITING → ...)        │
    │  • ConnectionControl: KEEP_ALIVE or CLOSE after each response       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionControl, ConnectionState

__all__ = [
    "SocketServer",       # TCP listener, one worker thread per connection
    "Connection",         # Client socket + bounded request reader
    "ConnectionState",    # Lifecycle states, for logging
    "ConnectionControl",  # Keep-alive / close decision per request
]
