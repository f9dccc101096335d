"""
=============================================================================
CORE NETWORKING
=============================================================================

    SocketServer    binds, listens, accepts; hands each socket onward
    Connection      one client socket: read the request line, send, close
    ThreadPool      bounded workers that run one connection each

Accepted connections flow:

    SocketServer.accept() ──► StaticFileServer._handle_connection()
                                      │
                                      ▼
                              ThreadPool.submit()
                                      │
                                      ▼
                      worker: StaticFileServer._process_connection()

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestLineTooLong
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestLineTooLong",
    "ThreadPool",
]
