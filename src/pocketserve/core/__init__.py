"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The plumbing underneath the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                 │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Fixed number of worker threads (10 by default)                   │
    │  • Unbounded FIFO queue: a busy server queues, never refuses        │
    │  • Poison-pill shutdown lets queued connections finish              │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ Worker picks up a connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Wraps the accepted client socket                                 │
    │  • Buffered rfile / wfile streams                                   │
    │  • One request, one response, then a graceful close                 │
    └─────────────────────────────────────────────────────────────────────┘

The listening socket and accept loop live in pocketserve.server, next to
the lifecycle state they depend on.

=============================================================================
"""

from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool, WorkerState

__all__ = [
    "Connection",       # Wrapper for an accepted client socket
    "ConnectionState",  # Enum for the connection lifecycle
    "ThreadPool",       # Fixed pool of worker threads
    "WorkerState",      # Enum for worker monitoring
]
