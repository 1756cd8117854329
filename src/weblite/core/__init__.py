"""
=============================================================================
CORE NETWORKING
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           LISTENER                                   │
    │  • Binds the TCP socket and runs accept() on a background thread    │
    │  • Starts one daemon thread per accepted connection                 │
    │  • Stops gracefully: idle connections are interrupted, in-flight    │
    │    responses are allowed to finish                                   │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one thread per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Buffers recv() until a complete request has arrived              │
    │  • Tracks NEW → READING → PROCESSING → WRITING → KEEP_ALIVE         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState, RequestTooLarge
from .listener import Listener, ListenerState, start_listener

__all__ = [
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "Listener",
    "ListenerState",
    "start_listener",
]
