"""
=============================================================================
WEBLITE - A Minimal File-Serving HTTP Server
=============================================================================

Serves the working directory over HTTP/1.1, either until the operator
presses Enter or until a fixed number of files has been delivered.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    weblite/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m weblite)
    ├── controller.py        # Run modes, signals, shutdown
    ├── config.py            # ServerConfig dataclass
    ├── counter.py           # Thread-safe request budget
    ├── license.py           # Text printed by -license
    ├── core/
    │   ├── listener.py      # Listening socket, accept loop, shutdown
    │   └── connection.py    # Buffered client connection
    ├── http/
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Response building and serialization
    │   ├── router.py        # Route table
    │   ├── status_codes.py  # Status codes used on the wire
    │   └── mime_types.py    # Content-type sniffing
    └── handlers/
        └── files.py         # Index page and file downloads

=============================================================================
QUICK START
=============================================================================

    from weblite import Controller, ServerConfig, RunMode

    config = ServerConfig(mode=RunMode.FINITE, run_amount=2)
    Controller(config).run()   # returns after two files are served

=============================================================================
"""

__version__ = "0.1.0"

from .config import ServerConfig, RunMode, ConfigError
from .counter import RequestCounter
from .controller import Controller
from .core import Listener, ListenerState, start_listener
from .handlers import FileResponder

__all__ = [
    "ServerConfig",
    "RunMode",
    "ConfigError",
    "RequestCounter",
    "Controller",
    "Listener",
    "ListenerState",
    "start_listener",
    "FileResponder",
    "__version__",
]
