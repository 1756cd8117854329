"""
=============================================================================
RUN-MODE CONTROLLER
=============================================================================

Decides when weblite stops.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Controller.run()                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   validate config        bad port → log, return -1 (nothing bound)  │
    │        │                                                             │
    │        ▼                                                             │
    │   counter + responder + router("/*path") + listener.start()         │
    │        │                                                             │
    │        ├── INFINITE: prompt "Press 'Enter' to quit..." and read     │
    │        │             lines until one is blank (or input ends)       │
    │        │                                                             │
    │        └── FINITE:   wait until the counter is used up               │
    │                                                                      │
    │   SIGINT / SIGTERM at any point while waiting → straight to         │
    │   shutdown                                                           │
    │        │                                                             │
    │        ▼                                                             │
    │   listener.shutdown()    in-flight responses finish                 │
    │   "done. exiting"        return 0                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import signal
import sys
import threading
from typing import Optional, TextIO

from .config import ConfigError, ServerConfig
from .counter import RequestCounter
from .core.listener import Listener
from .handlers.files import FileResponder
from .http.router import Router


logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_INVALID_CONFIG = -1

# How often the finite-mode wait checks that the listener is still up
FINITE_POLL_INTERVAL = 0.5


def setup_logging(debug: bool = False):
    """Configure the root logger once for the whole process."""
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("weblite").setLevel(level)


class ShutdownRequested(Exception):
    """Raised on the main thread when SIGINT or SIGTERM arrives."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(signal.Signals(signum).name)


def build_router(responder: FileResponder) -> Router:
    """The route table: every path goes to the file responder."""
    router = Router()
    router.add_route("/*path", responder.handle)
    return router


class Controller:
    """
    Runs the server in the mode the configuration asks for.

    Usage:
        config = ServerConfig.from_args(args, argv)
        exit_code = Controller(config).run()

    Args:
        config: The run's configuration.
        input_stream: Where operator input is read from in infinite mode.
                      Defaults to sys.stdin.
    """

    def __init__(self, config: ServerConfig, input_stream: Optional[TextIO] = None):
        self.config = config
        self.input_stream = input_stream

        self.counter = RequestCounter(config.initial_budget)
        self.responder = FileResponder.from_config(config, self.counter)
        self.router = build_router(self.responder)
        self.listener = Listener(config, self.router)

        self._original_handlers: dict = {}

    def run(self) -> int:
        """
        Serve until the run mode says stop.

        Returns:
            Process exit status: 0, or -1 for an invalid configuration.
        """
        try:
            self.config.validate()
        except ConfigError as e:
            logger.error(str(e))
            return EXIT_INVALID_CONFIG

        logger.debug(
            f"flags: single_shot={self.config.single_shot}, "
            f"amount={self.config.run_amount}, mode={self.config.mode.value}"
        )

        logger.info("starting HTTP server")
        self.listener.start()

        self._setup_signals()
        try:
            if self.config.is_finite:
                self._serve_finite()
            else:
                self._serve_forever()
        except ShutdownRequested as e:
            logger.info(f"Received {e}, shutting down")
        finally:
            self._restore_signals()

        self.listener.shutdown()
        logger.info("done. exiting")
        return EXIT_OK

    # =========================================================================
    # RUN MODES
    # =========================================================================

    def _serve_forever(self):
        """Infinite mode: wait for the operator to press Enter."""
        logger.info("serving forEVER!")
        stream = self.input_stream if self.input_stream is not None else sys.stdin

        while True:
            logger.info("   Press 'Enter' to quit...")
            line = stream.readline()

            if not line:
                logger.info("      Input closed...quitting!")
                break

            if not line.strip():
                logger.info("      Enter was pressed...quitting!")
                break

            logger.warning("      You didn't press ONLY enter...Press 'Enter' to quit...")

    def _serve_finite(self):
        """Finite mode: wait until the request budget is used up."""
        logger.info(f"serving for {self.config.initial_budget} files")

        while not self.counter.wait_exhausted(timeout=FINITE_POLL_INTERVAL):
            if not self.listener.is_running:
                logger.error("Listener is not running, giving up on the remaining files")
                break

        logger.info("stopping HTTP server")

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        """
        Turn SIGINT/SIGTERM into ShutdownRequested on the main thread.

        signal.signal() only works on the main thread; elsewhere (tests,
        embedding) the controller runs without handlers.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            raise ShutdownRequested(signum)

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()
