"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server needs to know, fixed once the command line has been
parsed. ServerConfig is a frozen dataclass: the listener, the responder and
the controller all read the same instance and none of them can change it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHERE VALUES COME FROM                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   -port 9000      → port                                            │
    │   -debug          → debug                                           │
    │   -1              → single_shot, mode = FINITE                      │
    │   -amount 3       → run_amount, mode = FINITE (see from_args)       │
    │   (nothing)       → dataclass defaults, mode = INFINITE             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Validation happens at startup, before a socket exists: a bad port never
gets as far as bind().

=============================================================================
"""

import argparse
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence


UNBOUNDED = -1

MIN_PORT = 1
MAX_PORT = 65535


class ConfigError(ValueError):
    """Raised by ServerConfig.validate() for unusable settings."""


class RunMode(Enum):
    """
    How the server decides to stop.

    INFINITE: until the operator presses Enter (or signals the process)
    FINITE:   once the request budget has been used up
    """
    INFINITE = "infinite"
    FINITE = "finite"


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for one server run.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    RUN CONTROL
    - mode, single_shot, run_amount

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size, server_name

    FILES
    - root_dir, index_file

    LOGGING
    - debug

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # RUN CONTROL
    # ─────────────────────────────────────────────────────────────────────

    mode: RunMode = RunMode.INFINITE

    single_shot: bool = False
    """Serve exactly one file, whatever run_amount says."""

    run_amount: int = UNBOUNDED
    """Number of files to serve in finite mode; -1 means no limit."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    port: int = 8080
    backlog: int = 128
    buffer_size: int = 8192

    timeout: Optional[float] = 30.0
    """Socket timeout for reading a request, in seconds."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024
    server_name: str = "weblite/0.1.0"

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """Directory request paths are resolved against (the working directory)."""

    index_file: str = "index.html"

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    debug: bool = False

    @property
    def initial_budget(self) -> int:
        """Starting value for the request counter."""
        return 1 if self.single_shot else self.run_amount

    @property
    def is_finite(self) -> bool:
        return self.mode is RunMode.FINITE

    @classmethod
    def from_args(
        cls,
        args: argparse.Namespace,
        argv: Sequence[str],
        **overrides,
    ) -> "ServerConfig":
        """
        Build a configuration from parsed command-line flags.

        =====================================================================
        MODE RULES
        =====================================================================

        FINITE when either:
          - an amount other than -1 was given AND at least two tokens were
            on the command line (``-amount 3`` counts as two, while
            ``-amount=3`` on its own is one and stays INFINITE)
          - single-shot (-1) was given; run_amount is forced to 1

        INFINITE otherwise.

        =====================================================================

        Args:
            args: Namespace from the weblite argument parser.
            argv: The raw tokens after the program name.
            **overrides: Extra ServerConfig fields (root_dir, host, ...).
        """
        mode = RunMode.INFINITE
        run_amount = args.amount

        if run_amount != UNBOUNDED and len(argv) >= 2:
            mode = RunMode.FINITE

        if args.once:
            run_amount = 1
            mode = RunMode.FINITE

        return cls(
            mode=mode,
            single_shot=args.once,
            run_amount=run_amount,
            port=args.port,
            debug=args.debug,
            **overrides,
        )

    def validate(self) -> None:
        """
        Fail fast on values the server cannot run with.

        Raises:
            ConfigError: naming the offending value.
        """
        if not MIN_PORT <= self.port <= MAX_PORT:
            raise ConfigError(f"Port value ({self.port}) is out of bounds!")

        if self.backlog < 1:
            raise ConfigError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ConfigError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ConfigError("keep_alive_timeout must be > 0")
