"""
=============================================================================
WEBLITE CLI ENTRY POINT
=============================================================================

    # Serve the working directory until Enter is pressed
    python -m weblite

    # Serve exactly one file, then exit
    python -m weblite -1

    # Serve three files on port 9000, with debug logging
    weblite -amount 3 -port 9000 -debug

Flags take one dash or two (``-port`` and ``--port``), and ``-flag=value``
works too. Because ``-1`` is itself a flag, a negative value has to be
attached with ``=``: ``-amount=-1``.

=============================================================================
EXIT STATUS
=============================================================================

    0     served until told to stop
    1     -license printed the license
    2     bad command line (argparse)
    255   port out of range (exit status -1)

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import UNBOUNDED, ConfigError, ServerConfig
from .controller import EXIT_INVALID_CONFIG, Controller, setup_logging
from .license import LICENSE_TEXT


logger = logging.getLogger("weblite")

EXIT_LICENSE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weblite",
        description=(
            f"Weblite (v{__version__}): a simple, but robust, web server with "
            "the minimal functionality needed to serve files on the web."
        ),
        epilog="Both - and -- can invoke flag args.",
        allow_abbrev=False,
    )

    parser.add_argument(
        "-1", "--1",
        dest="once",
        action="store_true",
        help="Set the server to provide a single file",
    )
    parser.add_argument(
        "-debug", "--debug",
        action="store_true",
        help="Prints debugging messages",
    )
    parser.add_argument(
        "-license", "--license",
        action="store_true",
        help="Prints the included license",
    )
    parser.add_argument(
        "-amount", "--amount",
        type=int,
        default=UNBOUNDED,
        help="Set the server to provide # file(s) (default: -1, no limit)",
    )
    parser.add_argument(
        "-port", "--port",
        type=int,
        default=8080,
        help="Set the server's listening port (default: 8080)",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Parse the command line and run the server.

    Returns:
        The process exit status (see module docstring).
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    config = ServerConfig.from_args(args, argv)

    try:
        config.validate()
    except ConfigError as e:
        logger.error(str(e))
        return EXIT_INVALID_CONFIG

    if args.license:
        print(LICENSE_TEXT, end="")
        return EXIT_LICENSE

    return Controller(config).run()


def run():
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
