"""
=============================================================================
FILE RESPONDER
=============================================================================

The one handler weblite has. Every request ends up here and takes one of
two branches:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    TWO-BRANCH DISPATCH                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /                                                              │
    │     └─► serve_index()                                                │
    │           index.html readable  → 200 text/html, the document         │
    │           index.html missing   → 200 text/html, "hello world!"       │
    │           counter.consume()    (both cases)                          │
    │                                                                      │
    │   GET /some/file.bin                                                 │
    │     └─► serve_file("some/file.bin")                                  │
    │           missing              → 404 text/html, "FILE NOT FOUND :("  │
    │                                  counter untouched                   │
    │           present              → 200, sniffed Content-Type,          │
    │                                  Content-Length from stat,           │
    │                                  Content-Disposition: attachment     │
    │                                  counter.consume()                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The index branch always counts, even when it falls back to the greeting:
the root URL is one unit of capacity no matter what was on disk.

Paths are resolved relative to root_dir with no containment check; ``..``
and absolute paths reach whatever the filesystem lets them reach.

=============================================================================
"""

import logging
import os
from pathlib import Path
from typing import Union

from ..config import ServerConfig
from ..counter import RequestCounter
from ..http.mime_types import SNIFF_LENGTH, detect_content_type
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, not_found, ok
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


HELLO_HTML = "<html><body>hello world!</body></html>"
NOT_FOUND_HTML = '<html><body><font size="6"/><b>FILE NOT FOUND :(</b></body></html>'


class FileResponder:
    """
    Serves the index document at ``/`` and any other file as a download.

    Usage:
        counter = RequestCounter(config.initial_budget)
        responder = FileResponder(counter, root_dir=".")

        router = Router()
        router.add_route("/*path", responder.handle)
    """

    def __init__(
        self,
        counter: RequestCounter,
        root_dir: Union[str, Path] = ".",
        index_file: str = "index.html",
    ):
        """
        Args:
            counter: Decremented once per delivered response.
            root_dir: Directory request paths are relative to. Kept as
                      given (not resolved) so a relative root follows the
                      process working directory.
            index_file: Document served for ``/``.
        """
        self.counter = counter
        self.root_dir = Path(root_dir)
        self.index_file = index_file

    @classmethod
    def from_config(cls, config: ServerConfig, counter: RequestCounter) -> "FileResponder":
        return cls(counter, root_dir=config.root_dir, index_file=config.index_file)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Route entry point: pick the index or the generic file branch."""
        if request.path == "/":
            return self.serve_index()
        return self.serve_file(request.path[1:])

    def serve_index(self) -> HTTPResponse:
        """
        Serve the index document, or the greeting if it cannot be read.

        Always answers 200 and always consumes one unit of the counter.
        """
        logger.debug(f'Client asked for "{self.index_file}"')

        try:
            document = (self.root_dir / self.index_file).read_bytes()
        except OSError:
            logger.error(f"'{self.index_file}' DOES NOT EXIST!")
            document = HELLO_HTML

        response = ResponseBuilder().status(HTTPStatus.OK).html(document).build()
        self.counter.consume()
        return response

    def serve_file(self, relative_path: str) -> HTTPResponse:
        """
        Serve ``relative_path`` as an attachment.

        =====================================================================
        STEPS
        =====================================================================

        1. stat()      missing → 404, counter untouched
        2. open()      file handle scoped to this call
        3. read(512)   sniff Content-Type from the leading bytes
        4. fstat()     Content-Length
        5. seek(0)     read the whole file into the body
        6. consume()   one unit of the counter

        Errors other than "not found" (permissions, directories, I/O) are
        not reported to the client: the response is an empty 200 and the
        counter is left alone.

        =====================================================================
        """
        logger.debug(f"Client asked for file: {relative_path}")

        path = self.root_dir / relative_path

        try:
            path.stat()
        except (FileNotFoundError, NotADirectoryError):
            logger.error("file DOES NOT EXIST! -- sending 404")
            return not_found(NOT_FOUND_HTML)
        except OSError as e:
            logger.warning(f"Cannot stat {relative_path}: {e}")
            return ok()

        try:
            with open(path, "rb") as f:
                content_type = detect_content_type(f.read(SNIFF_LENGTH))
                size = os.fstat(f.fileno()).st_size
                f.seek(0)
                content = f.read(size)
        except OSError as e:
            logger.warning(f"Cannot read {relative_path}: {e}")
            return ok()

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .attachment(relative_path)
            .content_type(content_type)
            .content_length(size)
            .body(content)
            .build())

        self.counter.consume()
        return response
