"""
=============================================================================
URL ROUTING
=============================================================================

The route table maps path patterns to handlers. It is built explicitly and
handed to the Listener; nothing registers itself globally.

weblite installs a single catch-all route:

    router = Router()
    router.add_route("/*path", responder.handle)

    GET /                → responder.handle   path_params = {"path": ""}
    GET /a.txt           → responder.handle   path_params = {"path": "a.txt"}
    GET /docs/b/c.pdf    → responder.handle   path_params = {"path": "docs/b/c.pdf"}

Pattern syntax:

    /static     exact segment
    /*name      the rest of the path (may be empty), captured as
                path_params["name"]

Every method is dispatched the same way. First registered, first matched.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found


logger = logging.getLogger(__name__)


Handler = Callable[[HTTPRequest], HTTPResponse]

NO_ROUTE_HTML = "<html><body><b>NO ROUTE</b></body></html>"


@dataclass
class Route:
    """A path pattern bound to a handler."""

    path: str
    handler: Handler
    _pattern: Optional[re.Pattern] = field(default=None, repr=False)


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    Explicit route table.

        router = Router()
        router.add_route("/*path", serve)
        response = router.handle(request)
    """

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(self, path: str, handler: Handler) -> Route:
        """
        Register a handler for a path pattern.

        Args:
            path: URL pattern (``/``, ``/static``, ``/*path``)
            handler: Callable taking an HTTPRequest, returning an HTTPResponse

        Returns:
            The registered Route
        """
        route = Route(path=path, handler=handler, _pattern=self._compile_pattern(path))
        self._routes.append(route)
        logger.debug(f"Registered route {path}")
        return route

    def _compile_pattern(self, path: str) -> re.Pattern:
        """
        Compile a path pattern into an anchored regex.

            "/*path"        →  ^/(?P<path>.*)$
            "/"             →  ^/$
        """
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith("*"):
                regex_parts.append(f"(?P<{segment[1:] or 'wildcard'}>.*)")
                break  # wildcard consumes the rest

            regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")

        regex_parts.append("$")
        return re.compile("".join(regex_parts), re.DOTALL)

    def match(self, path: str) -> Optional[RouteMatch]:
        """Return the first route matching path, or None."""
        for route in self._routes:
            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch a request to its handler; 404 if nothing matches."""
        match = self.match(request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        return not_found(NO_ROUTE_HTML)

    @property
    def routes(self) -> List[Route]:
        return list(self._routes)
