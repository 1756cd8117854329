"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

    request.py       bytes  → HTTPRequest         (RequestParser)
    response.py      HTTPResponse → bytes         (ResponseBuilder)
    router.py        HTTPRequest → handler        (Router)
    status_codes.py  HTTPStatus enum with reason phrases
    mime_types.py    leading bytes → Content-Type (detect_content_type)

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    not_found,
    error_response,
    internal_error,
)
from .router import Router, Route
from .status_codes import HTTPStatus
from .mime_types import detect_content_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "not_found",
    "error_response",
    "internal_error",
    "Router",
    "Route",
    "HTTPStatus",
    "detect_content_type",
]
