"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

HTTPResponse is a plain data container; ResponseBuilder is the fluent way
to make one; to_bytes() turns it into what goes on the wire:

    HTTP/1.1 200 OK\r\n                                  ← status line
    Content-Disposition: attachment; filename=a.pdf\r\n
    Content-Type: application/pdf\r\n
    Content-Length: 48213\r\n
    Date: Sat, 17 Oct 2026 09:12:44 GMT\r\n              ← auto-added
    Server: weblite/0.1.0\r\n                           ← auto-added
    \r\n
    %PDF-1.7 ...                                         ← body

Usage:

    response = (ResponseBuilder()
        .status(HTTPStatus.OK)
        .attachment("report.pdf")
        .content_type("application/pdf")
        .body(data)
        .build())

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Union

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "weblite/0.1.0"


@dataclass
class HTTPResponse:
    """An HTTP response waiting to be serialised and sent."""

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """E.g. ``HTTP/1.1 200 OK``."""
        return f"{self.version} {self.status.value} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header; returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        include_body: bool = True,
    ) -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Length, Date and Server are added when the handler did not
        set them. ``include_body=False`` is used for HEAD requests: the
        headers still describe the body that a GET would have returned.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"

        if not include_body:
            return header_bytes
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Every setter returns the builder, so calls chain; build() produces the
    final HTTPResponse.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        self._headers["Content-Type"] = content_type
        return self

    def content_length(self, length: int) -> "ResponseBuilder":
        """
        Set Content-Length explicitly.

        Handlers serving files take it from stat() rather than from the
        buffered body.
        """
        self._headers["Content-Length"] = str(length)
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the raw body; strings are UTF-8 encoded."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set an HTML body with ``Content-Type: text/html`` and a matching
        Content-Length.

        No charset parameter is added: the index page is sent as-is and the
        browser decides.
        """
        self.body(html)
        self._headers["Content-Type"] = "text/html"
        self._headers["Content-Length"] = str(len(self._body))
        return self

    def attachment(self, filename: str) -> "ResponseBuilder":
        """Ask the browser to download the body instead of rendering it."""
        self._headers["Content-Disposition"] = f"attachment; filename={filename}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Example: ``Wed, 01 Jan 2026 12:00:00 GMT``. HTTP dates are always GMT.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes] = b"") -> HTTPResponse:
    """200 OK with an arbitrary body."""
    return ResponseBuilder().status(HTTPStatus.OK).body(body).build()


def not_found(html: Union[str, bytes]) -> HTTPResponse:
    """404 Not Found with an HTML body."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).html(html).build()


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """
    Plain-text error for failures outside the handler (parse errors,
    timeouts, handler crashes). The connection is closed afterwards.
    """
    return (ResponseBuilder()
        .status(status)
        .text(f"{status.value} {message or status.phrase}")
        .close_connection()
        .build())


def internal_error() -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
