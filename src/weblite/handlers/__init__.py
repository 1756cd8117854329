"""
=============================================================================
HANDLERS
=============================================================================

Request handlers take an HTTPRequest and return an HTTPResponse.

    FileResponder   index document at ``/``, any other path as a download

=============================================================================
"""

from .files import FileResponder, HELLO_HTML, NOT_FOUND_HTML

__all__ = [
    "FileResponder",
    "HELLO_HTML",
    "NOT_FOUND_HTML",
]
