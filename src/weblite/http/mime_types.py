"""
=============================================================================
CONTENT TYPE SNIFFING
=============================================================================

Files are served with a Content-Type worked out from their first bytes,
not from their extension. ``notes`` with no suffix is still text, and a
PNG renamed to ``.txt`` is still an image.

The rules follow the WHATWG MIME Sniffing Standard
(https://mimesniff.spec.whatwg.org/), the same table browsers use:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    SNIFFING ORDER                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Markup      <!DOCTYPE HTML, <html, <p ... (leading ws skipped)  │
    │                  <?xml                                               │
    │   2. Documents   %PDF-, %!PS-Adobe-                                  │
    │   3. BOMs        FE FF, FF FE, EF BB BF                              │
    │   4. Images      ICO, BMP, GIF, WEBP, PNG, JPEG                      │
    │   5. Audio/Video AIFF, MP3, OGG, MIDI, AVI, WAVE, MP4, WebM          │
    │   6. Fonts       EOT, TTF, OTF, TTC, WOFF, WOFF2                     │
    │   7. Archives    gzip, zip, rar, wasm                                │
    │   8. Fallback    no binary bytes → text/plain                        │
    │                  otherwise      → application/octet-stream           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Only the first SNIFF_LENGTH (512) bytes are ever examined.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional


SNIFF_LENGTH = 512

DEFAULT_MIME_TYPE = "application/octet-stream"
TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_HTML = "text/html; charset=utf-8"

# Bytes that never appear in text (WHATWG "binary data byte").
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)

# Whitespace skipped before markup signatures.
_WHITESPACE = b"\t\n\x0c\r "


@dataclass(frozen=True)
class _Exact:
    """Data starts with ``prefix``."""
    prefix: bytes
    content_type: str

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if data.startswith(self.prefix):
            return self.content_type
        return None


@dataclass(frozen=True)
class _Masked:
    """``data & mask == pattern`` over the pattern length."""
    mask: bytes
    pattern: bytes
    content_type: str
    skip_ws: bool = False

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if self.skip_ws:
            data = data[first_non_ws:]
        if len(data) < len(self.pattern):
            return None
        for byte, mask, expected in zip(data, self.mask, self.pattern):
            if byte & mask != expected:
                return None
        return self.content_type


@dataclass(frozen=True)
class _HTML:
    """Case-insensitive HTML tag, followed by a space or ``>``."""
    tag: bytes

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(self.tag) + 1:
            return None
        for byte, expected in zip(data, self.tag):
            if ord("A") <= expected <= ord("Z"):
                byte &= 0xDF
            if byte != expected:
                return None
        if data[len(self.tag)] not in b" >":
            return None
        return TEXT_HTML


class _MP4:
    """ISO base media file whose ``ftyp`` box names an mp4 brand."""

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if len(data) < 12:
            return None
        box_size = int.from_bytes(data[:4], "big")
        if len(data) < box_size or box_size % 4 != 0 or box_size < 12:
            return None
        if data[4:8] != b"ftyp":
            return None
        for start in range(8, box_size, 4):
            if start == 12:
                # Bytes 12-15 are the minor version, not a brand.
                continue
            if data[start:start + 3] == b"mp4":
                return "video/mp4"
        return None


class _Text:
    """Anything without binary bytes is plain text."""

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if any(byte in _BINARY_BYTES for byte in data[first_non_ws:]):
            return None
        return TEXT_PLAIN


_SIGNATURES = [
    # Markup
    _HTML(b"<!DOCTYPE HTML"),
    _HTML(b"<HTML"),
    _HTML(b"<HEAD"),
    _HTML(b"<SCRIPT"),
    _HTML(b"<IFRAME"),
    _HTML(b"<H1"),
    _HTML(b"<DIV"),
    _HTML(b"<FONT"),
    _HTML(b"<TABLE"),
    _HTML(b"<A"),
    _HTML(b"<STYLE"),
    _HTML(b"<TITLE"),
    _HTML(b"<B"),
    _HTML(b"<BODY"),
    _HTML(b"<BR"),
    _HTML(b"<P"),
    _HTML(b"<!--"),
    _Masked(b"\xFF\xFF\xFF\xFF\xFF", b"<?xml", "text/xml; charset=utf-8", skip_ws=True),

    # Documents
    _Exact(b"%PDF-", "application/pdf"),
    _Exact(b"%!PS-Adobe-", "application/postscript"),

    # Byte order marks
    _Masked(b"\xFF\xFF\x00\x00", b"\xFE\xFF\x00\x00", "text/plain; charset=utf-16be"),
    _Masked(b"\xFF\xFF\x00\x00", b"\xFF\xFE\x00\x00", "text/plain; charset=utf-16le"),
    _Masked(b"\xFF\xFF\xFF\x00", b"\xEF\xBB\xBF\x00", TEXT_PLAIN),

    # Images
    _Exact(b"\x00\x00\x01\x00", "image/x-icon"),
    _Exact(b"\x00\x00\x02\x00", "image/x-icon"),
    _Exact(b"BM", "image/bmp"),
    _Exact(b"GIF87a", "image/gif"),
    _Exact(b"GIF89a", "image/gif"),
    _Masked(
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF\xFF\xFF",
        b"RIFF\x00\x00\x00\x00WEBPVP",
        "image/webp",
    ),
    _Exact(b"\x89PNG\x0D\x0A\x1A\x0A", "image/png"),
    _Exact(b"\xFF\xD8\xFF", "image/jpeg"),

    # Audio and video
    _Masked(
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
        b"FORM\x00\x00\x00\x00AIFF",
        "audio/aiff",
    ),
    _Masked(b"\xFF\xFF\xFF", b"ID3", "audio/mpeg"),
    _Masked(b"\xFF\xFF\xFF\xFF\xFF", b"OggS\x00", "application/ogg"),
    _Masked(
        b"\xFF\xFF\xFF\xFF\xFF\xFF\xFF\xFF",
        b"MThd\x00\x00\x00\x06",
        "audio/midi",
    ),
    _Masked(
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
        b"RIFF\x00\x00\x00\x00AVI ",
        "video/avi",
    ),
    _Masked(
        b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
        b"RIFF\x00\x00\x00\x00WAVE",
        "audio/wave",
    ),
    _MP4(),
    _Exact(b"\x1A\x45\xDF\xA3", "video/webm"),

    # Fonts
    _Masked(
        # 34 bytes ignored, then the "LP" magic of an Embedded OpenType font
        b"\x00" * 34 + b"\xFF\xFF",
        b"\x00" * 34 + b"LP",
        "application/vnd.ms-fontobject",
    ),
    _Exact(b"\x00\x01\x00\x00", "font/ttf"),
    _Exact(b"OTTO", "font/otf"),
    _Exact(b"ttcf", "font/collection"),
    _Exact(b"wOFF", "font/woff"),
    _Exact(b"wOF2", "font/woff2"),

    # Archives
    _Exact(b"\x1F\x8B\x08", "application/x-gzip"),
    _Exact(b"PK\x03\x04", "application/zip"),
    _Exact(b"Rar!\x1A\x07\x00", "application/x-rar-compressed"),
    _Exact(b"Rar!\x1A\x07\x01\x00", "application/x-rar-compressed"),
    _Exact(b"\x00\x61\x73\x6D", "application/wasm"),

    _Text(),
]


def detect_content_type(data: bytes) -> str:
    """
    Sniff the Content-Type of a file from its leading bytes.

    Args:
        data: The first bytes of the file. Anything past SNIFF_LENGTH is
              ignored.

    Returns:
        A Content-Type header value; always a valid MIME type.

    Examples:
        >>> detect_content_type(b"<html><body>hi</body></html>")
        'text/html; charset=utf-8'

        >>> detect_content_type(b"just some notes\\n")
        'text/plain; charset=utf-8'

        >>> detect_content_type(b"\\x89PNG\\r\\n\\x1a\\n\\x00\\x00")
        'image/png'

        >>> detect_content_type(b"\\x00\\x01\\x02\\x03\\xff")
        'application/octet-stream'
    """
    data = data[:SNIFF_LENGTH]

    first_non_ws = 0
    while first_non_ws < len(data) and data[first_non_ws] in _WHITESPACE:
        first_non_ws += 1

    for signature in _SIGNATURES:
        content_type = signature.match(data, first_non_ws)
        if content_type:
            return content_type

    return DEFAULT_MIME_TYPE
