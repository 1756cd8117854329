"""
Unit tests for content-type sniffing.
"""

import pytest

from weblite.http.mime_types import (
    DEFAULT_MIME_TYPE,
    SNIFF_LENGTH,
    TEXT_HTML,
    TEXT_PLAIN,
    detect_content_type,
)


@pytest.mark.parametrize("data, expected", [
    (b"<html><body>hi</body></html>", TEXT_HTML),
    (b"  \n\t<!DOCTYPE html>\n<html>", TEXT_HTML),
    (b"<p>paragraph</p>", TEXT_HTML),
    (b"<!-- comment -->", TEXT_HTML),
    (b"<?xml version='1.0'?><a/>", "text/xml; charset=utf-8"),
    (b"just some notes\n", TEXT_PLAIN),
    (b"", TEXT_PLAIN),
    (b"%PDF-1.7\n", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", "image/png"),
    (b"GIF89a\x01\x00", "image/gif"),
    (b"\xff\xd8\xff\xe0\x00\x10JFIF", "image/jpeg"),
    (b"\x1f\x8b\x08\x00\x00\x00", "application/x-gzip"),
    (b"PK\x03\x04\x14\x00", "application/zip"),
    (b"ID3\x03\x00", "audio/mpeg"),
    (b"RIFF\x24\x00\x00\x00WAVEfmt ", "audio/wave"),
    (b"wOFF\x00\x01", "font/woff"),
    (b"\x00asm\x01\x00\x00\x00", "application/wasm"),
    (b"\x00\x01\x02\x03\xff", DEFAULT_MIME_TYPE),
])
def test_detect_content_type(data: bytes, expected: str):
    assert detect_content_type(data) == expected


def test_html_tag_must_be_terminated():
    # "<a" followed by a letter is not the anchor tag
    assert detect_content_type(b"<abc") == TEXT_PLAIN


def test_html_tag_is_case_insensitive():
    assert detect_content_type(b"<HtMl>") == TEXT_HTML


def test_mp4_brand():
    data = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom"
    assert detect_content_type(data) == "video/mp4"


def test_only_leading_bytes_are_examined():
    data = b"a" * SNIFF_LENGTH + b"\x00\x01\x02"
    assert detect_content_type(data) == TEXT_PLAIN


def test_binary_byte_inside_window():
    data = b"a" * 100 + b"\x00" + b"a" * 100
    assert detect_content_type(data) == DEFAULT_MIME_TYPE
