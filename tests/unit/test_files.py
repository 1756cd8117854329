"""
Unit tests for the file responder.
"""

import os
from pathlib import Path

import pytest

from conftest import INDEX_HTML, PNG_BYTES, SAMPLE_TEXT
from weblite.config import ServerConfig
from weblite.counter import RequestCounter
from weblite.handlers.files import HELLO_HTML, NOT_FOUND_HTML, FileResponder
from weblite.http.request import HTTPRequest
from weblite.http.status_codes import HTTPStatus


@pytest.fixture
def counter() -> RequestCounter:
    return RequestCounter(5)


@pytest.fixture
def responder(site_dir: Path, counter: RequestCounter) -> FileResponder:
    return FileResponder(counter, root_dir=site_dir)


def get(responder: FileResponder, path: str):
    return responder.handle(HTTPRequest(method="GET", path=path))


class TestIndex:

    def test_serves_index(self, responder, counter):
        response = get(responder, "/")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/html"
        assert response.headers["Content-Length"] == str(len(INDEX_HTML))
        assert response.body == INDEX_HTML
        assert counter.remaining() == 4

    def test_missing_index_falls_back_to_greeting(self, tmp_path, counter):
        responder = FileResponder(counter, root_dir=tmp_path)
        response = get(responder, "/")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/html"
        assert response.body == HELLO_HTML.encode()
        assert counter.remaining() == 4

    def test_missing_index_is_logged(self, tmp_path, counter, caplog):
        get(FileResponder(counter, root_dir=tmp_path), "/")
        assert "'index.html' DOES NOT EXIST!" in caplog.text

    def test_custom_index_file(self, site_dir, counter):
        (site_dir / "home.htm").write_bytes(b"<p>home</p>")
        responder = FileResponder(counter, root_dir=site_dir, index_file="home.htm")

        assert get(responder, "/").body == b"<p>home</p>"


class TestFiles:

    def test_text_file(self, responder, counter):
        response = get(responder, "/sample.txt")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.headers["Content-Length"] == str(len(SAMPLE_TEXT))
        assert response.headers["Content-Disposition"] == "attachment; filename=sample.txt"
        assert response.body == SAMPLE_TEXT
        assert counter.remaining() == 4

    def test_binary_file_is_sniffed(self, responder):
        response = get(responder, "/image.png")

        assert response.headers["Content-Type"] == "image/png"
        assert response.body == PNG_BYTES

    def test_nested_path_keeps_relative_name(self, responder):
        response = get(responder, "/docs/manual.pdf")

        assert response.headers["Content-Type"] == "application/pdf"
        assert response.headers["Content-Disposition"] == "attachment; filename=docs/manual.pdf"

    def test_index_by_name_is_a_download(self, responder):
        response = get(responder, "/index.html")

        assert response.headers["Content-Disposition"] == "attachment; filename=index.html"
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"

    def test_empty_file(self, site_dir, responder, counter):
        (site_dir / "empty.bin").write_bytes(b"")
        response = get(responder, "/empty.bin")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Length"] == "0"
        assert response.body == b""
        assert counter.remaining() == 4

    def test_large_file_is_served_whole(self, site_dir, responder):
        content = bytes(range(256)) * 64
        (site_dir / "big.bin").write_bytes(content)
        response = get(responder, "/big.bin")

        assert response.headers["Content-Length"] == str(len(content))
        assert response.body == content

    def test_file_growing_after_stat_keeps_length(self, site_dir, responder, monkeypatch):
        path = site_dir / "log.txt"
        path.write_bytes(b"first line\n")
        real_fstat = os.fstat

        def fstat_then_append(fd):
            result = real_fstat(fd)
            with open(path, "ab") as f:
                f.write(b"appended while serving\n")
            return result

        monkeypatch.setattr(os, "fstat", fstat_then_append)
        response = get(responder, "/log.txt")

        assert response.headers["Content-Length"] == "11"
        assert response.body == b"first line\n"


class TestNotFound:

    def test_missing_file(self, responder, counter):
        response = get(responder, "/missing.txt")

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.headers["Content-Type"] == "text/html"
        assert response.body == NOT_FOUND_HTML.encode()
        assert counter.remaining() == 5

    def test_path_below_a_file(self, responder, counter):
        response = get(responder, "/sample.txt/child")

        assert response.status == HTTPStatus.NOT_FOUND
        assert counter.remaining() == 5

    def test_not_found_is_logged(self, responder, caplog):
        get(responder, "/missing.txt")
        assert "file DOES NOT EXIST! -- sending 404" in caplog.text


class TestUnreadable:
    """Errors after the existence check: empty 200, counter untouched."""

    def test_directory(self, responder, counter, caplog):
        response = get(responder, "/docs")

        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert counter.remaining() == 5
        assert "Cannot read docs" in caplog.text

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="root can read files without permission bits",
    )
    def test_permission_denied(self, site_dir, responder, counter):
        secret = site_dir / "secret.txt"
        secret.write_bytes(b"secret")
        secret.chmod(0)
        try:
            response = get(responder, "/secret.txt")
        finally:
            secret.chmod(0o644)

        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert counter.remaining() == 5


def test_from_config(site_dir, counter):
    config = ServerConfig(root_dir=str(site_dir), index_file="sample.txt")
    responder = FileResponder.from_config(config, counter)

    assert responder.root_dir == site_dir
    assert get(responder, "/").body == SAMPLE_TEXT


def test_relative_root_follows_working_directory(site_dir, counter, monkeypatch):
    monkeypatch.chdir(site_dir)
    responder = FileResponder(counter)

    assert get(responder, "/sample.txt").body == SAMPLE_TEXT
