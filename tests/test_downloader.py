from __future__ import annotations

import gzip
import io
import zipfile
from pathlib import Path

import pytest

from conftest import FakeResponse, FakeSession
from datosgob import downloader
from datosgob.config import USER_AGENT
from datosgob.downloader import download


def test_download_writes_file(tmp_path) -> None:
    session = FakeSession({"http://x/data.csv?v=2": FakeResponse(body=b"a,b\n", content_type="text/csv")})

    result = download("http://x/data.csv?v=2", str(tmp_path), session=session)

    assert result["format"] == "csv"
    assert Path(result["path"]).read_bytes() == b"a,b\n"


def test_download_infers_extension_from_content_type(tmp_path) -> None:
    session = FakeSession({"http://x/export": FakeResponse(body=b"<a/>", content_type="text/xml")})

    result = download("http://x/export", str(tmp_path), session=session)

    assert result["path"].endswith("export.xml")
    assert result["format"] == "xml"


def test_download_extracts_single_member_zip(tmp_path) -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("inner/padron.csv", "a,b\n1,2\n")
    session = FakeSession({"http://x/padron.zip": FakeResponse(body=buffer.getvalue(),
                                                              content_type="application/zip")})

    result = download("http://x/padron.zip", str(tmp_path), session=session)

    assert Path(result["path"]).name == "padron.csv"
    assert result["format"] == "csv"
    assert not (tmp_path / "padron.zip").exists()


def test_download_keeps_multi_member_zip(tmp_path) -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("a.csv", "a\n")
        zf.writestr("b.csv", "b\n")
    session = FakeSession({"http://x/all.zip": FakeResponse(body=buffer.getvalue())})

    assert download("http://x/all.zip", str(tmp_path), session=session)["format"] == "zip"


def test_download_extracts_gzip(tmp_path) -> None:
    session = FakeSession({"http://x/data.csv.gz": FakeResponse(body=gzip.compress(b"a\n1\n"))})

    result = download("http://x/data.csv.gz", str(tmp_path), session=session)

    assert result["format"] == "csv"
    assert Path(result["path"]).read_bytes() == b"a\n1\n"


def test_download_network_error(tmp_path) -> None:
    with pytest.raises(RuntimeError):
        download("http://x/unrouted.csv", str(tmp_path), session=FakeSession())


def test_download_rejects_non_http_urls(tmp_path) -> None:
    with pytest.raises(ValueError):
        download("ftp://x/data.csv", str(tmp_path))


def test_download_closes_response_on_http_error(tmp_path) -> None:
    response = FakeResponse(status_code=404)
    session = FakeSession({"http://x/gone.csv": response})

    with pytest.raises(RuntimeError):
        download("http://x/gone.csv", str(tmp_path), session=session)

    assert response.closed
    assert not session.closed


def test_download_closes_response_after_writing(tmp_path) -> None:
    response = FakeResponse(body=b"a;b\n", content_type="text/csv")
    session = FakeSession({"http://x/data.csv": response})

    download("http://x/data.csv", str(tmp_path), session=session)

    assert response.closed


def test_download_default_session_identifies_client(tmp_path, monkeypatch) -> None:
    session = FakeSession({"http://x/data.csv": FakeResponse(body=b"a;b\n", content_type="text/csv")})
    agents = []

    def factory(user_agent: str = USER_AGENT) -> FakeSession:
        agents.append(user_agent)
        session.headers["User-Agent"] = user_agent
        return session

    monkeypatch.setattr(downloader, "create_session", factory)

    download("http://x/data.csv", str(tmp_path))

    assert agents == [USER_AGENT]
    assert session.closed
