from __future__ import annotations

import pytest
import requests

from conftest import FakeResponse, FakeSession
from datosgob import encoding
from datosgob.encoding import detect_encoding, guess_encoding, normalise_encoding
from datosgob.parsers.csv_parser import parse_csv


def test_unreachable_source_returns_fallback() -> None:
    session = FakeSession({"http://x/missing.csv": requests.ConnectionError("unreachable")})

    assert detect_encoding("http://x/missing.csv", "ASCII", session=session) == "ASCII"


def test_http_error_returns_fallback() -> None:
    session = FakeSession({"http://x/gone.csv": FakeResponse(status_code=404)})

    assert detect_encoding("http://x/gone.csv", "latin-1", session=session) == "latin-1"


def test_non_url_source_returns_fallback() -> None:
    assert guess_encoding("/not/a/url") is None
    assert detect_encoding("/not/a/url", "cp1252") == "cp1252"


def test_detects_utf8_text() -> None:
    text = "Año,Población,Municipio\n2016,3165541,Madrid\n2017,3182981,Móstoles\n" * 20
    assert detect_encoding(text.encode("utf-8"), "ASCII") == "utf-8"


def test_detects_from_url_sample() -> None:
    body = ("municipio;año\nLogroño;2016\n" * 50).encode("utf-8")
    session = FakeSession({"http://x/data.csv": FakeResponse(body=body, content_type="text/csv")})

    assert guess_encoding("http://x/data.csv", session=session) is not None


def test_no_candidate_returns_fallback(monkeypatch) -> None:
    class NoMatches:
        def best(self):
            return None

    monkeypatch.setattr(encoding, "from_bytes", lambda *_a, **_k: NoMatches())

    assert detect_encoding(b"abc", "ASCII") == "ASCII"


def test_undetermined_label_returns_fallback(monkeypatch) -> None:
    class Match:
        encoding = None

    class Matches:
        def best(self):
            return Match()

    monkeypatch.setattr(encoding, "from_bytes", lambda *_a, **_k: Matches())

    assert detect_encoding(b"abc", "ASCII") == "ASCII"


def test_detector_errors_are_swallowed(monkeypatch) -> None:
    def boom(*_a, **_k):
        raise RuntimeError("detector failure")

    monkeypatch.setattr(encoding, "from_bytes", boom)

    assert detect_encoding(b"abc", "utf-8") == "utf-8"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("utf_8", "utf-8"),
        ("latin_1", "iso-8859-1"),
        ("iso8859_15", "iso-8859-15"),
        ("cp1252", "windows-1252"),
        ("ascii", "ascii"),
        ("utf_16", "utf-16"),
    ],
)
def test_normalise_encoding(name: str, expected: str) -> None:
    assert normalise_encoding(name) == expected


def test_utf8_byte_order_mark_is_reported() -> None:
    assert normalise_encoding("utf_8", bom=True) == "utf-8-sig"
    assert normalise_encoding("cp1252", bom=True) == "windows-1252"


def test_bom_flag_from_detector_is_honoured(monkeypatch) -> None:
    class Match:
        encoding = "utf_8"
        bom = True

    class Matches:
        def best(self):
            return Match()

    monkeypatch.setattr(encoding, "from_bytes", lambda *_a, **_k: Matches())

    assert detect_encoding(b"\xef\xbb\xbfa;b\n1;2\n", "ASCII") == "utf-8-sig"


def test_bom_prefixed_csv_keeps_clean_headers(tmp_path) -> None:
    path = tmp_path / "padron.csv"
    path.write_bytes("\ufeffmunicipio;habitantes\nLogroño;151136\nBurgos;175821\n".encode("utf-8"))

    detected = detect_encoding(path.read_bytes())
    frame = parse_csv(str(path), encoding=detected)

    assert detected == "utf-8-sig"
    assert list(frame.columns) == ["municipio", "habitantes"]


def test_unknown_codec_from_detector_returns_fallback(monkeypatch) -> None:
    class Match:
        encoding = "not-a-codec"
        bom = False

    class Matches:
        def best(self):
            return Match()

    monkeypatch.setattr(encoding, "from_bytes", lambda *_a, **_k: Matches())

    assert detect_encoding(b"abc", "latin-1") == "latin-1"


def test_sampling_a_url_closes_the_owned_session(monkeypatch) -> None:
    session = FakeSession({"http://x/data.csv": FakeResponse(body=b"a;b\n1;2\n", content_type="text/csv")})
    monkeypatch.setattr(encoding, "create_session", lambda: session)

    guess_encoding("http://x/data.csv")

    assert session.closed
    assert session.calls[0]["stream"] is True
