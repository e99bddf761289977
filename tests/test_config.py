from __future__ import annotations

import pytest

from datosgob.config import DEFAULT_FORMATS, ClientConfig, get_config, normalise_formats


def test_defaults() -> None:
    cfg = ClientConfig()
    assert cfg.timeout == (60.0, 120.0)
    assert cfg.max_attempts == 5
    assert cfg.page_size == 50
    assert cfg.formats == DEFAULT_FORMATS == ("csv", "xls", "xlsx", "xml")


def test_get_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("DATOSGOB_BASE_URL", "https://mirror.test/apidata/")
    monkeypatch.setenv("DATOSGOB_REQUEST_DELAY", "0.25")
    monkeypatch.setenv("DATOSGOB_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("DATOSGOB_FORMATS", "XML, csv,xml")
    monkeypatch.setenv("DATOSGOB_LANGUAGE", "en")

    cfg = get_config()

    assert cfg.base_url == "https://mirror.test/apidata"
    assert cfg.request_delay == 0.25
    assert cfg.max_attempts == 3
    assert cfg.formats == ("xml", "csv")
    assert cfg.language == "en"
    assert cfg.fallback_encoding == "utf-8"


def test_get_config_rejects_non_positive_attempts(monkeypatch) -> None:
    monkeypatch.setenv("DATOSGOB_MAX_ATTEMPTS", "0")
    with pytest.raises(ValueError):
        get_config()


def test_with_overrides_ignores_none_and_keeps_original() -> None:
    base = ClientConfig()
    cfg = base.with_overrides(formats=[".JSON", "csv"], request_delay=None)

    assert cfg.formats == ("json", "csv")
    assert cfg.request_delay == base.request_delay
    assert base.formats == DEFAULT_FORMATS


def test_normalise_formats_from_string() -> None:
    assert normalise_formats("csv, ,XLSX") == ("csv", "xlsx")
