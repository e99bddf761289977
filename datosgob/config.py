"""Runtime configuration for the datosgob client.

Every tunable of the client lives on :class:`ClientConfig`, an
immutable dataclass.  The defaults reproduce the behaviour expected by
datos.gob.es (one second between requests, five attempts, pages of 50
items).  :func:`get_config` builds a configuration from ``DATOSGOB_*``
environment variables so that deployments can change them without
touching code; anything not set in the environment keeps its default.

Example
-------
>>> from datosgob.config import ClientConfig
>>> cfg = ClientConfig(request_delay=0.0, formats=("csv", "json"))
>>> cfg.timeout
(60.0, 120.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple

API_BASE_URL = "https://datos.gob.es/apidata"
USER_AGENT = "datosgob/0.1 (+https://github.com/ropenspain/opendataes)"

# Highest preference first.  JSON can be parsed but is only attempted when
# a caller lists it explicitly.
DEFAULT_FORMATS: Tuple[str, ...] = ("csv", "xls", "xlsx", "xml")


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared by the transport layer, paginator and loader.

    Attributes
    ----------
    base_url : str
        Root of the catalog API, without trailing slash.
    user_agent : str
        Value of the ``User-Agent`` header sent on every request so the
        API knows who is downloading the data.
    connect_timeout, read_timeout : float
        Seconds allowed to open the connection and to receive the
        response respectively.
    request_delay : float
        Seconds slept after every request (and once more before a retry).
    max_attempts : int
        Attempt budget for a single GET against the API.
    page_size : int
        Value sent as ``_pageSize`` by the paginator.
    formats : tuple of str
        Format priority list used to select distributions.
    fallback_encoding : str
        Encoding used when detection is inconclusive.
    language : str
        Preferred language for multilingual metadata fields.
    """

    base_url: str = API_BASE_URL
    user_agent: str = USER_AGENT
    connect_timeout: float = 60.0
    read_timeout: float = 120.0
    request_delay: float = 1.0
    max_attempts: int = 5
    page_size: int = 50
    formats: Tuple[str, ...] = DEFAULT_FORMATS
    fallback_encoding: str = "utf-8"
    language: str = "es"

    @property
    def timeout(self) -> Tuple[float, float]:
        """``(connect, read)`` tuple in the form expected by requests."""
        return (self.connect_timeout, self.read_timeout)

    def with_overrides(self, **changes: Any) -> "ClientConfig":
        """Return a copy with ``changes`` applied, ignoring ``None`` values."""
        changes = {k: v for k, v in changes.items() if v is not None}
        if "formats" in changes:
            changes["formats"] = normalise_formats(changes["formats"])
        return replace(self, **changes)


def normalise_formats(formats: Any) -> Tuple[str, ...]:
    """Return ``formats`` as a lower-case tuple with duplicates removed."""
    if isinstance(formats, str):
        formats = formats.split(",")
    seen = []
    for fmt in formats:
        tag = str(fmt).strip().lower().lstrip(".")
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def get_config(base: Optional[ClientConfig] = None) -> ClientConfig:
    """Build a :class:`ClientConfig` from ``DATOSGOB_*`` environment variables.

    Parameters
    ----------
    base : ClientConfig, optional
        Configuration providing the defaults.  A fresh
        :class:`ClientConfig` is used when omitted.

    Raises
    ------
    ValueError
        If a numeric variable cannot be converted or the attempt budget
        is not positive.
    """
    base = base or ClientConfig()
    formats = os.getenv("DATOSGOB_FORMATS")
    cfg = replace(
        base,
        base_url=os.getenv("DATOSGOB_BASE_URL", base.base_url).rstrip("/"),
        user_agent=os.getenv("DATOSGOB_USER_AGENT", base.user_agent),
        request_delay=_env_float("DATOSGOB_REQUEST_DELAY", base.request_delay),
        max_attempts=_env_int("DATOSGOB_MAX_ATTEMPTS", base.max_attempts),
        fallback_encoding=os.getenv("DATOSGOB_FALLBACK_ENCODING", base.fallback_encoding),
        language=os.getenv("DATOSGOB_LANGUAGE", base.language),
        formats=normalise_formats(formats) if formats else base.formats,
    )
    if cfg.max_attempts <= 0:
        raise ValueError(f"DATOSGOB_MAX_ATTEMPTS must be positive, got {cfg.max_attempts}")
    return cfg


__all__ = [
    "API_BASE_URL",
    "ClientConfig",
    "DEFAULT_FORMATS",
    "USER_AGENT",
    "get_config",
    "normalise_formats",
]
