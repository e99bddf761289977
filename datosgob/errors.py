"""Exceptions raised by the datosgob client.

Only abort-level problems are represented here.  Failures that are
isolated by design (a single distribution that cannot be parsed, an
inconclusive encoding guess) never surface as exceptions; they are
turned into placeholders or the fallback encoding by the loader.
"""

from __future__ import annotations

from typing import Optional


class CatalogError(Exception):
    """Base class for every error raised by the package."""


class TransportError(CatalogError):
    """The API kept failing after the attempt budget was exhausted."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = "") -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        if status_code is None:
            msg = f"Request to {url} failed: {reason or 'no response'}"
        else:
            msg = f"HTTP {status_code} {reason}".rstrip() + f" for {url}"
        super().__init__(msg)


class FormatMismatchError(CatalogError):
    """The API answered 200 but not with JSON.  Never retried."""

    def __init__(self, url: str, content_type: Optional[str], detail: str = "") -> None:
        self.url = url
        self.content_type = content_type
        self.detail = detail
        msg = (
            f"The datos.gob.es API returned an unusual format ({content_type or 'unknown'}) "
            f"and not a JSON for {url}"
        )
        super().__init__(f"{msg}: {detail}" if detail else msg)


class MultipleDatasetsError(CatalogError):
    """A dataset reference matched more than one record."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(
            f"Expected exactly one dataset but the reference matched {count}; "
            "load one dataset at a time"
        )


class DatasetNotFoundError(CatalogError):
    """A dataset reference matched no record."""


__all__ = [
    "CatalogError",
    "DatasetNotFoundError",
    "FormatMismatchError",
    "MultipleDatasetsError",
    "TransportError",
]
