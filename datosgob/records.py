"""Data model of the datosgob client.

Records are built from the raw items returned by the catalog API.  The
API is loose about shapes: a field can be a plain string, a dict with a
``_value`` key, or a list of language-tagged values, and a dataset with
a single distribution may carry a dict instead of a list.  The helpers
in this module absorb those variations so the rest of the package only
sees :class:`DatasetRecord` and :class:`Distribution` objects.

The outcome of loading a dataset is a :class:`FetchResult`.  Each entry
of its ``data`` mapping is one of:

* :class:`ParsedTable` -- the distribution was downloaded and parsed;
* :class:`Placeholder` -- it could not be, only ``format`` and ``url``
  are kept;
* :class:`PlaceholderTable` -- the dataset had no distribution in an
  acceptable format, every original distribution is listed instead.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from .formats import format_tag


def _last_segment(url: Optional[str]) -> str:
    if not url:
        return ""
    return url.rstrip("/").rsplit("/", 1)[-1]


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def pick_language(value: Any, language: str = "es") -> Optional[str]:
    """Reduce a possibly multilingual API field to one string.

    The value in ``language`` is preferred; otherwise the first value
    found is returned.  None when the field is empty.
    """
    candidates: List[Tuple[Optional[str], str]] = []
    for item in _as_list(value):
        if isinstance(item, dict):
            text = item.get("_value")
            if text is None:
                continue
            candidates.append((item.get("_lang"), str(text)))
        elif item is not None:
            candidates.append((None, str(item)))
    if not candidates:
        return None
    for lang, text in candidates:
        if lang == language:
            return text
    return candidates[0][1]


def _all_values(value: Any, language: str) -> List[str]:
    values = []
    for item in _as_list(value):
        if isinstance(item, dict):
            if item.get("_lang") not in (None, language):
                continue
            if item.get("_value") is not None:
                values.append(str(item["_value"]))
        elif item is not None:
            values.append(str(item))
    return values


@dataclass(frozen=True)
class Distribution:
    """One downloadable rendering of a dataset."""

    format: str
    name: str
    url: str

    @classmethod
    def from_api(cls, raw: Mapping[str, Any], language: str = "es") -> "Distribution":
        url = raw.get("accessURL") or raw.get("_about") or ""
        if isinstance(url, list):
            url = url[0] if url else ""
        declared = raw.get("format")
        if isinstance(declared, dict):
            declared = declared.get("value")
        name = pick_language(raw.get("title"), language)
        if not name:
            # Untitled distributions are named after their file
            name = os.path.basename(re.sub(r"[?#].*$", "", url)) or url
        return cls(format=format_tag(declared, url), name=name, url=url)


@dataclass(frozen=True)
class DatasetRecord:
    """One catalog entry.  Immutable once built."""

    identifier: str
    title: str
    description: str
    distributions: Tuple[Distribution, ...]
    publisher: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "distributions", tuple(self.distributions))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def from_api(cls, item: Mapping[str, Any], language: str = "es") -> "DatasetRecord":
        """Build a record from one element of ``result.items``."""
        about = item.get("_about", "")
        publisher_url = item.get("publisher")
        if isinstance(publisher_url, dict):
            publisher_url = publisher_url.get("_about")
        distributions = tuple(
            Distribution.from_api(raw, language)
            for raw in _as_list(item.get("distribution"))
            if isinstance(raw, dict)
        )
        identifier = item.get("identifier")
        if isinstance(identifier, list):
            identifier = identifier[0] if identifier else None
        return cls(
            identifier=_last_segment(about) or _last_segment(identifier),
            title=pick_language(item.get("title"), language) or "",
            description=pick_language(item.get("description"), language) or "",
            distributions=distributions,
            publisher=_last_segment(publisher_url),
            metadata={
                "keywords": _all_values(item.get("keyword"), language),
                "language": _all_values(item.get("language"), language),
                "url": about,
                "issued": item.get("issued"),
                "modified": item.get("modified"),
                "publisher_url": publisher_url,
            },
        )


def records_from_envelope(envelope: Mapping[str, Any], language: str = "es") -> List[DatasetRecord]:
    """Return the records held in a pagination envelope's items slot."""
    result = envelope.get("result")
    if not isinstance(result, Mapping):
        return []
    items = _as_list(result.get("items"))
    return [DatasetRecord.from_api(item, language) for item in items if isinstance(item, Mapping)]


@dataclass(frozen=True)
class ParsedTable:
    """A distribution that was downloaded and parsed successfully."""

    data: Any
    format: str
    url: str
    encoding: Optional[str] = None

    is_placeholder = False


@dataclass(frozen=True)
class Placeholder:
    """Stand-in for a distribution that could not be fetched or parsed."""

    format: str
    url: str

    is_placeholder = True

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"format": [self.format], "URL": [self.url]})


@dataclass(frozen=True)
class PlaceholderTable:
    """All original distributions of a dataset with no acceptable format."""

    distributions: Tuple[Distribution, ...]

    is_placeholder = True

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "name": [d.name for d in self.distributions],
                "format": [d.format for d in self.distributions],
                "URL": [d.url for d in self.distributions],
            }
        )


Entry = Union[ParsedTable, Placeholder, PlaceholderTable]


@dataclass
class FetchResult:
    """Everything loaded for one dataset.

    Attributes
    ----------
    metadata : dict
        Summary of the originating record for display (identifier,
        title, description, publisher, keywords, language, url, issued,
        modified).
    data : dict
        Distribution display name to :data:`Entry`, in fetch order.
    record : DatasetRecord
        The record the result was built from.
    """

    metadata: Dict[str, Any]
    data: Dict[str, Entry]
    record: DatasetRecord

    @property
    def has_data(self) -> bool:
        """True if at least one distribution was parsed."""
        return any(not entry.is_placeholder for entry in self.data.values())

    def tables(self) -> Dict[str, Any]:
        """Parsed objects keyed by distribution name, placeholders left out."""
        return {name: e.data for name, e in self.data.items() if not e.is_placeholder}

    def placeholders(self) -> Dict[str, Union[Placeholder, PlaceholderTable]]:
        return {name: e for name, e in self.data.items() if e.is_placeholder}

    def metadata_frame(self) -> pd.DataFrame:
        """One-row DataFrame of the metadata, list values joined with ``; ``."""
        row = {
            k: "; ".join(v) if isinstance(v, (list, tuple)) else v
            for k, v in self.metadata.items()
        }
        return pd.DataFrame([row])


def summarise_metadata(record: DatasetRecord) -> Dict[str, Any]:
    """Flatten a record into the metadata mapping carried by FetchResult."""
    meta = record.metadata
    return {
        "identifier": record.identifier,
        "title": record.title,
        "description": record.description,
        "publisher": record.publisher,
        "keywords": list(meta.get("keywords") or []),
        "language": list(meta.get("language") or []),
        "url": meta.get("url"),
        "issued": meta.get("issued"),
        "modified": meta.get("modified"),
    }


def as_records(items: Iterable[Any], language: str = "es") -> List[DatasetRecord]:
    """Coerce a mix of records and raw API items to records."""
    return [
        item if isinstance(item, DatasetRecord) else DatasetRecord.from_api(item, language)
        for item in items
    ]


__all__ = [
    "DatasetRecord",
    "Distribution",
    "Entry",
    "FetchResult",
    "ParsedTable",
    "Placeholder",
    "PlaceholderTable",
    "as_records",
    "pick_language",
    "records_from_envelope",
    "summarise_metadata",
]
