"""Format tags and distribution selection.

datos.gob.es declares the format of each distribution as a MIME type
(``text/csv``, ``application/vnd.ms-excel`` ...).  This module turns
those declarations into short tags and decides which distributions of a
dataset are worth downloading, in which order.

The resolver is a single algorithm parametrised by the attribute used
as key.  :func:`resolve_by_name` and :func:`resolve_by_url` are the two
instantiations used by the loader; they always agree on the number and
order of the selected distributions, which is what lets the loader pair
names with URLs positionally.

Example
-------
>>> from datosgob.records import Distribution
>>> dists = [
...     Distribution("xml", "Padrón 2017", "http://x/2017.xml"),
...     Distribution("csv", "Padrón 2016", "http://x/2016.csv"),
...     Distribution("pdf", "Guía", "http://x/guide.pdf"),
... ]
>>> select_distributions(dists, ("csv", "xml"))
{'Padrón 2016': 'http://x/2016.csv', 'Padrón 2017': 'http://x/2017.xml'}
"""

from __future__ import annotations

import os
import re
from functools import partial
from operator import attrgetter
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .records import Distribution

UNKNOWN_FORMAT = "unknown"

# MIME types used by publishers on datos.gob.es that do not reduce to a
# sensible tag by taking the subtype.
_MIME_OVERRIDES = {
    "text/csv": "csv",
    "application/csv": "csv",
    "text/comma-separated-values": "csv",
    "text/tab-separated-values": "tsv",
    "application/vnd.ms-excel": "xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "application/vnd.oasis.opendocument.spreadsheet": "ods",
    "text/xml": "xml",
    "application/xml": "xml",
    "application/json": "json",
    "application/ld+json": "json",
    "application/geo+json": "geojson",
    "application/vnd.geo+json": "geojson",
    "text/plain": "txt",
    "text/html": "html",
    "application/zip": "zip",
    "application/x-zip-compressed": "zip",
}

_EXTENSIONS = {
    ".csv": "csv",
    ".tsv": "tsv",
    ".xls": "xls",
    ".xlsx": "xlsx",
    ".ods": "ods",
    ".xml": "xml",
    ".json": "json",
    ".geojson": "geojson",
    ".txt": "txt",
    ".zip": "zip",
    ".gz": "gz",
}

# Formats whose bytes are text and therefore need an encoding.
TEXT_FORMATS = frozenset({"csv", "tsv", "xml", "json", "txt"})


def format_from_mime(mime: Optional[str]) -> Optional[str]:
    """Return the format tag for a MIME type, or None if there is none."""
    if not mime:
        return None
    mime = mime.split(";")[0].strip().lower()
    if mime in _MIME_OVERRIDES:
        return _MIME_OVERRIDES[mime]
    if "/" not in mime:
        # Some publishers write the bare extension ("CSV") instead of a MIME type
        return mime.lstrip(".") or None
    return mime.rsplit("/", 1)[1] or None


def format_from_url(url: Optional[str]) -> Optional[str]:
    """Return the format tag implied by the URL extension, if any."""
    if not url:
        return None
    path = re.sub(r"[?#].*$", "", url)
    suffix = os.path.splitext(path)[1].lower()
    return _EXTENSIONS.get(suffix)


def format_tag(mime: Optional[str], url: Optional[str] = None) -> str:
    """Derive a distribution's format tag from what the API declared.

    The declared MIME type wins; the URL extension is only consulted when
    no MIME type was supplied.
    """
    return format_from_mime(mime) or format_from_url(url) or UNKNOWN_FORMAT


def _unique_key(key: str, taken: Dict[str, str]) -> str:
    if key not in taken:
        return key
    n = 2
    while f"{key} ({n})" in taken:
        n += 1
    return f"{key} ({n})"


def rank_distributions(
    distributions: Iterable["Distribution"], priority: Sequence[str]
) -> List["Distribution"]:
    """Return the acceptable distributions sorted by format preference.

    Formats are compared case-insensitively.  The sort is stable, so
    distributions sharing a format keep their relative API order.
    """
    rank: Dict[str, int] = {}
    for i, fmt in enumerate(priority):
        rank.setdefault(fmt.lower(), i)
    acceptable = [d for d in distributions if d.format.lower() in rank]
    return sorted(acceptable, key=lambda d: rank[d.format.lower()])


def resolve(
    distributions: Iterable["Distribution"],
    priority: Sequence[str],
    key: Callable[["Distribution"], str],
) -> Dict[str, str]:
    """Select the distributions whose format is acceptable, best first.

    Parameters
    ----------
    distributions : iterable of Distribution
        Distributions in the order the API returned them.
    priority : sequence of str
        Acceptable format tags, highest preference first.
    key : callable
        Extracts the mapping key (display name or URL) from a distribution.

    Returns
    -------
    dict
        ``key -> format`` ordered by the position of the format in
        ``priority``; distributions sharing a format keep their API order.
        Empty when no distribution is in an acceptable format.  Repeated
        keys get a ``" (n)"`` suffix so no distribution is dropped.
    """
    selection: Dict[str, str] = {}
    for dist in rank_distributions(distributions, priority):
        selection[_unique_key(key(dist), selection)] = dist.format.lower()
    return selection


resolve_by_name = partial(resolve, key=attrgetter("name"))
resolve_by_url = partial(resolve, key=attrgetter("url"))


def select_distributions(
    distributions: Sequence["Distribution"], priority: Sequence[str]
) -> Dict[str, str]:
    """Return the ``name -> url`` selection in fetch order."""
    names = resolve_by_name(distributions, priority)
    ranked = rank_distributions(distributions, priority)
    return {name: dist.url for name, dist in zip(names, ranked)}


__all__ = [
    "TEXT_FORMATS",
    "UNKNOWN_FORMAT",
    "format_from_mime",
    "format_from_url",
    "format_tag",
    "rank_distributions",
    "resolve",
    "resolve_by_name",
    "resolve_by_url",
    "select_distributions",
]
