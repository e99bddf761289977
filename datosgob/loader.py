"""
loader.py
=========

This module ties the rest of the package together: given a dataset
reference it picks the distributions worth downloading, fetches and
parses each of them, and returns a :class:`~datosgob.records.FetchResult`.

The flow is as follows:

1. **Lookup** -- An identifier is looked up through the API; records,
   raw items and envelopes are used as they are.  Exactly one record
   must come out of this step.
2. **Selection** -- The record's distributions are filtered to the
   acceptable formats and ordered by preference.  When none is
   acceptable, the result lists every original distribution instead.
3. **Retrieval** -- Each selected distribution is downloaded to a
   temporary directory, its encoding detected (text formats only, and
   only when the caller did not force one) and parsed.
4. **Aggregation** -- Parsed tables and placeholders are collected in
   fetch order together with the record's metadata.

A distribution that fails in step 3 never fails the whole load: the
error is logged and a placeholder holding its format and URL takes its
place.  Lookup errors, on the other hand, are raised to the caller.

Example usage::

    from datosgob import load
    result = load("l01280796-padron-municipal-2016")
    for name, entry in result.data.items():
        print(name, entry.is_placeholder)
"""

from __future__ import annotations

import logging
import tempfile
from typing import Any, Mapping, Optional, Sequence, Union

from .config import normalise_formats
from .datosgob_api import DatosGobAPI
from .downloader import download
from .encoding import SAMPLE_SIZE, detect_encoding
from .errors import DatasetNotFoundError, MultipleDatasetsError
from .formats import TEXT_FORMATS, resolve_by_name, select_distributions
from .parsers import parse
from .records import (
    DatasetRecord,
    Entry,
    FetchResult,
    ParsedTable,
    Placeholder,
    PlaceholderTable,
    as_records,
    records_from_envelope,
    summarise_metadata,
)

logger = logging.getLogger(__name__)

AVAILABLE_FORMATS_KEY = "available_formats"

DatasetRef = Union[str, DatasetRecord, Mapping[str, Any], Sequence[Any]]


def _single_record(dataset: DatasetRef, client: DatosGobAPI) -> DatasetRecord:
    language = client.config.language
    if isinstance(dataset, DatasetRecord):
        return dataset
    if isinstance(dataset, str):
        records = client.get_dataset(dataset)
    elif isinstance(dataset, Mapping):
        records = records_from_envelope(dataset, language) if "result" in dataset \
            else as_records([dataset], language)
    else:
        records = as_records(dataset, language)

    if len(records) > 1:
        raise MultipleDatasetsError(len(records))
    if not records:
        raise DatasetNotFoundError(f"No dataset found for {dataset!r}")
    return records[0]


def _fetch_entry(
    url: str,
    fmt: str,
    client: DatosGobAPI,
    encoding: Optional[str],
) -> Entry:
    """Download and parse one distribution, degrading to a placeholder."""
    try:
        with tempfile.TemporaryDirectory(prefix="datosgob_") as tmp:
            downloaded = download(url, tmp, session=client.session, timeout=client.config.timeout)
            path = downloaded["path"]
            used_encoding = None
            if fmt in TEXT_FORMATS:
                used_encoding = encoding
                if used_encoding is None:
                    with open(path, "rb") as fh:
                        sample = fh.read(SAMPLE_SIZE)
                    used_encoding = detect_encoding(sample, client.config.fallback_encoding)
            data = parse(path, fmt, encoding=used_encoding)
    except Exception as exc:
        logger.warning("Could not read %s distribution at %s: %s", fmt, url, exc)
        return Placeholder(format=fmt, url=url)
    return ParsedTable(data=data, format=fmt, url=url, encoding=used_encoding)


def load(
    dataset: DatasetRef,
    encoding: Optional[str] = None,
    *,
    formats: Optional[Sequence[str]] = None,
    client: Optional[DatosGobAPI] = None,
) -> FetchResult:
    """Load every acceptable distribution of one dataset.

    Parameters
    ----------
    dataset : str, DatasetRecord, dict or sequence
        Dataset identifier (the last part of its datos.gob.es URL), a
        record, a raw API item, a pagination envelope or a sequence of
        records/items.  Must resolve to exactly one dataset.
    encoding : str, optional
        Encoding used for every text distribution.  Detected per
        distribution when omitted.
    formats : sequence of str, optional
        Format priority list; ``client.config.formats`` when omitted.
    client : DatosGobAPI, optional
        Client used for the lookup and downloads.

    Returns
    -------
    FetchResult
        Metadata plus one entry per selected distribution, or a single
        ``"available_formats"`` placeholder table when no distribution
        is in an acceptable format.

    Raises
    ------
    MultipleDatasetsError
        If ``dataset`` matches more than one record.
    DatasetNotFoundError
        If ``dataset`` matches no record.
    TransportError, FormatMismatchError
        If looking the identifier up fails.
    """
    client = client or DatosGobAPI()
    record = _single_record(dataset, client)
    priority = normalise_formats(formats) if formats is not None else client.config.formats
    metadata = summarise_metadata(record)

    names = resolve_by_name(record.distributions, priority)
    if not names:
        logger.info(
            "Dataset %s has no distribution in %s; listing %d available ones",
            record.identifier, ", ".join(priority), len(record.distributions),
        )
        return FetchResult(
            metadata=metadata,
            data={AVAILABLE_FORMATS_KEY: PlaceholderTable(record.distributions)},
            record=record,
        )

    urls = select_distributions(record.distributions, priority)
    logger.info("Loading %d distributions of %s", len(urls), record.identifier)
    data = {}
    for name, url in urls.items():
        logger.debug("Fetching %s (%s) from %s", name, names[name], url)
        data[name] = _fetch_entry(url, names[name], client, encoding)

    return FetchResult(metadata=metadata, data=data, record=record)


__all__ = ["AVAILABLE_FORMATS_KEY", "load"]
