"""JSON parser.

Publishers on datos.gob.es export JSON in a handful of shapes.  Some
re-export the catalog's own envelope, ``{"result": {"items": [...]}}``;
others wrap the rows under a single key (``{"data": [...]}``,
``{"municipios": [...]}``) or serve a bare list of records.  Records
are frequently nested (an address inside a facility, a coordinate pair
inside a station), so rows are flattened with
:func:`pandas.json_normalize` and nested keys become dotted columns.

Other lists and objects are returned decoded but otherwise untouched.
"""

from __future__ import annotations

import json
import os
from typing import Any, List, Mapping, Optional, Union

import pandas as pd

# Keys publishers use to wrap the list of records
_ROW_CONTAINERS = ("items", "data", "records", "rows", "results")


def _is_records(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(row, Mapping) for row in value)


def _rows_of(document: Any) -> Optional[List[Any]]:
    """Return the list of records held by ``document``, if any."""
    if _is_records(document):
        return document
    if not isinstance(document, Mapping):
        return None
    result = document.get("result")
    if isinstance(result, Mapping) and _is_records(result.get("items")):
        return result["items"]
    for key in _ROW_CONTAINERS:
        if _is_records(document.get(key)):
            return document[key]
    if len(document) == 1:
        (only,) = document.values()
        if _is_records(only):
            return only
    return None


def parse_json(file_path: str, *, encoding: Optional[str] = None) -> Union[pd.DataFrame, list, dict]:
    """Parse a JSON distribution.

    Parameters
    ----------
    file_path : str
        Path to the downloaded file.
    encoding : str, optional
        Text encoding; UTF-8 when omitted.

    Returns
    -------
    pandas.DataFrame or list or dict
        One row per record, nested fields flattened into ``a.b``
        columns, when the document holds a list of objects.  A mapping
        of equally long lists is read column-wise.  Other lists and
        objects are returned as decoded.

    Raises
    ------
    FileNotFoundError
        If ``file_path`` does not point to an existing file.
    json.JSONDecodeError
        If the file does not contain valid JSON.
    TypeError
        If the document is a bare scalar, which cannot hold a table.
    """
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"JSON file not found: {file_path}")

    with open(file_path, "r", encoding=encoding or "utf-8") as fh:
        document: Any = json.load(fh)

    rows = _rows_of(document)
    if rows is not None:
        return pd.json_normalize(rows) if rows else pd.DataFrame()

    if isinstance(document, Mapping):
        columns = list(document.values())
        if columns and all(isinstance(c, list) for c in columns) \
                and len({len(c) for c in columns}) == 1:
            return pd.DataFrame(dict(document))
        return document
    if isinstance(document, list):
        return document
    raise TypeError(f"{file_path} holds a bare {type(document).__name__}, not a table")
