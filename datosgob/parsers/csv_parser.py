"""
CSV Parser Module
=================

This module provides :func:`parse_csv`, which loads a comma (or
semicolon, tab, pipe...) separated file from a local path into a
:class:`pandas.DataFrame`.  Spanish publishers frequently use ``;`` as
separator and Latin-1 as encoding, so both are guessed when the caller
does not provide them.

The parser does **not** download remote resources itself; use
:mod:`datosgob.downloader` to obtain a local file first.

Example
-------
>>> from datosgob.parsers.csv_parser import parse_csv
>>> df = parse_csv("/path/to/padron.csv", encoding="latin-1")  # doctest: +SKIP
"""

from __future__ import annotations

import os
from typing import Any, Optional

import pandas as pd

from ..encoding import detect_encoding

LATIN1 = "ISO-8859-1"


def parse_csv(file_path: str, *, delimiter: Optional[str] = None, encoding: Optional[str] = None,
              **read_csv_kwargs: Any) -> pd.DataFrame:
    """Parse a CSV file and return a :class:`pandas.DataFrame`.

    Parameters
    ----------
    file_path : str
        Path to the CSV file on disk.
    delimiter : str, optional
        Column separator.  When None the separator is sniffed from the
        file by pandas' python engine.
    encoding : str, optional
        Character encoding.  Detected from the file contents when None.
    **read_csv_kwargs
        Passed through to :func:`pandas.read_csv`.

    Raises
    ------
    FileNotFoundError
        If ``file_path`` does not point to an existing file.
    UnicodeDecodeError
        If the file cannot be decoded with the given encoding nor with
        ISO-8859-1.
    pandas.errors.EmptyDataError
        If the file is empty.
    pandas.errors.ParserError
        If the file is not valid delimited text.
    """
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"CSV file not found: {file_path}")

    if encoding is None:
        with open(file_path, "rb") as f:
            encoding = detect_encoding(f.read(65536))

    options = dict(read_csv_kwargs)
    if delimiter is None:
        options.setdefault("sep", None)
        options.setdefault("engine", "python")
    else:
        options["sep"] = delimiter

    try:
        return pd.read_csv(file_path, encoding=encoding, **options)
    except UnicodeDecodeError:
        # Latin-1 decodes any byte sequence, so it is the last resort
        if encoding.lower().replace("_", "-") in ("iso-8859-1", "latin-1", "latin1"):
            raise
        return pd.read_csv(file_path, encoding=LATIN1, **options)
