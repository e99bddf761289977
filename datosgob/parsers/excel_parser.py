"""Spreadsheet parser.

:func:`parse_excel` reads the first sheet of an ``.xls`` or ``.xlsx``
file into a :class:`pandas.DataFrame`.  ``openpyxl`` handles xlsx and
``xlrd`` the legacy xls format; the engine is picked from the format
tag the catalog declared, not from the file extension, because
publishers regularly upload spreadsheets under the wrong name.
"""

from __future__ import annotations

import os
from typing import Any, Optional

import pandas as pd

_ENGINES = {"xlsx": "openpyxl", "xls": "xlrd"}


def parse_excel(file_path: str, *, fmt: Optional[str] = None, sheet_name: Any = 0,
                **read_excel_kwargs: Any) -> pd.DataFrame:
    """Parse a spreadsheet and return its first sheet as a DataFrame.

    Parameters
    ----------
    file_path : str
        Path to the spreadsheet on disk.
    fmt : str, optional
        ``"xls"`` or ``"xlsx"``.  Inferred from the extension when None.
    sheet_name : int or str, default 0
        Sheet to read.

    Raises
    ------
    FileNotFoundError
        If ``file_path`` does not point to an existing file.
    ValueError
        If the file is not a spreadsheet of the expected kind.
    """
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"Spreadsheet not found: {file_path}")
    fmt = (fmt or os.path.splitext(file_path)[1].lstrip(".")).lower()
    engine = _ENGINES.get(fmt)
    return pd.read_excel(file_path, sheet_name=sheet_name, engine=engine, **read_excel_kwargs)
