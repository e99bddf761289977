"""XML parser.

:func:`parse_xml` flattens the repeated elements of an XML distribution
into a :class:`pandas.DataFrame` using :func:`pandas.read_xml`.  The
default XPath ``./*`` takes the children of the root element as rows,
which is how most publishers lay out tabular XML exports.
"""

from __future__ import annotations

import os
from typing import Any, Optional

import pandas as pd


def parse_xml(file_path: str, *, encoding: Optional[str] = None, xpath: str = "./*",
              **read_xml_kwargs: Any) -> pd.DataFrame:
    """Parse an XML file into a DataFrame.

    Raises
    ------
    FileNotFoundError
        If ``file_path`` does not point to an existing file.
    ValueError
        If ``xpath`` matches no element.
    lxml.etree.XMLSyntaxError
        If the document is not well formed.
    """
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"XML file not found: {file_path}")
    if not encoding or encoding.lower() == "utf-8-sig":
        # libxml2 skips the byte order mark on its own
        encoding = "utf-8"
    return pd.read_xml(file_path, xpath=xpath, encoding=encoding, **read_xml_kwargs)
