"""Parser modules for the datosgob client.

Parsing modules convert downloaded files (CSV, Excel, XML, JSON) into
in-memory objects, normally :class:`pandas.DataFrame`.  Submodules are
named ``<format>_parser.py`` and expose ``parse_<format>`` functions.

:func:`parse` dispatches on a format tag and takes care of the two
keyword conventions: text formats accept ``encoding``, spreadsheets
accept the format tag to choose their engine.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from .csv_parser import parse_csv
from .excel_parser import parse_excel
from .json_parser import parse_json
from .xml_parser import parse_xml

PARSERS: Dict[str, Callable[..., Any]] = {
    "csv": parse_csv,
    "tsv": lambda path, encoding=None: parse_csv(path, delimiter="\t", encoding=encoding),
    "xls": lambda path, encoding=None: parse_excel(path, fmt="xls"),
    "xlsx": lambda path, encoding=None: parse_excel(path, fmt="xlsx"),
    "xml": parse_xml,
    "json": parse_json,
}


def get_parser(fmt: str) -> Callable[..., Any]:
    """Return the parser for ``fmt``.

    Raises
    ------
    KeyError
        If no parser handles the format.
    """
    try:
        return PARSERS[fmt.lower()]
    except KeyError:
        raise KeyError(f"No parser available for format '{fmt}'") from None


def parse(file_path: str, fmt: str, encoding: Optional[str] = None) -> Any:
    """Parse ``file_path`` as ``fmt`` with the given text encoding."""
    return get_parser(fmt)(file_path, encoding=encoding)


__all__ = ["PARSERS", "get_parser", "parse", "parse_csv", "parse_excel", "parse_json", "parse_xml"]
