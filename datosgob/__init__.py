"""Top level package for the datosgob client.

This package retrieves and parses datasets published on datos.gob.es.
The modules under this package are thin wrappers around the public
API (:mod:`~datosgob.datosgob_api`), download utilities, encoding
detection and per-format parsers; :func:`load` ties them together and
is the usual entry point.

The package never configures logging on import.  Applications that
want the client's progress messages can call :func:`configure_logging`.
"""

import logging

from .config import DEFAULT_FORMATS, ClientConfig, get_config
from .datosgob_api import DatosGobAPI, fetch, fetch_all_pages
from .encoding import detect_encoding, guess_encoding
from .errors import (
    CatalogError,
    DatasetNotFoundError,
    FormatMismatchError,
    MultipleDatasetsError,
    TransportError,
)
from .formats import resolve, resolve_by_name, resolve_by_url, select_distributions
from .loader import load
from .records import (
    DatasetRecord,
    Distribution,
    FetchResult,
    ParsedTable,
    Placeholder,
    PlaceholderTable,
)

__version__ = "0.1"


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a stream handler to the package logger if it has none."""
    logger = logging.getLogger(__name__)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt="[%(asctime)s] %(levelname)s in %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


__all__ = [
    "CatalogError",
    "ClientConfig",
    "DEFAULT_FORMATS",
    "DatasetNotFoundError",
    "DatasetRecord",
    "DatosGobAPI",
    "Distribution",
    "FetchResult",
    "FormatMismatchError",
    "MultipleDatasetsError",
    "ParsedTable",
    "Placeholder",
    "PlaceholderTable",
    "TransportError",
    "configure_logging",
    "detect_encoding",
    "fetch",
    "fetch_all_pages",
    "get_config",
    "guess_encoding",
    "load",
    "resolve",
    "resolve_by_name",
    "resolve_by_url",
    "select_distributions",
]
