"""Checks on how much of a publisher's catalog can actually be read.

:func:`readable_share` walks every dataset of a publisher, keeps those
that offer a CSV distribution, loads them and reports the proportion
that produced at least one parsed table.  It is slow (one request per
page and per distribution, each followed by the courtesy delay) and is
meant for occasional audits of publisher conventions.
"""

from __future__ import annotations

import logging
from typing import Optional

from .datosgob_api import DatosGobAPI
from .formats import resolve_by_url
from .loader import load

logger = logging.getLogger(__name__)


def readable_share(
    publisher: str,
    num_pages: int = 1000,
    client: Optional[DatosGobAPI] = None,
) -> float:
    """Return the share of ``publisher``'s CSV datasets that load.

    Parameters
    ----------
    publisher : str
        Publisher code, e.g. ``"L01280796"``.
    num_pages : int, default 1000
        Page ceiling for the dataset listing.
    client : DatosGobAPI, optional
        Client used for every request.

    Returns
    -------
    float
        Between 0 and 1.  0.0 when the publisher has no CSV dataset.
    """
    client = client or DatosGobAPI()
    records = client.get_publisher_datasets(publisher, num_pages=num_pages)
    logger.info("Publisher %s lists %d datasets", publisher, len(records))

    candidates = [r for r in records if "csv" in resolve_by_url(r.distributions, ("csv",)).values()]
    if not candidates:
        return 0.0

    readable = 0
    for record in candidates:
        result = load(record, client=client)
        parsed = len(result.tables())
        logger.info("%s: %d tables read", record.identifier, parsed)
        if parsed:
            readable += 1
    return readable / len(candidates)


__all__ = ["readable_share"]
