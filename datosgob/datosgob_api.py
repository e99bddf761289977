"""Interface to the datos.gob.es catalog API.

The functions and classes defined in this module provide a thin
abstraction over the ``/apidata/catalog`` endpoints.  Every request
goes through :meth:`DatosGobAPI.get`, which identifies the client with a
fixed ``User-Agent``, waits between requests so the API is not hammered,
and retries failed requests a bounded number of times.  List endpoints
are walked with :meth:`DatosGobAPI.get_paginated`, which accumulates
the items of every page into a single envelope.

Unlike the parsing side of the package, errors here are not swallowed:
a request that keeps failing raises :class:`~datosgob.errors.TransportError`
and a response that is not JSON raises
:class:`~datosgob.errors.FormatMismatchError`.

Examples
--------
>>> from datosgob.datosgob_api import DatosGobAPI
>>> api = DatosGobAPI()
>>> envelope = api.get_paginated(api.publisher_datasets_url("L01280796"), num_pages=3)
>>> len(envelope["result"]["items"])  # doctest: +SKIP
150

Note
----
The API answers with a JSON envelope of the form
``{"result": {"items": [...], "next": <url or null>}}``.  See
https://datos.gob.es/es/apidata for further documentation.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from .config import USER_AGENT, ClientConfig, get_config
from .errors import FormatMismatchError, TransportError
from .records import DatasetRecord, records_from_envelope

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def create_session(user_agent: str = USER_AGENT) -> requests.Session:
    """Return a `requests.Session` identifying the client.

    Retries are handled explicitly by :meth:`DatosGobAPI.get` so that the
    courtesy delay applies to every attempt; the session adapter itself
    does not retry.
    """
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})
    return session


def with_page(url: str, page: int, page_size: int = 50) -> str:
    """Return ``url`` with ``_pageSize`` and ``_page`` set.

    Any page parameters already present in ``url`` are replaced; other
    query parameters are kept in place.
    """
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
             if k not in ("_pageSize", "_page")]
    query += [("_pageSize", str(page_size)), ("_page", str(page))]
    return urlunsplit(parts._replace(query=urlencode(query)))


def _result_of(envelope: Dict[str, Any], url: str) -> Dict[str, Any]:
    result = envelope.get("result") or {}
    if not isinstance(result, dict):
        raise FormatMismatchError(url, JSON_CONTENT_TYPE, '"result" is not an object')
    return result


class DatosGobAPI:
    """Client for the datos.gob.es API.

    This class encapsulates a `requests.Session` carrying the client's
    ``User-Agent`` and exposes the transport layer, the paginator and
    a few record lookups.  Nothing is cached between calls.

    Parameters
    ----------
    config : ClientConfig, optional
        Timeouts, delays and attempt budget.  Read from the environment
        with :func:`~datosgob.config.get_config` when omitted.
    session : requests.Session, optional
        Session to use instead of a fresh one.
    sleep : callable, optional
        Function used for the courtesy delay; ``time.sleep`` by default.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or get_config()
        self.base_url = self.config.base_url.rstrip("/")
        self.session = session or create_session(self.config.user_agent)
        self._sleep = sleep

    # -- transport -----------------------------------------------------

    def get(self, url: str, attempts_left: Optional[int] = None) -> Dict[str, Any]:
        """GET ``url`` and return the parsed JSON body.

        Parameters
        ----------
        url : str
            Absolute URL, preferably built with the ``*_url`` helpers.
        attempts_left : int, optional
            Attempt budget; ``config.max_attempts`` when omitted.

        Returns
        -------
        dict
            The decoded JSON envelope.

        Raises
        ------
        ValueError
            If ``attempts_left`` is not positive.
        FormatMismatchError
            If the API answered 200 with a non-JSON content type, a body
            that does not decode, or JSON that is not an object.  This is
            deterministic and therefore not retried.
        TransportError
            If every attempt failed, with the last HTTP status (None when
            the last attempt did not get a response).
        """
        if attempts_left is None:
            attempts_left = self.config.max_attempts
        if attempts_left <= 0:
            raise ValueError(f"attempts_left must be positive, got {attempts_left}")

        while True:
            logger.debug("Requesting %s (%d attempts left)", url, attempts_left)
            response = None
            failure: Optional[requests.RequestException] = None
            try:
                response = self.session.get(url, timeout=self.config.timeout)
            except requests.RequestException as exc:
                failure = exc
            # To avoid making too many quick requests
            self._sleep(self.config.request_delay)

            if response is not None and response.status_code == 200:
                content_type = response.headers.get("Content-Type", "")
                if content_type.split(";")[0].strip().lower() != JSON_CONTENT_TYPE:
                    raise FormatMismatchError(url, content_type)
                try:
                    body = response.json()
                except ValueError as exc:
                    raise FormatMismatchError(url, content_type, "body is not valid JSON") from exc
                if not isinstance(body, dict):
                    raise FormatMismatchError(
                        url, content_type, f"expected a JSON object, got {type(body).__name__}"
                    )
                return body

            if attempts_left == 1:
                if response is None:
                    logger.error("Giving up on %s: %s", url, failure)
                    raise TransportError(url, None, str(failure)) from failure
                logger.error("Giving up on %s: HTTP %s", url, response.status_code)
                raise TransportError(url, response.status_code, response.reason or "")

            if response is None:
                logger.warning("Request to %s failed (%s), retrying", url, failure)
            else:
                logger.warning("Received HTTP %s for %s, retrying", response.status_code, url)
            self._sleep(self.config.request_delay)
            attempts_left -= 1

    # -- pagination ----------------------------------------------------

    def get_paginated(self, url: str, num_pages: int = 1, page: int = 0) -> Dict[str, Any]:
        """Request several pages of a list endpoint.

        Parameters
        ----------
        url : str
            List endpoint.  Page parameters in the URL are overridden.
        num_pages : int, default 1
            Maximum number of pages to request.  Pagination normally ends
            earlier, as soon as the API reports there is no next page.
        page : int, default 0
            Page at which to start.  Rarely needed.

        Returns
        -------
        dict
            The last envelope received, with ``result.items`` replaced by
            the items of every page requested.  Each page is prepended
            to the items of the previous ones, so the last page comes
            first.
        """
        items: List[Any] = []
        envelope: Dict[str, Any] = {"result": {"items": []}}
        while num_pages > 0:
            page_url = with_page(url, page, self.config.page_size)
            envelope = self.get(page_url)
            result = _result_of(envelope, page_url)
            items = list(result.get("items") or []) + items
            if result.get("next") is None:
                break
            page += 1
            num_pages -= 1

        logger.info("Collected %d items from %s", len(items), url)
        envelope = copy.copy(envelope)
        envelope["result"] = dict(envelope.get("result") or {}, items=items)
        return envelope

    # -- paths and lookups ---------------------------------------------

    def dataset_url(self, identifier: str) -> str:
        return f"{self.base_url}/catalog/dataset/{identifier}"

    def publisher_datasets_url(self, publisher: str) -> str:
        return f"{self.base_url}/catalog/dataset/publisher/{publisher}"

    def get_dataset(self, identifier: str) -> List[DatasetRecord]:
        """Return every record the API holds for ``identifier``.

        Normally a single record; the loader is the one deciding what to
        do when there are more or none.
        """
        if not identifier:
            raise ValueError("A dataset identifier must be provided")
        url = self.dataset_url(identifier.strip("/"))
        envelope = self.get(url)
        _result_of(envelope, url)
        return records_from_envelope(envelope, self.config.language)

    def get_publisher_datasets(self, publisher: str, num_pages: int = 1) -> List[DatasetRecord]:
        """Return the records of the datasets published by ``publisher``."""
        envelope = self.get_paginated(self.publisher_datasets_url(publisher), num_pages=num_pages)
        return records_from_envelope(envelope, self.config.language)


def fetch(url: str, attempts_left: int = 5) -> Dict[str, Any]:
    """Module-level convenience wrapper around :meth:`DatosGobAPI.get`."""
    return DatosGobAPI().get(url, attempts_left=attempts_left)


def fetch_all_pages(base_url: str, num_pages: int = 1, start_page: int = 0) -> Dict[str, Any]:
    """Module-level convenience wrapper around :meth:`DatosGobAPI.get_paginated`."""
    return DatosGobAPI().get_paginated(base_url, num_pages=num_pages, page=start_page)


__all__ = ["DatosGobAPI", "create_session", "fetch", "fetch_all_pages", "with_page"]
