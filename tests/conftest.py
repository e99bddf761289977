from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from datosgob.config import ClientConfig
from datosgob.datosgob_api import DatosGobAPI


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        body: Union[bytes, Dict[str, Any], None] = None,
        content_type: str = "application/json",
        reason: str = "",
    ) -> None:
        self.status_code = status_code
        self.reason = reason or ("OK" if status_code == 200 else "Error")
        self.headers = {"Content-Type": content_type}
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        self.content = body or b""
        self.closed = False

    def json(self) -> Any:
        return json.loads(self.content.decode("utf-8"))

    def iter_content(self, chunk_size: int = 8192):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


Route = Union[FakeResponse, Exception, Callable[[str], Union[FakeResponse, Exception]]]


class FakeSession:
    """Stand-in for requests.Session answering from a routing table."""

    def __init__(self, routes: Optional[Dict[str, Union[Route, List[Route]]]] = None) -> None:
        self.routes = routes or {}
        self.headers: Dict[str, str] = {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        base = url.split("?", 1)[0]
        route = self.routes.get(url, self.routes.get(base))
        if route is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if callable(route) and not isinstance(route, (FakeResponse, Exception)):
            route = route(url)
        if isinstance(route, Exception):
            raise route
        return route

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def page_of(url: str) -> int:
    return int(parse_qs(urlsplit(url).query)["_page"][0])


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(base_url="https://datos.test/apidata", request_delay=0.0)


@pytest.fixture
def make_client(config: ClientConfig) -> Callable[..., DatosGobAPI]:
    def _make(routes: Optional[Dict[str, Any]] = None, **overrides: Any) -> DatosGobAPI:
        cfg = config.with_overrides(**overrides) if overrides else config
        return DatosGobAPI(config=cfg, session=FakeSession(routes), sleep=lambda _s: None)

    return _make
