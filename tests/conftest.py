"""Shared test fixtures: fake data API upstream, clients wired to it."""
from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List

import httpx
import pytest

from polywatch.app import Polywatch
from polywatch.clients.data_api import DataAPIClient
from polywatch.clients.fetch import ResilientFetchClient
from polywatch.clients.gamma import GammaClient
from polywatch.config import AppConfig, FetchConfig

NOW = 1_750_000_000
ADDR_A = "0x" + "a" * 40
ADDR_B = "0x" + "b" * 40
ZERO_ADDR = "0x" + "0" * 40


class FakeUpstream:
    """Path-routed stand-in for the data and Gamma APIs.

    A route holds a queue of responses; each request pops the next one and the
    last one repeats forever. A response can be:
      - an ``httpx.Response``
      - an exception instance (raised, e.g. ``httpx.ConnectError``)
      - a callable ``fn(request)`` returning any of these
      - anything else, served as a 200 JSON body
    Unrouted paths answer 200 ``[]``.
    """

    def __init__(self):
        self.routes: Dict[str, List[Any]] = {}
        self.requests: List[httpx.Request] = []
        self._lock = threading.Lock()

    def add(self, path: str, *responses: Any) -> "FakeUpstream":
        self.routes[path] = list(responses)
        return self

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def _next(self, path: str) -> Any:
        with self._lock:
            queue = self.routes.get(path)
            if not queue:
                return []
            return queue.pop(0) if len(queue) > 1 else queue[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        response = self._next(request.url.path)
        if callable(response) and not isinstance(response, httpx.Response):
            response = response(request)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def status(code: int, body: Any = None) -> httpx.Response:
    if body is None:
        return httpx.Response(code, text=f"status {code}")
    return httpx.Response(code, json=body)


def connect_error(request: httpx.Request) -> Exception:
    return httpx.ConnectError("connection reset", request=request)


def read_timeout(request: httpx.Request) -> Exception:
    return httpx.ReadTimeout("timed out", request=request)


def bad_gzip(request: httpx.Request) -> httpx.Response:
    """200 whose body claims gzip but is not; httpx fails while reading it."""
    return httpx.Response(
        200,
        headers={"Content-Encoding": "gzip"},
        stream=httpx.ByteStream(b"not gzip"),
    )


def by_user(rows_by_user: Dict[str, Any]) -> Callable[[httpx.Request], Any]:
    """Route on the ``user`` query param."""
    def respond(request: httpx.Request) -> Any:
        return rows_by_user.get(request.url.params.get("user"), [])
    return respond


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def sleeps():
    """Backoff delays requested by the fetch client (no real sleeping)."""
    return []


@pytest.fixture
def fetch_client(upstream, sleeps):
    client = ResilientFetchClient(FetchConfig(), transport=upstream.transport(), sleep=sleeps.append)
    yield client
    client.close()


@pytest.fixture
def data_api(fetch_client):
    return DataAPIClient(fetch_client)


@pytest.fixture
def gamma(fetch_client):
    return GammaClient(fetch_client)


@pytest.fixture
def app(upstream, sleeps):
    polywatch = Polywatch(AppConfig(), transport=upstream.transport(), sleep=sleeps.append)
    yield polywatch
    polywatch.close()
