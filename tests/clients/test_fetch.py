"""Tests for ResilientFetchClient retry/backoff and request shaping."""
import httpx
import pytest

from polywatch.clients.fetch import USER_AGENTS, ResilientFetchClient
from polywatch.config import FetchConfig
from polywatch.errors import (
    ClientRequestError,
    ParseError,
    RateLimitOrServerError,
    TransportError,
)

from conftest import bad_gzip, connect_error, read_timeout, status

URL = "https://data-api.polymarket.com/trades"


def test_success_first_attempt_no_delay(upstream, fetch_client, sleeps):
    upstream.add("/trades", [{"size": 1}])
    resp = fetch_client.fetch(URL)
    assert resp.status_code == 200
    assert len(upstream.requests) == 1
    assert sleeps == []


def test_retries_server_errors_then_succeeds(upstream, fetch_client, sleeps):
    upstream.add("/trades", status(503), status(500), [{"size": 1}])
    resp = fetch_client.fetch(URL)
    assert resp.status_code == 200
    assert len(upstream.requests) == 3
    assert sleeps == [1.0, 2.0]


def test_mixed_failures_within_budget(upstream, fetch_client, sleeps):
    upstream.add("/trades", status(429), connect_error, status(502), [{"ok": True}])
    resp = fetch_client.fetch(URL)
    assert resp.status_code == 200
    assert resp.json() == [{"ok": True}]
    assert len(upstream.requests) == 4
    assert sleeps == [1.0, 2.0, 4.0]


def test_read_timeouts_are_retried(upstream, fetch_client, sleeps):
    upstream.add("/trades", read_timeout, connect_error, read_timeout, [{"ok": True}])
    resp = fetch_client.fetch(URL)
    assert resp.status_code == 200
    assert len(upstream.requests) == 4
    assert sleeps == [1.0, 2.0, 4.0]


def test_persistent_read_timeout_raises_transport_error(upstream, fetch_client):
    upstream.add("/trades", read_timeout)
    with pytest.raises(TransportError):
        fetch_client.get_json(URL)
    assert len(upstream.requests) == 4


def test_undecodable_body_maps_to_parse_error(upstream, fetch_client, sleeps):
    upstream.add("/trades", bad_gzip)
    with pytest.raises(ParseError):
        fetch_client.get_json(URL)
    assert len(upstream.requests) == 1
    assert sleeps == []


def test_exhausted_http_failure_returns_last_response(upstream, fetch_client, sleeps):
    upstream.add("/trades", status(500), status(500), status(500), status(429))
    resp = fetch_client.fetch(URL)
    assert resp.status_code == 429
    assert len(upstream.requests) == 4
    assert len(sleeps) == 3


def test_exhausted_transport_failure_raises(upstream, fetch_client):
    upstream.add("/trades", connect_error)
    with pytest.raises(TransportError):
        fetch_client.fetch(URL)
    assert len(upstream.requests) == 4


def test_client_error_not_retried(upstream, fetch_client, sleeps):
    upstream.add("/trades", status(404), [{"never": "served"}])
    resp = fetch_client.fetch(URL)
    assert resp.status_code == 404
    assert len(upstream.requests) == 1
    assert sleeps == []


@pytest.mark.parametrize("code", [400, 401, 403, 422])
def test_other_4xx_single_attempt(upstream, fetch_client, code):
    upstream.add("/trades", status(code))
    assert fetch_client.fetch(URL).status_code == code
    assert len(upstream.requests) == 1


def test_backoff_capped_at_max_delay(upstream):
    delays = []
    config = FetchConfig(max_retries=5, initial_delay=1.0, backoff_multiplier=2.0, max_delay=10.0)
    upstream.add("/trades", status(503))
    with ResilientFetchClient(config, transport=upstream.transport(), sleep=delays.append) as client:
        client.fetch(URL)
    assert delays == [1.0, 2.0, 4.0, 8.0, 10.0]
    assert len(upstream.requests) == 6


def test_request_headers(upstream, fetch_client):
    fetch_client.fetch(URL, headers={"Accept-Language": "tr-TR"})
    req = upstream.requests[0]
    assert req.headers["User-Agent"] in USER_AGENTS
    assert req.headers["Cache-Control"] == "no-cache"
    assert req.headers["Pragma"] == "no-cache"
    assert req.headers["Accept"] == "application/json"
    assert req.headers["Accept-Language"] == "tr-TR"


def test_post_body_sent_as_json(upstream, fetch_client):
    fetch_client.fetch(URL, method="POST", body={"a": 1})
    req = upstream.requests[0]
    assert req.method == "POST"
    assert req.content == b'{"a":1}' or req.content == b'{"a": 1}'


def test_connection_pool_is_shared(upstream, fetch_client):
    first = fetch_client.client
    fetch_client.fetch(URL)
    fetch_client.fetch(URL)
    assert fetch_client.client is first
    assert fetch_client.request_count == 2


def test_get_json_decodes(upstream, fetch_client):
    upstream.add("/trades", [{"price": 0.5}])
    assert fetch_client.get_json(URL, params={"limit": 5}) == [{"price": 0.5}]
    assert upstream.requests[0].url.params["limit"] == "5"


def test_get_json_client_error(upstream, fetch_client):
    upstream.add("/trades", status(400))
    with pytest.raises(ClientRequestError) as exc:
        fetch_client.get_json(URL)
    assert exc.value.status_code == 400
    assert not exc.value.retryable


def test_get_json_server_error_after_retries(upstream, fetch_client):
    upstream.add("/trades", status(503))
    with pytest.raises(RateLimitOrServerError) as exc:
        fetch_client.get_json(URL)
    assert exc.value.status_code == 503
    assert len(upstream.requests) == 4


def test_get_json_parse_error(upstream, fetch_client):
    upstream.add("/trades", httpx.Response(200, text="<html>blocked</html>"))
    with pytest.raises(ParseError):
        fetch_client.get_json(URL)
    assert len(upstream.requests) == 1


def test_request_count_exact_across_threads(upstream, fetch_client):
    from concurrent.futures import ThreadPoolExecutor

    upstream.add("/trades", [])
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: fetch_client.fetch(URL), range(200)))
    assert fetch_client.request_count == 200
    assert len(upstream.requests) == 200
