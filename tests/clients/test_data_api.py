"""Tests for DataAPIClient endpoint shaping and fail-soft parsing."""
import pytest

from polywatch.errors import ClientRequestError, ParseError

from conftest import ADDR_A, status


def test_fetch_positions_params_and_parsing(upstream, data_api):
    upstream.add("/positions", [
        {"proxyWallet": ADDR_A, "currentValue": 120.5, "cashPnl": "-3.5", "realizedPnl": None},
    ])
    rows = data_api.fetch_positions(ADDR_A)

    params = upstream.calls("/positions")[0].url.params
    assert params["user"] == ADDR_A
    assert params["limit"] == "200"
    assert params["sortBy"] == "CURRENT"
    assert params["sortDirection"] == "DESC"

    assert rows[0].current_value == 120.5
    assert rows[0].cash_pnl == -3.5
    assert rows[0].realized_pnl == 0.0


def test_non_numeric_money_degrades_to_zero(upstream, data_api):
    upstream.add("/closed-positions", [{"realizedPnl": "n/a"}, {"realizedPnl": "inf"}, {}])
    rows = data_api.fetch_closed_positions(ADDR_A)
    assert [r.realized_pnl for r in rows] == [0.0, 0.0, 0.0]


def test_non_object_rows_skipped(upstream, data_api):
    upstream.add("/trades", [{"size": 2, "price": 0.5}, "garbage", 42])
    rows = data_api.fetch_trades(user=ADDR_A)
    assert len(rows) == 1
    assert rows[0].notional_usd == 1.0


def test_non_array_body_is_parse_error(upstream, data_api):
    upstream.add("/positions", {"error": "oops"})
    with pytest.raises(ParseError):
        data_api.fetch_positions(ADDR_A)


def test_trades_query_for_wallet(upstream, data_api):
    data_api.fetch_trades(user=ADDR_A, since=1000)
    params = upstream.calls("/trades")[0].url.params
    assert params["from"] == "1000"
    assert params["limit"] == "500"
    assert params["sortBy"] == "TIMESTAMP"
    assert params["sortDirection"] == "DESC"
    assert "filterType" not in params


def test_trades_query_global_with_cash_filter(upstream, data_api):
    data_api.fetch_trades(limit=200, offset=0, taker_only=True, min_cash_amount=5000)
    params = upstream.calls("/trades")[0].url.params
    assert "user" not in params
    assert params["takerOnly"] == "true"
    assert params["filterType"] == "CASH"
    assert params["filterAmount"] == "5000"
    assert params["offset"] == "0"


def test_leaderboard_query(upstream, data_api):
    upstream.add("/v1/leaderboard", [{"proxyWallet": ADDR_A.upper().replace("0X", "0x"), "pnl": 12}])
    rows = data_api.fetch_leaderboard(user=ADDR_A, limit=1)
    params = upstream.calls("/v1/leaderboard")[0].url.params
    assert params["category"] == "OVERALL"
    assert params["timePeriod"] == "ALL"
    assert params["orderBy"] == "PNL"
    assert params["limit"] == "1"
    assert rows[0].proxy_wallet == ADDR_A
    assert rows[0].pnl == 12.0


def test_leaderboard_pnl_missing_stays_none(upstream, data_api):
    upstream.add("/v1/leaderboard", [{"proxyWallet": ADDR_A, "pnl": "abc"}])
    assert data_api.fetch_leaderboard(user=ADDR_A)[0].pnl is None


def test_source_ok_and_empty(upstream, data_api):
    upstream.add("/positions", [{"cashPnl": 1}])
    ok = data_api.source("positions", lambda: data_api.fetch_positions(ADDR_A))
    assert ok.status == "ok"
    assert len(ok.rows) == 1

    empty = data_api.source("activity", lambda: data_api.fetch_activity(ADDR_A))
    assert empty.status == "empty"
    assert empty.ok


def test_source_error_is_distinguishable_from_empty(upstream, data_api):
    upstream.add("/positions", status(404))
    result = data_api.source("positions", lambda: data_api.fetch_positions(ADDR_A))
    assert result.status == "error"
    assert result.rows == []
    assert isinstance(result.error, ClientRequestError)
    assert not result.ok


def test_closed_positions_source_keeps_partial_pages(upstream, data_api):
    pages = {"0": [{"realizedPnl": 1}] * 50}

    def respond(request):
        offset = request.url.params["offset"]
        return pages.get(offset, status(400))

    upstream.add("/closed-positions", respond)
    result = data_api.closed_positions_source(ADDR_A)
    assert result.status == "error"
    assert len(result.rows) == 50
    assert result.complete is False
