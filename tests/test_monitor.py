"""Tests for the polling monitor's announce-once behaviour."""
from polywatch.monitor import PollingMonitor, whale_key

from conftest import ADDR_A, NOW


def whale(ts, title):
    return {"conditionId": "0xc", "size": 10000, "price": 0.6, "timestamp": ts, "title": title}


def test_whales_announced_once_oldest_first(app, upstream):
    upstream.add("/trades", [whale(NOW - 10, "newer"), whale(NOW - 20, "older")])
    announced = []
    monitor = PollingMonitor(app, on_whale=announced.append)

    fresh = monitor.poll_whales()
    assert [a.market_question for a in fresh] == ["newer", "older"]
    assert [a.market_question for a in announced] == ["older", "newer"]

    assert monitor.poll_whales() == []
    assert len(announced) == 2
    assert monitor.stats["whale_polls"] == 2
    assert monitor.stats["whales_announced"] == 2


def test_new_whale_after_first_poll(app, upstream):
    upstream.add(
        "/trades",
        [whale(NOW - 10, "first")],
        [whale(NOW, "second"), whale(NOW - 10, "first")],
    )
    monitor = PollingMonitor(app, on_whale=lambda a: None)
    monitor.poll_whales()
    fresh = monitor.poll_whales()
    assert [a.market_question for a in fresh] == ["second"]
    assert whale_key(fresh[0]).startswith("0xc-")


def test_feed_poll_without_wallets_is_noop(app, upstream):
    assert PollingMonitor(app).poll_feed() == []
    assert upstream.requests == []


def test_feed_entries_announced_once(app, upstream):
    app.feed.clock = lambda: NOW
    upstream.add("/activity", [
        {"timestamp": NOW - 30, "type": "TRADE", "usdcSize": 50, "title": "Rain?"},
    ])
    announced = []
    monitor = PollingMonitor(app, wallets=[ADDR_A], on_trade=announced.append)

    assert len(monitor.poll_feed()) == 1
    assert monitor.poll_feed() == []
    assert len(announced) == 1
    assert announced[0].label == "0xaaaa…aaaa"


def test_seen_cap_evicts_oldest_without_reannouncing(app, upstream, monkeypatch):
    import polywatch.monitor as monitor_mod

    monkeypatch.setattr(monitor_mod, "MAX_SEEN", 2)
    a, b, c = whale(NOW - 30, "a"), whale(NOW - 20, "b"), whale(NOW - 10, "c")
    upstream.add("/trades", [b, a], [c, b, a], [c, b])
    announced = []
    monitor = PollingMonitor(app, on_whale=announced.append)

    monitor.poll_whales()
    monitor.poll_whales()
    assert monitor.poll_whales() == []
    assert [w.market_question for w in announced] == ["a", "b", "c"]
