from datetime import datetime, timedelta, timezone

import pytest

from coinbot.config import DURATIONS
from coinbot.database import TABLE_SIGNAL_EVENTS, connect
from coinbot.events import (
    SignalEvent,
    SignalEvents,
    signal_events_after,
    signal_events_by_count,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
MINUTE = timedelta(minutes=1)


@pytest.fixture
def conn():
    connection = connect(":memory:", "BTC_USD", DURATIONS)
    yield connection
    connection.close()


def test_empty_events_can_only_buy():
    events = SignalEvents()
    assert events.can_buy(T0) is True
    assert events.can_sell(T0) is False
    assert events.sell("BTC_USD", T0, 100.0, 1.0) is False
    assert events.signals == []


def test_buy_then_sell_alternates():
    events = SignalEvents()
    assert events.buy("BTC_USD", T0, 100.0, 1.0) is True
    assert events.buy("BTC_USD", T0 + MINUTE, 100.0, 1.0) is False
    assert events.sell("BTC_USD", T0 + MINUTE, 120.0, 1.0) is True
    assert [e.side for e in events.signals] == ["BUY", "SELL"]


def test_sell_at_same_time_is_refused():
    events = SignalEvents()
    events.buy("BTC_USD", T0, 100.0, 1.0)
    assert events.can_sell(T0) is False
    assert events.can_sell(T0 + MINUTE) is True


def test_profit_of_round_trip():
    buy_price, sell_price = 100.0, 150.0
    events = SignalEvents()
    events.buy("BTC_USD", T0, buy_price, 1.0)
    events.sell("BTC_USD", T0 + MINUTE, sell_price, 1.0)
    assert events.profit() == sell_price - buy_price


def test_profit_sign_follows_price_move():
    up, down = SignalEvents(), SignalEvents()
    up.buy("BTC_USD", T0, 100.0, 1.0)
    up.sell("BTC_USD", T0 + MINUTE, 110.0, 1.0)
    down.buy("BTC_USD", T0, 100.0, 1.0)
    down.sell("BTC_USD", T0 + MINUTE, 90.0, 1.0)
    assert up.profit() > 0 > down.profit()


def test_open_position_is_not_counted():
    closed = SignalEvents()
    closed.buy("BTC_USD", T0, 100.0, 1.0)
    closed.sell("BTC_USD", T0 + MINUTE, 130.0, 1.0)
    holding = SignalEvents(signals=list(closed.signals))
    holding.buy("BTC_USD", T0 + 2 * MINUTE, 500.0, 1.0)
    assert holding.profit() == closed.profit()


def test_leading_sell_is_ignored():
    pair = SignalEvents()
    pair.buy("BTC_USD", T0 + MINUTE, 100.0, 1.0)
    pair.sell("BTC_USD", T0 + 2 * MINUTE, 130.0, 1.0)
    leading = SignalEvents(
        signals=[SignalEvent(T0, "BTC_USD", "SELL", 999.0, 1.0), *pair.signals]
    )
    assert leading.profit() == pair.profit()


def test_to_dict_omits_empty_parts():
    assert SignalEvents().to_dict() == {}
    flat = SignalEvents()
    flat.buy("BTC_USD", T0, 100.0, 1.0)
    flat.sell("BTC_USD", T0 + MINUTE, 100.0, 1.0)
    data = flat.to_dict()
    assert "profit" not in data
    assert [s["side"] for s in data["signals"]] == ["BUY", "SELL"]


def test_to_dict_includes_profit_and_times():
    events = SignalEvents()
    events.buy("BTC_USD", T0, 100.0, 1.0)
    events.sell("BTC_USD", T0 + MINUTE, 120.0, 1.0)
    data = events.to_dict()
    assert data["profit"] == events.profit()
    assert data["signals"][0]["time"] == "2024-01-01T00:00:00Z"
    assert data["signals"][0]["product_code"] == "BTC_USD"


def test_collect_after_keeps_tail():
    events = SignalEvents()
    events.buy("BTC_USD", T0, 100.0, 1.0)
    events.sell("BTC_USD", T0 + MINUTE, 120.0, 1.0)
    events.buy("BTC_USD", T0 + 2 * MINUTE, 110.0, 1.0)
    tail = events.collect_after(T0 + MINUTE)
    assert tail.signals == events.signals[1:]
    assert events.collect_after(T0).signals == events.signals
    assert events.collect_after(T0 + 3 * MINUTE) is None


def test_naive_times_are_taken_as_utc():
    events = SignalEvents()
    events.buy("BTC_USD", datetime(2024, 1, 1), 100.0, 1.0)
    assert events.signals[0].time == T0
    assert events.can_sell(datetime(2024, 1, 1, 0, 1)) is True


def test_saved_events_load_back(conn):
    events = SignalEvents()
    events.buy("BTC_USD", T0, 100.0, 1.0, conn)
    events.sell("BTC_USD", T0 + MINUTE, 120.0, 2.0, conn)
    loaded = signal_events_by_count(conn, "BTC_USD", 10)
    assert loaded.signals == events.signals
    assert signal_events_by_count(conn, "BTC_USD", 1).signals == events.signals[-1:]


def test_load_filters_product(conn):
    SignalEvent(T0, "ETH_USD", "BUY", 10.0, 1.0).save(conn)
    SignalEvent(T0 + MINUTE, "BTC_USD", "BUY", 100.0, 1.0).save(conn)
    loaded = signal_events_by_count(conn, "BTC_USD", 10)
    assert [e.product_code for e in loaded.signals] == ["BTC_USD"]


def test_events_after_time(conn):
    events = SignalEvents()
    events.buy("BTC_USD", T0, 100.0, 1.0, conn)
    events.sell("BTC_USD", T0 + MINUTE, 120.0, 1.0, conn)
    events.buy("BTC_USD", T0 + 2 * MINUTE, 110.0, 1.0, conn)
    after = signal_events_after(conn, T0 + MINUTE)
    assert after.signals == events.signals[1:]


def test_duplicate_save_counts_as_saved(conn):
    event = SignalEvent(T0, "BTC_USD", "BUY", 100.0, 1.0)
    assert event.save(conn) is True
    assert event.save(conn) is True
    count = conn.execute(f"SELECT COUNT(*) FROM {TABLE_SIGNAL_EVENTS}").fetchone()[0]
    assert count == 1


def test_save_on_closed_connection_fails():
    closed = connect(":memory:", "BTC_USD", [])
    closed.close()
    assert SignalEvent(T0, "BTC_USD", "BUY", 100.0, 1.0).save(closed) is False