import math
from datetime import datetime, timedelta, timezone

import pytest

from coinbot.ai import AI
from coinbot.backtest import TradeParams, backtest_ema, optimize_params
from coinbot.candle import Candle
from coinbot.database import connect
from coinbot.dataframe import get_all_candles
from coinbot.events import SignalEvent

PRODUCT = "BTC_USD"
MINUTE = timedelta(minutes=1)
START = datetime(2024, 1, 1, tzinfo=timezone.utc)
PAST = 200


def _closes(count=120):
    return [100 + 10 * math.sin(i / 5) + 0.1 * i for i in range(count)]


@pytest.fixture
def conn():
    connection = connect(":memory:", PRODUCT, {"1m": MINUTE})
    for i, close in enumerate(_closes()):
        Candle(PRODUCT, MINUTE, START + i * MINUTE, close, close, close + 1, close - 1, 1.0).create(
            connection
        )
    yield connection
    connection.close()


def _ai(conn, back_test=True, stop_limit_percent=0.9, product_code=PRODUCT):
    return AI(conn, product_code, MINUTE, PAST, 0.5, stop_limit_percent, back_test, 3)


def _candles(conn):
    return get_all_candles(conn, PRODUCT, MINUTE, PAST).candles


def test_product_code_is_split(conn):
    ai = _ai(conn)
    assert (ai.coin_code, ai.currency_code) == ("BTC", "USD")
    assert ai.minute_to_expires == 1
    assert ai.signal_events.signals == []


def test_product_code_without_separator_raises(conn):
    with pytest.raises(ValueError):
        _ai(conn, product_code="BTCUSD")


def test_update_optimize_params_matches_optimizer(conn):
    ai = _ai(conn)
    expected = optimize_params(get_all_candles(conn, PRODUCT, MINUTE, PAST), 3)
    assert ai.optimized_trade_params == expected


def test_backtest_buy_then_sell(conn):
    ai = _ai(conn)
    candles = _candles(conn)
    assert ai.buy(candles[0]) == ("", True)
    assert ai.buy(candles[1]) == ("", False)
    assert ai.sell(candles[1]) == ("", True)
    assert [e.side for e in ai.signal_events.signals] == ["BUY", "SELL"]
    assert ai.signal_events.signals[1].price == candles[1].close


def test_live_mode_loads_last_signal_and_places_no_orders(conn):
    SignalEvent(START, PRODUCT, "BUY", 100.0, 1.0).save(conn)
    ai = _ai(conn, back_test=False)
    assert [e.side for e in ai.signal_events.signals] == ["BUY"]
    assert ai.signal_events.signals[0].time == START
    assert ai.buy(_candles(conn)[5]) == ("", False)
    assert ai.sell(_candles(conn)[5]) == ("", False)


def test_trade_with_nothing_enabled_records_nothing(conn):
    ai = _ai(conn)
    ai.optimized_trade_params = TradeParams()
    assert ai.trade() is True
    assert ai.signal_events.signals == []


def test_trade_with_ema_matches_backtest(conn):
    ai = _ai(conn, stop_limit_percent=0.0)
    ai.optimized_trade_params = TradeParams(ema_enable=True, ema_period1=5, ema_period2=12)
    assert ai.trade() is True
    expected = backtest_ema(get_all_candles(conn, PRODUCT, MINUTE, PAST), 5, 12)
    assert len(expected.signals) > 0
    got = [(e.side, e.time, e.price) for e in ai.signal_events.signals]
    assert got == [(e.side, e.time, e.price) for e in expected.signals]


def test_stop_limit_forces_sale(conn):
    ai = _ai(conn)
    ai.optimized_trade_params = TradeParams()
    candles = _candles(conn)
    ai.buy(candles[0])
    ai.stop_limit = 1e9
    assert ai.trade() is True
    signals = ai.signal_events.signals
    assert [e.side for e in signals] == ["BUY", "SELL"]
    assert signals[1].time == candles[1].time
    assert ai.stop_limit == 0.0


def test_trade_returns_false_when_locked(conn):
    ai = _ai(conn)
    ai.optimized_trade_params = TradeParams(ema_enable=True, ema_period1=5, ema_period2=12)
    ai.trade_lock.acquire()
    try:
        assert ai.trade() is False
    finally:
        ai.trade_lock.release()
    assert ai.signal_events.signals == []