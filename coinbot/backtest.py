"""Back-testing of indicator strategies and the search for their best settings."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from itertools import pairwise

from coinbot import algo
from coinbot.dataframe import DataFrameCandle
from coinbot.events import SignalEvents

_ICHIMOKU_MIN_CANDLES = 52
_SIZE = 1.0


@dataclass
class TradeParams:
    """Which strategies to trade on, and the settings each one uses."""

    ema_enable: bool = False
    ema_period1: int = 0
    ema_period2: int = 0
    bb_enable: bool = False
    bb_n: int = 0
    bb_k: float = 0.0
    ichimoku_enable: bool = False
    macd_enable: bool = False
    macd_fast_period: int = 0
    macd_slow_period: int = 0
    macd_signal_period: int = 0
    rsi_enable: bool = False
    rsi_period: int = 0
    rsi_buy_threshold: float = 0.0
    rsi_sell_threshold: float = 0.0


@dataclass
class Ranking:
    """A strategy's back-test performance and whether it was chosen."""

    enable: bool
    performance: float


def _float_steps(start: float, stop: float, step: float) -> Iterator[float]:
    value = start
    while value < stop:
        yield value
        value += step


def backtest_ema(df: DataFrameCandle, period1: int, period2: int) -> SignalEvents | None:
    """Trade on crossings of two EMAs; None if there are too few candles."""
    count = len(df.candles)
    if count <= period1 or count <= period2:
        return None
    events = SignalEvents()
    closes = df.closes()
    rows = list(zip(algo.ema(closes, period1), algo.ema(closes, period2), df.candles))
    for i, ((prev1, prev2, _), (cur1, cur2, candle)) in enumerate(pairwise(rows), start=1):
        if i < period1 or i < period2:
            continue
        if prev1 < prev2 and cur1 >= cur2:
            events.buy(df.product_code, candle.time, candle.close, _SIZE)
        if prev1 > prev2 and cur1 <= cur2:
            events.sell(df.product_code, candle.time, candle.close, _SIZE)
    return events


def optimize_ema(df: DataFrameCandle) -> tuple[float, int, int]:
    """Best EMA periods by profit: (performance, period1, period2)."""
    performance, best1, best2 = 0.0, 7, 14
    for period1 in range(5, 11):
        for period2 in range(12, 20):
            events = backtest_ema(df, period1, period2)
            if events is None:
                continue
            profit = events.profit()
            if performance < profit:
                performance, best1, best2 = profit, period1, period2
    return performance, best1, best2


def backtest_bb(df: DataFrameCandle, n: int, k: float) -> SignalEvents | None:
    """Trade on closes re-entering the Bollinger bands; None if too few candles."""
    count = len(df.candles)
    if count <= n:
        return None
    events = SignalEvents()
    up, _, down = algo.bbands(df.closes(), n, k, k)
    rows = list(zip(up, down, df.candles))
    for i, ((prev_up, prev_down, prev), (cur_up, cur_down, candle)) in enumerate(
        pairwise(rows), start=1
    ):
        if i < n:
            continue
        if prev_down > prev.close and cur_down <= candle.close:
            events.buy(df.product_code, candle.time, candle.close, _SIZE)
        if prev_up < prev.close and cur_up >= candle.close:
            events.sell(df.product_code, candle.time, candle.close, _SIZE)
    return events


def optimize_bb(df: DataFrameCandle) -> tuple[float, int, float]:
    """Best Bollinger settings by profit: (performance, n, k)."""
    performance, best_n, best_k = 0.0, 20, 2.0
    for n in range(10, 20):
        for k in _float_steps(1.9, 2.1, 0.1):
            events = backtest_bb(df, n, k)
            if events is None:
                continue
            profit = events.profit()
            if performance < profit:
                performance, best_n, best_k = profit, n, k
    return performance, best_n, best_k


def backtest_ichimoku(df: DataFrameCandle) -> SignalEvents | None:
    """Trade on Ichimoku breakouts; None unless there are more than 52 candles."""
    count = len(df.candles)
    if count <= _ICHIMOKU_MIN_CANDLES:
        return None
    events = SignalEvents()
    tenkan, kijun, senkou_a, senkou_b, chikou = algo.ichimoku_cloud(df.closes())
    rows = list(zip(tenkan, kijun, senkou_a, senkou_b, chikou, df.candles))
    for prev_row, row in pairwise(rows):
        prev_chikou, prev = prev_row[4], prev_row[5]
        cur_tenkan, cur_kijun, cur_a, cur_b, cur_chikou, candle = row
        if (
            prev_chikou < prev.high
            and cur_chikou >= candle.high
            and cur_a < candle.low
            and cur_b < candle.low
            and cur_tenkan > cur_kijun
        ):
            events.buy(df.product_code, candle.time, candle.close, _SIZE)
        if (
            prev_chikou > prev.low
            and cur_chikou <= candle.low
            and cur_a > candle.high
            and cur_b > candle.high
            and cur_tenkan < cur_kijun
        ):
            events.sell(df.product_code, candle.time, candle.close, _SIZE)
    return events


def optimize_ichimoku(df: DataFrameCandle) -> float:
    """Profit of the Ichimoku strategy, or zero if it cannot be tested."""
    events = backtest_ichimoku(df)
    if events is None:
        return 0.0
    return events.profit()


def backtest_macd(
    df: DataFrameCandle, fast_period: int, slow_period: int, signal_period: int
) -> SignalEvents | None:
    """Trade on MACD crossing its signal line; None if too few candles."""
    count = len(df.candles)
    if count <= fast_period or count <= slow_period or count <= signal_period:
        return None
    events = SignalEvents()
    out_macd, out_signal, _ = algo.macd(df.closes(), fast_period, slow_period, signal_period)
    rows = list(zip(out_macd, out_signal, df.candles))
    for (prev_macd, prev_signal, _), (cur_macd, cur_signal, candle) in pairwise(rows):
        if (
            cur_macd < 0
            and cur_signal < 0
            and prev_macd < prev_signal
            and cur_macd >= cur_signal
        ):
            events.buy(df.product_code, candle.time, candle.close, _SIZE)
        if (
            cur_macd > 0
            and cur_signal > 0
            and prev_macd > prev_signal
            and cur_macd <= cur_signal
        ):
            events.sell(df.product_code, candle.time, candle.close, _SIZE)
    return events


def optimize_macd(df: DataFrameCandle) -> tuple[float, int, int, int]:
    """Best MACD periods by profit: (performance, fast, slow, signal)."""
    performance, best_fast, best_slow, best_signal = 0.0, 12, 26, 9
    for fast in range(10, 19):
        for slow in range(20, 30):
            for signal in range(5, 15):
                events = backtest_macd(df, fast, slow, signal)
                if events is None:
                    continue
                profit = events.profit()
                if performance < profit:
                    performance, best_fast, best_slow, best_signal = profit, fast, slow, signal
    return performance, best_fast, best_slow, best_signal


def backtest_rsi(
    df: DataFrameCandle, period: int, buy_threshold: float, sell_threshold: float
) -> SignalEvents | None:
    """Trade on the RSI crossing its thresholds; None if too few candles."""
    count = len(df.candles)
    if count <= period:
        return None
    events = SignalEvents()
    rows = list(zip(algo.rsi(df.closes(), period), df.candles))
    for (prev_value, _), (value, candle) in pairwise(rows):
        if prev_value == 0 or prev_value == 100:
            continue
        if prev_value < buy_threshold and value >= buy_threshold:
            events.buy(df.product_code, candle.time, candle.close, _SIZE)
        if prev_value > sell_threshold and value <= sell_threshold:
            events.sell(df.product_code, candle.time, candle.close, _SIZE)
    return events


def optimize_rsi(df: DataFrameCandle) -> tuple[float, int, float, float]:
    """Best RSI period by profit: (performance, period, buy, sell thresholds)."""
    performance, best_period = 0.0, 14
    buy_threshold, sell_threshold = 30.0, 70.0
    for period in range(5, 25):
        events = backtest_rsi(df, period, buy_threshold, sell_threshold)
        if events is None:
            continue
        profit = events.profit()
        if performance < profit:
            performance, best_period = profit, period
    return performance, best_period, buy_threshold, sell_threshold


def optimize_params(df: DataFrameCandle, num_ranking: int) -> TradeParams:
    """Optimise every strategy and enable the ``num_ranking`` most profitable ones."""
    ema_perf, ema_period1, ema_period2 = optimize_ema(df)
    bb_perf, bb_n, bb_k = optimize_bb(df)
    macd_perf, macd_fast, macd_slow, macd_signal = optimize_macd(df)
    ichimoku_perf = optimize_ichimoku(df)
    rsi_perf, rsi_period, rsi_buy, rsi_sell = optimize_rsi(df)

    ema_rank = Ranking(False, ema_perf)
    bb_rank = Ranking(False, bb_perf)
    macd_rank = Ranking(False, macd_perf)
    ichimoku_rank = Ranking(False, ichimoku_perf)
    rsi_rank = Ranking(False, rsi_perf)

    rankings = sorted(
        [ema_rank, bb_rank, macd_rank, ichimoku_rank, rsi_rank],
        key=lambda ranking: ranking.performance,
        reverse=True,
    )
    for ranking in rankings[: max(num_ranking, 0)]:
        if ranking.performance > 0:
            ranking.enable = True

    return TradeParams(
        ema_enable=ema_rank.enable,
        ema_period1=ema_period1,
        ema_period2=ema_period2,
        bb_enable=bb_rank.enable,
        bb_n=bb_n,
        bb_k=bb_k,
        ichimoku_enable=ichimoku_rank.enable,
        macd_enable=macd_rank.enable,
        macd_fast_period=macd_fast,
        macd_slow_period=macd_slow,
        macd_signal_period=macd_signal,
        rsi_enable=rsi_rank.enable,
        rsi_period=rsi_period,
        rsi_buy_threshold=rsi_buy,
        rsi_sell_threshold=rsi_sell,
    )