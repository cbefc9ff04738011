"""The trading agent: chooses strategies and acts on their signals."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timedelta, timezone

from coinbot.backtest import TradeParams, optimize_params
from coinbot.bitflyer import APIClient
from coinbot.candle import Candle
from coinbot import algo
from coinbot.dataframe import get_all_candles
from coinbot.events import SignalEvents, signal_events_by_count

logger = logging.getLogger(__name__)

_SIZE = 1.0


class AI:
    """Trades one product on candles of one duration."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        product_code: str,
        duration: timedelta,
        past_period: int,
        use_percent: float,
        stop_limit_percent: float,
        back_test: bool,
        num_ranking: int,
        api: APIClient | None = None,
    ) -> None:
        codes = product_code.split("_")
        if len(codes) < 2:
            raise ValueError(f"product code {product_code!r} has no currency part")
        self.conn = conn
        self.api = api
        self.product_code = product_code
        self.coin_code = codes[0]
        self.currency_code = codes[1]
        self.use_percent = use_percent
        self.minute_to_expires = 1
        self.duration = duration
        self.past_period = past_period
        self.num_ranking = num_ranking
        self.back_test = back_test
        self.stop_limit = 0.0
        self.stop_limit_percent = stop_limit_percent
        self.start_trade = datetime.now(timezone.utc)
        self.trade_lock = threading.Lock()
        if back_test:
            self.signal_events = SignalEvents()
        else:
            self.signal_events = signal_events_by_count(conn, product_code, 1)
        self.optimized_trade_params = TradeParams()
        self.update_optimize_params()

    def update_optimize_params(self) -> None:
        """Re-optimise the strategies over the latest candles."""
        df = get_all_candles(self.conn, self.product_code, self.duration, self.past_period)
        self.optimized_trade_params = optimize_params(df, self.num_ranking)

    def buy(self, candle: Candle) -> tuple[str, bool]:
        """Record a purchase at ``candle``: (order acceptance id, completed).

        In back-test mode the signal is kept in memory; live orders are not placed.
        """
        if self.back_test:
            done = self.signal_events.buy(self.product_code, candle.time, candle.close, _SIZE)
            return "", done
        return "", False

    def sell(self, candle: Candle) -> tuple[str, bool]:
        """Record a sale at ``candle``: (order acceptance id, completed).

        In back-test mode the signal is kept in memory; live orders are not placed.
        """
        if self.back_test:
            done = self.signal_events.sell(self.product_code, candle.time, candle.close, _SIZE)
            return "", done
        return "", False

    def trade(self) -> bool:
        """Run the enabled strategies over the latest candles.

        Returns False without trading when another trade is in progress.
        """
        if not self.trade_lock.acquire(blocking=False):
            logger.info("Could not get trade lock")
            return False
        try:
            self._trade()
        finally:
            self.trade_lock.release()
        return True

    def _trade(self) -> None:
        params = self.optimized_trade_params
        df = get_all_candles(self.conn, self.product_code, self.duration, self.past_period)
        candles = df.candles
        closes = df.closes()

        ema1 = ema2 = bb_up = bb_down = []
        tenkan = kijun = senkou_a = senkou_b = chikou = []
        out_macd = out_signal = rsi_values = []
        if params.ema_enable:
            ema1 = algo.ema(closes, params.ema_period1)
            ema2 = algo.ema(closes, params.ema_period2)
        if params.bb_enable:
            bb_up, _, bb_down = algo.bbands(closes, params.bb_n, params.bb_k, params.bb_k)
        if params.ichimoku_enable:
            tenkan, kijun, senkou_a, senkou_b, chikou = algo.ichimoku_cloud(closes)
        if params.macd_enable:
            out_macd, out_signal, _ = algo.macd(
                closes,
                params.macd_fast_period,
                params.macd_slow_period,
                params.macd_signal_period,
            )
        if params.rsi_enable:
            rsi_values = algo.rsi(closes, params.rsi_period)

        for i in range(1, len(candles)):
            prev, candle = candles[i - 1], candles[i]
            buy_point = sell_point = 0

            if params.ema_enable and params.ema_period1 <= i and params.ema_period2 <= i:
                if ema1[i - 1] < ema2[i - 1] and ema1[i] >= ema2[i]:
                    buy_point += 1
                if ema1[i - 1] > ema2[i - 1] and ema1[i] <= ema2[i]:
                    sell_point += 1

            if params.bb_enable and params.bb_n <= i:
                if bb_down[i - 1] > prev.close and bb_down[i] <= candle.close:
                    buy_point += 1
                if bb_up[i - 1] < prev.close and bb_up[i] >= candle.close:
                    sell_point += 1

            if params.macd_enable:
                if (
                    out_macd[i] < 0
                    and out_signal[i] < 0
                    and out_macd[i - 1] < out_signal[i - 1]
                    and out_macd[i] >= out_signal[i]
                ):
                    buy_point += 1
                if (
                    out_macd[i] > 0
                    and out_signal[i] > 0
                    and out_macd[i - 1] > out_signal[i - 1]
                    and out_macd[i] <= out_signal[i]
                ):
                    sell_point += 1

            if params.ichimoku_enable:
                if (
                    chikou[i - 1] < prev.high
                    and chikou[i] >= candle.high
                    and senkou_a[i] < candle.low
                    and senkou_b[i] < candle.low
                    and tenkan[i] > kijun[i]
                ):
                    buy_point += 1
                if (
                    chikou[i - 1] > prev.low
                    and chikou[i] <= candle.low
                    and senkou_a[i] > candle.high
                    and senkou_b[i] > candle.high
                    and tenkan[i] < kijun[i]
                ):
                    sell_point += 1

            if params.rsi_enable and rsi_values[i - 1] != 0 and rsi_values[i - 1] != 100:
                if (
                    rsi_values[i - 1] < params.rsi_buy_threshold
                    and rsi_values[i] >= params.rsi_buy_threshold
                ):
                    buy_point += 1
                if (
                    rsi_values[i - 1] > params.rsi_sell_threshold
                    and rsi_values[i] <= params.rsi_sell_threshold
                ):
                    sell_point += 1

            if buy_point > 0:
                _, completed = self.buy(candle)
                if not completed:
                    continue
                self.stop_limit = candle.close * self.stop_limit_percent

            if sell_point > 0 or self.stop_limit > candle.close:
                _, completed = self.sell(candle)
                if not completed:
                    continue
                self.stop_limit = 0.0
                self.update_optimize_params()