"""A run of candles together with the indicators computed over them."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from coinbot import algo
from coinbot.candle import _COLUMNS, Candle, _nanoseconds, _row_to_candle
from coinbot.database import candle_table_name
from coinbot.events import SignalEvents, signal_events_after

_ICHIMOKU_TENKAN = 9


def _omit_empty(items: dict[str, Any]) -> dict[str, Any]:
    """Drop zero numbers and empty lists, as the JSON form leaves them out."""
    return {key: value for key, value in items.items() if value}


@dataclass
class Sma:
    """Simple moving average of closes."""

    period: int
    values: list[float]

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty({"period": self.period, "values": self.values})


@dataclass
class Ema:
    """Exponential moving average of closes."""

    period: int
    values: list[float]

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty({"period": self.period, "values": self.values})


@dataclass
class BBands:
    """Bollinger bands of closes."""

    n: int
    k: float
    up: list[float]
    mid: list[float]
    down: list[float]

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {"n": self.n, "k": self.k, "up": self.up, "mid": self.mid, "down": self.down}
        )


@dataclass
class IchimokuCloud:
    """Ichimoku lines of closes."""

    tenkan: list[float]
    kijun: list[float]
    senkou_a: list[float]
    senkou_b: list[float]
    chikou: list[float]

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {
                "tenkan": self.tenkan,
                "kijun": self.kijun,
                "senkoua": self.senkou_a,
                "senkoub": self.senkou_b,
                "chikou": self.chikou,
            }
        )


@dataclass
class Rsi:
    """Relative strength index of closes."""

    period: int
    values: list[float]

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty({"period": self.period, "values": self.values})


@dataclass
class Macd:
    """Moving average convergence/divergence of closes."""

    fast_period: int
    slow_period: int
    signal_period: int
    macd: list[float]
    macd_signal: list[float]
    macd_hist: list[float]

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {
                "fast_period": self.fast_period,
                "slow_period": self.slow_period,
                "signal_period": self.signal_period,
                "macd": self.macd,
                "macd_signal": self.macd_signal,
                "macd_hist": self.macd_hist,
            }
        )


@dataclass
class Hv:
    """Historical volatility of closes."""

    period: int
    values: list[float]

    def to_dict(self) -> dict[str, Any]:
        return _omit_empty({"period": self.period, "values": self.values})


@dataclass
class DataFrameCandle:
    """Candles of one product and duration, oldest first, with indicators."""

    product_code: str
    duration: timedelta
    candles: list[Candle] = field(default_factory=list)
    smas: list[Sma] = field(default_factory=list)
    emas: list[Ema] = field(default_factory=list)
    bbands: BBands | None = None
    ichimoku_cloud: IchimokuCloud | None = None
    rsi: Rsi | None = None
    macd: Macd | None = None
    hvs: list[Hv] = field(default_factory=list)
    events: SignalEvents | None = None

    def times(self) -> list[datetime]:
        return [candle.time for candle in self.candles]

    def opens(self) -> list[float]:
        return [candle.open for candle in self.candles]

    def closes(self) -> list[float]:
        return [candle.close for candle in self.candles]

    def highs(self) -> list[float]:
        return [candle.high for candle in self.candles]

    def lows(self) -> list[float]:
        return [candle.low for candle in self.candles]

    def volumes(self) -> list[float]:
        return [candle.volume for candle in self.candles]

    def add_sma(self, period: int) -> bool:
        """Add an SMA if there are more candles than ``period``."""
        if len(self.candles) > period:
            self.smas.append(Sma(period, algo.sma(self.closes(), period)))
            return True
        return False

    def add_ema(self, period: int) -> bool:
        """Add an EMA if there are more candles than ``period``."""
        if len(self.candles) > period:
            self.emas.append(Ema(period, algo.ema(self.closes(), period)))
            return True
        return False

    def add_bbands(self, n: int, k: float) -> bool:
        """Set Bollinger bands if there are at least ``n`` candles."""
        closes = self.closes()
        if n <= len(closes):
            up, mid, down = algo.bbands(closes, n, k, k)
            self.bbands = BBands(n=n, k=k, up=up, mid=mid, down=down)
            return True
        return False

    def add_ichimoku(self) -> bool:
        """Set the Ichimoku cloud if there are at least nine candles."""
        closes = self.closes()
        if len(closes) >= _ICHIMOKU_TENKAN:
            tenkan, kijun, senkou_a, senkou_b, chikou = algo.ichimoku_cloud(closes)
            self.ichimoku_cloud = IchimokuCloud(tenkan, kijun, senkou_a, senkou_b, chikou)
            return True
        return False

    def add_rsi(self, period: int) -> bool:
        """Set the RSI if there are more candles than ``period``."""
        if len(self.candles) > period:
            self.rsi = Rsi(period, algo.rsi(self.closes(), period))
            return True
        return False

    def add_macd(self, fast_period: int, slow_period: int, signal_period: int) -> bool:
        """Set the MACD if there is more than one candle."""
        if len(self.candles) > 1:
            out_macd, out_signal, out_hist = algo.macd(
                self.closes(), fast_period, slow_period, signal_period
            )
            self.macd = Macd(
                fast_period=fast_period,
                slow_period=slow_period,
                signal_period=signal_period,
                macd=out_macd,
                macd_signal=out_signal,
                macd_hist=out_hist,
            )
            return True
        return False

    def add_hv(self, period: int) -> bool:
        """Add historical volatility if there are at least ``period`` candles."""
        if len(self.candles) >= period:
            self.hvs.append(Hv(period, algo.hv(self.closes(), period)))
            return True
        return False

    def add_events(self, conn: sqlite3.Connection, since: datetime) -> bool:
        """Attach stored signals at or after ``since``, if there are any."""
        signal_events = signal_events_after(conn, since)
        if signal_events.signals:
            self.events = signal_events
            return True
        return False

    def to_dict(self) -> dict[str, Any]:
        """JSON form; empty indicators are left out."""
        result: dict[str, Any] = {
            "product_code": self.product_code,
            "duration": _nanoseconds(self.duration),
            "candles": [candle.to_dict() for candle in self.candles],
        }
        if self.smas:
            result["smas"] = [item.to_dict() for item in self.smas]
        if self.emas:
            result["emas"] = [item.to_dict() for item in self.emas]
        if self.bbands is not None:
            result["bbands"] = self.bbands.to_dict()
        if self.ichimoku_cloud is not None:
            result["ichimoku"] = self.ichimoku_cloud.to_dict()
        if self.rsi is not None:
            result["rsi"] = self.rsi.to_dict()
        if self.macd is not None:
            result["macd"] = self.macd.to_dict()
        if self.hvs:
            result["hvs"] = [item.to_dict() for item in self.hvs]
        if self.events is not None:
            result["events"] = self.events.to_dict()
        return result


def get_all_candles(
    conn: sqlite3.Connection, product_code: str, duration: timedelta, limit: int
) -> DataFrameCandle:
    """The latest ``limit`` stored candles, oldest first.

    Raises sqlite3.Error when the candles cannot be read.
    """
    table = candle_table_name(product_code, duration)
    rows = conn.execute(
        f"""SELECT * FROM (
            SELECT {_COLUMNS} FROM {table} ORDER BY time DESC LIMIT ?
            ) ORDER BY time ASC""",
        (limit,),
    ).fetchall()
    return DataFrameCandle(
        product_code=product_code,
        duration=duration,
        candles=[_row_to_candle(product_code, duration, row) for row in rows],
    )