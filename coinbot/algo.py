"""Technical indicators computed over plain lists of floats.

Every indicator returns lists as long as its input (``hv`` one shorter),
with zeros where the look-back window is not yet filled.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from itertools import pairwise

_EPSILON = 1e-14


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be at least 1, got {period}")


def _min_max(window: Sequence[float]) -> tuple[float, float]:
    return min(window), max(window)


def sma(values: Iterable[float], period: int) -> list[float]:
    """Simple moving average over ``period`` values."""
    _check_period(period)
    data = [float(v) for v in values]
    out = [0.0] * len(data)
    if len(data) < period:
        return out
    window_sum = sum(data[:period])
    out[period - 1] = window_sum / period
    for idx, (new, old) in enumerate(zip(data[period:], data), start=period):
        window_sum += new - old
        out[idx] = window_sum / period
    return out


def _ema(data: Sequence[float], period: int, k: float) -> list[float]:
    out = [0.0] * len(data)
    if len(data) < period:
        return out
    prev = sum(data[:period]) / period
    out[period - 1] = prev
    for idx, value in enumerate(data[period:], start=period):
        prev = (value - prev) * k + prev
        out[idx] = prev
    return out


def ema(values: Iterable[float], period: int) -> list[float]:
    """Exponential moving average seeded with the first simple average."""
    _check_period(period)
    data = [float(v) for v in values]
    return _ema(data, period, 2.0 / (period + 1))


def _variance(data: Sequence[float], period: int) -> list[float]:
    out = [0.0] * len(data)
    if len(data) < period:
        return out
    total = sum(data[:period])
    total_sq = sum(v * v for v in data[:period])
    out[period - 1] = total_sq / period - (total / period) ** 2
    for idx, (new, old) in enumerate(zip(data[period:], data), start=period):
        total += new - old
        total_sq += new * new - old * old
        out[idx] = total_sq / period - (total / period) ** 2
    return out


def stddev(values: Iterable[float], period: int, deviations: float) -> list[float]:
    """Population standard deviation over a window, scaled by ``deviations``."""
    _check_period(period)
    data = [float(v) for v in values]
    return [
        math.sqrt(var) * deviations if not var < _EPSILON else 0.0
        for var in _variance(data, period)
    ]


def bbands(
    values: Iterable[float], period: int, dev_up: float, dev_down: float
) -> tuple[list[float], list[float], list[float]]:
    """Bollinger bands around a simple moving average: (upper, middle, lower)."""
    data = [float(v) for v in values]
    middle = sma(data, period)
    spread = stddev(data, period, 1.0)
    upper = [m + s * dev_up for m, s in zip(middle, spread)]
    lower = [m - s * dev_down for m, s in zip(middle, spread)]
    return upper, middle, lower


def _rsi_value(gain: float, loss: float) -> float:
    total = gain + loss
    if -_EPSILON < total < _EPSILON:
        return 0.0
    return 100.0 * (gain / total)


def rsi(values: Iterable[float], period: int) -> list[float]:
    """Relative strength index with Wilder smoothing."""
    data = [float(v) for v in values]
    out = [0.0] * len(data)
    if period < 2 or len(data) <= period:
        return out
    changes = [b - a for a, b in pairwise(data)]
    gain = sum(c for c in changes[:period] if c >= 0) / period
    loss = -sum(c for c in changes[:period] if c < 0) / period
    out[period] = _rsi_value(gain, loss)
    for idx, change in enumerate(changes[period:], start=period + 1):
        gain *= period - 1
        loss *= period - 1
        if change < 0:
            loss -= change
        else:
            gain += change
        gain /= period
        loss /= period
        out[idx] = _rsi_value(gain, loss)
    return out


def macd(
    values: Iterable[float], fast_period: int, slow_period: int, signal_period: int
) -> tuple[list[float], list[float], list[float]]:
    """Moving average convergence/divergence: (macd, signal, histogram)."""
    data = [float(v) for v in values]
    if slow_period < fast_period:
        fast_period, slow_period = slow_period, fast_period
    if slow_period != 0:
        k_slow = 2.0 / (slow_period + 1)
    else:
        slow_period, k_slow = 26, 0.075
    if fast_period != 0:
        k_fast = 2.0 / (fast_period + 1)
    else:
        fast_period, k_fast = 12, 0.15
    _check_period(signal_period)
    lookback = (signal_period - 1) + (slow_period - 1)

    diff = [
        f - s
        for f, s in zip(_ema(data, fast_period, k_fast), _ema(data, slow_period, k_slow))
    ]
    start = max(lookback - 1, 0)
    out_macd = [0.0] * start + diff[start:]
    out_macd = out_macd[: len(data)]
    out_signal = _ema(out_macd, signal_period, 2.0 / (signal_period + 1))
    out_hist = [
        (m - s) if idx >= lookback else 0.0
        for idx, (m, s) in enumerate(zip(out_macd, out_signal))
    ]
    return out_macd, out_signal, out_hist


def ichimoku_cloud(
    values: Iterable[float],
) -> tuple[list[float], list[float], list[float], list[float], list[float]]:
    """Ichimoku lines: (tenkan, kijun, senkou A, senkou B, chikou).

    Each line starts with zeros and then takes the mid-range of the
    preceding 9, 26 or 52 values; chikou is the close 26 periods back.
    """
    data = [float(v) for v in values]
    n = len(data)
    tenkan = [0.0] * min(9, n)
    kijun = [0.0] * min(26, n)
    senkou_a = [0.0] * min(26, n)
    senkou_b = [0.0] * min(52, n)
    chikou = [0.0] * min(26, n)

    for i in range(n):
        if i >= 9:
            low, high = _min_max(data[i - 9 : i])
            tenkan.append((low + high) / 2)
        if i >= 26:
            low, high = _min_max(data[i - 26 : i])
            kijun.append((low + high) / 2)
            senkou_a.append((tenkan[i] + kijun[i]) / 2)
            chikou.append(data[i - 26])
        if i >= 52:
            low, high = _min_max(data[i - 52 : i])
            senkou_b.append((low + high) / 2)
    return tenkan, kijun, senkou_a, senkou_b, chikou


def hv(values: Iterable[float], period: int) -> list[float]:
    """Historical volatility: deviation of log returns, in percent."""
    data = [float(v) for v in values]
    changes = [math.log(b / a) for a, b in pairwise(data)]
    return stddev(changes, period, math.sqrt(1) * 100)