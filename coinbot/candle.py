"""Price candles: open, close, high, low and volume over a fixed interval."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from coinbot.bitflyer import Ticker
from coinbot.database import (
    _as_utc,
    _format_time,
    _json_time,
    _parse_time,
    candle_table_name,
)

logger = logging.getLogger(__name__)

_COLUMNS = "time, open, close, high, low, volume"


def _nanoseconds(duration: timedelta) -> int:
    return (duration // timedelta(microseconds=1)) * 1000


@dataclass
class Candle:
    """Prices of one product over one interval starting at ``time``."""

    product_code: str
    duration: timedelta
    time: datetime
    open: float
    close: float
    high: float
    low: float
    volume: float

    def __post_init__(self) -> None:
        self.time = _as_utc(self.time)

    def table_name(self) -> str:
        """Table that holds candles of this product and duration."""
        return candle_table_name(self.product_code, self.duration)

    def create(self, conn: sqlite3.Connection) -> None:
        """Insert the candle; raises sqlite3.Error if it cannot be stored."""
        with conn:
            conn.execute(
                f"INSERT INTO {self.table_name()} ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    _format_time(self.time),
                    self.open,
                    self.close,
                    self.high,
                    self.low,
                    self.volume,
                ),
            )

    def save(self, conn: sqlite3.Connection) -> None:
        """Update the stored candle at this time; raises sqlite3.Error on failure."""
        with conn:
            conn.execute(
                f"UPDATE {self.table_name()} SET open = ?, close = ?, high = ?, "
                "low = ?, volume = ? WHERE time = ?",
                (
                    self.open,
                    self.close,
                    self.high,
                    self.low,
                    self.volume,
                    _format_time(self.time),
                ),
            )

    def to_dict(self) -> dict[str, Any]:
        """JSON form; the duration is given in nanoseconds."""
        return {
            "product_code": self.product_code,
            "duration": _nanoseconds(self.duration),
            "time": _json_time(self.time),
            "open": self.open,
            "close": self.close,
            "high": self.high,
            "low": self.low,
            "volume": self.volume,
        }


def _row_to_candle(product_code: str, duration: timedelta, row: Sequence[Any]) -> Candle:
    when, open_, close, high, low, volume = row
    return Candle(
        product_code=product_code,
        duration=duration,
        time=_parse_time(when),
        open=float(open_ or 0.0),
        close=float(close or 0.0),
        high=float(high or 0.0),
        low=float(low or 0.0),
        volume=float(volume or 0.0),
    )


def get_candle(
    conn: sqlite3.Connection, product_code: str, duration: timedelta, when: datetime
) -> Candle | None:
    """The stored candle starting at ``when``, or None if there is none."""
    table = candle_table_name(product_code, duration)
    try:
        row = conn.execute(
            f"SELECT {_COLUMNS} FROM {table} WHERE time = ?", (_format_time(when),)
        ).fetchone()
    except sqlite3.Error:
        return None
    if row is None:
        return None
    return _row_to_candle(product_code, duration, row)


def create_candle_with_duration(
    conn: sqlite3.Connection, ticker: Ticker, product_code: str, duration: timedelta
) -> bool:
    """Fold ``ticker`` into its candle; True if a new candle was started."""
    start = ticker.truncate_date_time(duration)
    current = get_candle(conn, product_code, duration, start)
    price = ticker.mid_price()
    if current is None:
        candle = Candle(product_code, duration, start, price, price, price, price, ticker.volume)
        try:
            candle.create(conn)
        except sqlite3.Error as exc:
            logger.warning("action=CreateCandle err=%s", exc)
        return True

    if current.high <= price:
        current.high = price
    elif current.low >= price:
        current.low = price
    current.volume += ticker.volume
    current.close = price
    try:
        current.save(conn)
    except sqlite3.Error as exc:
        logger.warning("action=SaveCandle err=%s", exc)
    return False