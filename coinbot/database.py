"""SQLite storage for signal events and candles."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from os import PathLike
from typing import Any

from coinbot.bitflyer import _parse_rfc3339

TABLE_SIGNAL_EVENTS = "signal_events"


def _with_fraction(whole: int, fraction: int, digits: int) -> str:
    text = str(whole)
    if fraction:
        text += "." + f"{fraction:0{digits}d}".rstrip("0")
    return text


def format_duration(duration: timedelta) -> str:
    """Render a duration as hours, minutes and seconds, e.g. ``1m0s``."""
    total = duration // timedelta(microseconds=1)
    sign = "-" if total < 0 else ""
    micros = abs(total)
    if micros == 0:
        return "0s"
    if micros < 1000:
        return f"{sign}{micros}\u00b5s"
    if micros < 1_000_000:
        return sign + _with_fraction(micros // 1000, micros % 1000, 3) + "ms"
    seconds, fraction = divmod(micros, 1_000_000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    text = _with_fraction(seconds, fraction, 6) + "s"
    if hours:
        text = f"{hours}h{minutes}m{text}"
    elif minutes:
        text = f"{minutes}m{text}"
    return sign + text


def candle_table_name(product_code: str, duration: timedelta) -> str:
    """Name of the table holding ``product_code`` candles of ``duration``."""
    return f"{product_code}_{format_duration(duration)}"


def _as_utc(when: datetime) -> datetime:
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def _clock(t: datetime) -> str:
    return (
        f"{t.year:04d}-{t.month:02d}-{t.day:02d}"
        f"T{t.hour:02d}:{t.minute:02d}:{t.second:02d}"
    )


def _format_time(when: datetime) -> str:
    """Whole-second RFC 3339 text in UTC, as stored in the database."""
    return _clock(_as_utc(when)) + "Z"


def _json_time(when: datetime) -> str:
    """RFC 3339 text with trailing zeros of the fraction dropped."""
    t = when if when.tzinfo is not None else when.replace(tzinfo=timezone.utc)
    text = _clock(t)
    if t.microsecond:
        text += "." + f"{t.microsecond:06d}".rstrip("0")
    offset = t.utcoffset() or timedelta(0)
    if not offset:
        return text + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(offset) // timedelta(minutes=1)
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(value: Any) -> datetime:
    """Read a stored time back as an aware UTC datetime."""
    if isinstance(value, datetime):
        return _as_utc(value)
    text = str(value)
    try:
        return _parse_rfc3339(text).astimezone(timezone.utc)
    except ValueError:
        return _as_utc(datetime.fromisoformat(text))


def connect(
    db_name: str | PathLike[str],
    product_code: str,
    durations: Mapping[str, timedelta] | Iterable[timedelta],
) -> sqlite3.Connection:
    """Open the database and create the signal and candle tables if missing."""
    conn = sqlite3.connect(db_name, check_same_thread=False)
    values = durations.values() if isinstance(durations, Mapping) else durations
    with conn:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {TABLE_SIGNAL_EVENTS} (
                time DATETIME PRIMARY KEY NOT NULL,
                product_code STRING,
                side STRING,
                price FLOAT,
                size FLOAT)"""
        )
        for duration in values:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {candle_table_name(product_code, duration)} (
                    time DATETIME PRIMARY KEY NOT NULL,
                    open FLOAT,
                    close FLOAT,
                    high FLOAT,
                    low FLOAT,
                    volume FLOAT)"""
            )
    return conn