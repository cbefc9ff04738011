"""Buy and sell signals, their bookkeeping and their storage."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from coinbot.database import TABLE_SIGNAL_EVENTS, _as_utc, _format_time, _json_time, _parse_time

logger = logging.getLogger(__name__)

BUY = "BUY"
SELL = "SELL"

_COLUMNS = "time, product_code, side, price, size"


@dataclass
class SignalEvent:
    """One buy or sell decision."""

    time: datetime
    product_code: str
    side: str
    price: float
    size: float

    def __post_init__(self) -> None:
        self.time = _as_utc(self.time)

    def save(self, conn: sqlite3.Connection) -> bool:
        """Insert the event; an event already stored at that time counts as saved."""
        try:
            with conn:
                conn.execute(
                    f"INSERT INTO {TABLE_SIGNAL_EVENTS} ({_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                    (_format_time(self.time), self.product_code, self.side, self.price, self.size),
                )
        except sqlite3.IntegrityError as exc:
            if "UNIQUE constraint failed" in str(exc):
                logger.info("%s", exc)
                return True
            return False
        except sqlite3.Error:
            return False
        return True


def _event_to_dict(event: SignalEvent) -> dict[str, Any]:
    return {
        "time": _json_time(event.time),
        "product_code": event.product_code,
        "side": event.side,
        "price": event.price,
        "size": event.size,
    }


@dataclass
class SignalEvents:
    """An ordered run of signals that alternate between buying and selling."""

    signals: list[SignalEvent] = field(default_factory=list)

    def can_buy(self, when: datetime) -> bool:
        """True if nothing is held and the last sale came before ``when``."""
        if not self.signals:
            return True
        last = self.signals[-1]
        return last.side == SELL and last.time < _as_utc(when)

    def can_sell(self, when: datetime) -> bool:
        """True if something is held and it was bought before ``when``."""
        if not self.signals:
            return False
        last = self.signals[-1]
        return last.side == BUY and last.time < _as_utc(when)

    def _add(
        self,
        side: str,
        product_code: str,
        when: datetime,
        price: float,
        size: float,
        conn: sqlite3.Connection | None,
    ) -> None:
        event = SignalEvent(time=when, product_code=product_code, side=side, price=price, size=size)
        if conn is not None:
            event.save(conn)
        self.signals.append(event)

    def buy(
        self,
        product_code: str,
        when: datetime,
        price: float,
        size: float,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        """Record a purchase if allowed; store it too when ``conn`` is given."""
        if not self.can_buy(when):
            return False
        self._add(BUY, product_code, when, price, size, conn)
        return True

    def sell(
        self,
        product_code: str,
        when: datetime,
        price: float,
        size: float,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        """Record a sale if allowed; store it too when ``conn`` is given."""
        if not self.can_sell(when):
            return False
        self._add(SELL, product_code, when, price, size, conn)
        return True

    def profit(self) -> float:
        """Money gained by completed trades; an open position is not counted."""
        total = 0.0
        before_sell = 0.0
        is_holding = False
        for position, event in enumerate(self.signals):
            if position == 0 and event.side == SELL:
                continue
            if event.side == BUY:
                total -= event.price * event.size
                is_holding = True
            if event.side == SELL:
                total += event.price * event.size
                is_holding = False
                before_sell = total
        return before_sell if is_holding else total

    def to_dict(self) -> dict[str, Any]:
        """JSON form: signals and profit, each left out when empty or zero."""
        result: dict[str, Any] = {}
        if self.signals:
            result["signals"] = [_event_to_dict(event) for event in self.signals]
        profit = self.profit()
        if profit:
            result["profit"] = profit
        return result

    def collect_after(self, when: datetime) -> SignalEvents | None:
        """Signals from the first one at or after ``when`` on, or None if none are."""
        moment = _as_utc(when)
        for position, event in enumerate(self.signals):
            if moment > event.time:
                continue
            return SignalEvents(signals=self.signals[position:])
        return None


def _row_to_event(row: tuple[Any, ...]) -> SignalEvent:
    when, product_code, side, price, size = row
    return SignalEvent(
        time=_parse_time(when),
        product_code=product_code or "",
        side=side or "",
        price=float(price or 0.0),
        size=float(size or 0.0),
    )


def signal_events_by_count(conn: sqlite3.Connection, product_code: str, count: int) -> SignalEvents:
    """The latest ``count`` stored signals of ``product_code``, oldest first."""
    rows = conn.execute(
        f"""SELECT * FROM (
            SELECT {_COLUMNS} FROM {TABLE_SIGNAL_EVENTS}
            WHERE product_code = ? ORDER BY time DESC LIMIT ?)
            ORDER BY time ASC""",
        (product_code, count),
    ).fetchall()
    return SignalEvents(signals=[_row_to_event(row) for row in rows])


def signal_events_after(conn: sqlite3.Connection, when: datetime) -> SignalEvents:
    """Stored signals at or after ``when``, oldest first."""
    rows = conn.execute(
        f"""SELECT * FROM (
            SELECT {_COLUMNS} FROM {TABLE_SIGNAL_EVENTS}
            WHERE DATETIME(time) >= DATETIME(?)
            ORDER BY time DESC)
            ORDER BY time ASC""",
        (_format_time(when),),
    ).fetchall()
    return SignalEvents(signals=[_row_to_event(row) for row in rows])