"""Client for the exchange's REST API and its real-time ticker stream."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import re
import time
from collections.abc import Iterator, Mapping
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timedelta, timezone
from typing import Any

import requests
import websocket

logger = logging.getLogger(__name__)

BASE_URL = "https://api.bitflyer.com/v1/"
STREAM_URL = "wss://ws.lightstream.bitflyer.com/json-rpc"
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})\Z"
)
_KINDS: dict[str, type] = {"str": str, "int": int, "float": float}


def _parse_rfc3339(text: str) -> datetime:
    """Parse an RFC 3339 timestamp, fractional seconds allowed."""
    match = _RFC3339.match(text)
    if match is None:
        raise ValueError(f"cannot parse {text!r} as an RFC 3339 time")
    year, month, day, hour, minute, second = (int(match.group(i)) for i in range(1, 7))
    fraction = match.group(7) or ""
    micro = int((fraction + "000000")[:6])
    zone = match.group(8)
    if zone.upper() == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        offset = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
        tz = timezone(sign * offset)
    return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)


def _truncate(when: datetime, duration: timedelta) -> datetime:
    """Round ``when`` down to a multiple of ``duration`` since year 1."""
    if duration <= timedelta(0):
        return when
    if when.tzinfo is None:
        utc = when.replace(tzinfo=timezone.utc)
    else:
        utc = when.astimezone(timezone.utc)
    result = utc - (utc - ZERO_TIME) % duration
    if when.tzinfo is None:
        return result.replace(tzinfo=None)
    return result.astimezone(when.tzinfo)


def _coerce(value: Any, kind: type, name: str) -> Any:
    if value is None:
        return kind()
    if kind is str:
        if not isinstance(value, str):
            raise TypeError(f"field {name!r} must be a string")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"field {name!r} must be a number")
    if kind is int:
        if isinstance(value, float) and not value.is_integer():
            raise TypeError(f"field {name!r} must be an integer")
        return int(value)
    return float(value)


def _from_json(cls: type, data: Any) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise TypeError(f"expected a JSON object for {cls.__name__}")
    return cls(
        **{f.name: _coerce(data.get(f.name), _KINDS[f.type], f.name) for f in fields(cls)}
    )


@dataclass
class Balance:
    """Amount held in one currency."""

    currency_code: str = ""
    amount: float = 0.0
    available: float = 0.0


@dataclass
class Ticker:
    """A snapshot of the market for one product."""

    product_code: str = ""
    timestamp: str = ""
    tick_id: int = 0
    best_bid: float = 0.0
    best_ask: float = 0.0
    best_bid_size: float = 0.0
    best_ask_size: float = 0.0
    total_bid_depth: float = 0.0
    total_ask_depth: float = 0.0
    ltp: float = 0.0
    volume: float = 0.0
    volume_by_product: float = 0.0

    @classmethod
    def from_dict(cls, data: Any) -> Ticker:
        """Build a ticker from decoded JSON; raises TypeError on bad field types."""
        return _from_json(cls, data)

    def mid_price(self) -> float:
        """Midpoint between the best bid and the best ask."""
        return (self.best_bid + self.best_ask) / 2

    def date_time(self) -> datetime:
        """The timestamp as a datetime, or the zero time if it cannot be parsed."""
        try:
            return _parse_rfc3339(self.timestamp)
        except ValueError as exc:
            logger.warning("action=DateTime, err=%s", exc)
            return ZERO_TIME

    def truncate_date_time(self, duration: timedelta) -> datetime:
        """The timestamp rounded down to a multiple of ``duration``."""
        return _truncate(self.date_time(), duration)


@dataclass
class Order:
    """A child order, as sent to and listed by the exchange."""

    id: int = 0
    child_order_acceptance_id: str = ""
    product_code: str = ""
    child_order_type: str = ""
    side: str = ""
    price: float = 0.0
    size: float = 0.0
    minute_to_expire: int = 0
    time_in_force: str = ""
    status: str = ""
    error_message: str = ""
    average_price: float = 0.0
    child_order_state: str = ""
    expire_date: str = ""
    child_order_date: str = ""
    outstanding_size: float = 0.0
    cancel_size: float = 0.0
    executed_size: float = 0.0
    total_commission: float = 0.0
    count: int = 0
    before: int = 0
    after: int = 0

    def to_dict(self) -> dict[str, Any]:
        """All fields under their JSON names."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Order:
        """Build an order from decoded JSON; raises TypeError on bad field types."""
        return _from_json(cls, data)


@dataclass
class SendOrderResponse:
    """The exchange's answer to a new child order."""

    child_order_acceptance_id: str = ""


def parse_ticker_message(message: Any) -> Ticker | None:
    """Extract the ticker from a JSON-RPC channel message, or None if it holds none."""
    if isinstance(message, (str, bytes, bytearray)):
        try:
            message = json.loads(message)
        except ValueError:
            return None
    if not isinstance(message, Mapping) or message.get("method") != "channelMessage":
        return None
    params = message.get("params")
    if not isinstance(params, Mapping) or "message" not in params:
        return None
    try:
        return Ticker.from_dict(params["message"])
    except (TypeError, ValueError):
        return None


class APIClient:
    """Signed access to the private and public REST endpoints."""

    def __init__(
        self,
        key: str,
        secret: str,
        session: requests.Session | None = None,
        base_url: str = BASE_URL,
        stream_url: str = STREAM_URL,
    ) -> None:
        self._key = key
        self._secret = secret
        self._session = session or requests.Session()
        self._base_url = base_url
        self._stream_url = stream_url

    def headers(self, method: str, endpoint: str, body: bytes | str | None = b"") -> dict[str, str]:
        """Authentication headers signing ``method``, ``endpoint`` and ``body``."""
        timestamp = str(int(time.time()))
        if isinstance(body, (bytes, bytearray)):
            body_text = bytes(body).decode("utf-8")
        else:
            body_text = body or ""
        message = timestamp + method + endpoint + body_text
        sign = hmac.new(
            self._secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
        ).hexdigest()
        return {
            "ACCESS-KEY": self._key,
            "ACCESS-TIMESTAMP": timestamp,
            "ACCESS-SIGN": sign,
            "Content-Type": "application/json",
        }

    def _request(
        self, method: str, path: str, query: Mapping[str, str] | None = None, data: bytes = b""
    ) -> bytes:
        endpoint = urljoin(self._base_url, path)
        logger.info("action=doRequest endpoint=%s", endpoint)
        parts = urlsplit(endpoint)
        items = parse_qsl(parts.query, keep_blank_values=True)
        items.extend((query or {}).items())
        items.sort(key=lambda item: item[0])
        raw_query = urlencode(items)
        url = urlunsplit(parts._replace(query=raw_query))
        request_uri = (parts.path or "/") + (f"?{raw_query}" if raw_query else "")
        response = self._session.request(
            method, url, data=data, headers=self.headers(method, request_uri, data)
        )
        return response.content

    def get_balance(self) -> list[Balance]:
        """Balances of every currency in the account."""
        path = "me/getbalance"
        body = self._request("GET", path)
        logger.info("url=%s resp=%s", path, body.decode("utf-8", "replace"))
        payload = json.loads(body)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ValueError("balance response is not a list")
        return [_from_json(Balance, item) for item in payload]

    def get_ticker(self, product_code: str) -> Ticker:
        """The current ticker of ``product_code``."""
        body = self._request("GET", "ticker", {"product_code": product_code})
        return Ticker.from_dict(json.loads(body))

    def send_order(self, order: Order) -> SendOrderResponse:
        """Place ``order`` and return its acceptance id."""
        data = json.dumps(order.to_dict(), separators=(",", ":")).encode("utf-8")
        body = self._request("POST", "me/sendchildorder", {}, data)
        return _from_json(SendOrderResponse, json.loads(body))

    def list_orders(self, query: Mapping[str, str]) -> list[Order]:
        """Child orders matching ``query``."""
        body = self._request("GET", "me/getchildorders", query)
        payload = json.loads(body)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ValueError("order list response is not a list")
        return [Order.from_dict(item) for item in payload]

    def stream_ticker(self, symbol: str) -> Iterator[Ticker]:
        """Yield tickers for ``symbol`` from the real-time stream until it ends."""
        logger.info("connecting to %s", self._stream_url)
        conn = websocket.create_connection(self._stream_url)
        try:
            subscribe = {
                "jsonrpc": "2.0",
                "method": "subscribe",
                "params": {"channel": f"lightning_ticker_{symbol}"},
            }
            conn.send(json.dumps(subscribe))
            while True:
                try:
                    message = json.loads(conn.recv())
                except (websocket.WebSocketException, OSError, ValueError) as exc:
                    logger.warning("read: %s", exc)
                    return
                if not isinstance(message, Mapping):
                    logger.warning("read: message is not an object")
                    return
                ticker = parse_ticker_message(message)
                if ticker is not None:
                    yield ticker
        finally:
            conn.close()


from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit  # noqa: E402