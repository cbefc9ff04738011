import json
from datetime import datetime, timedelta, timezone
from unittest import mock
from urllib.parse import parse_qs, urlsplit

import pytest
import responses
import websocket

from coinbot.bitflyer import (
    APIClient,
    Order,
    SendOrderResponse,
    Ticker,
    parse_ticker_message,
)

TICKER_JSON = {
    "best_ask": 6206.99,
    "best_ask_size": 1.24,
    "best_bid": 6164,
    "best_bid_size": 0.3,
    "ltp": 6184.1,
    "product_code": "BTC_USD",
    "tick_id": 33839,
    "timestamp": "2018-10-12T03:01:53.8597609Z",
    "total_ask_depth": 228.3295673,
    "total_bid_depth": 15.3916763,
    "volume": 37.29123857,
    "volume_by_product": 37.29123857,
}


def make_client():
    return APIClient("placeholder", "secret")


def test_ticker_from_dict_reads_fields():
    ticker = Ticker.from_dict(TICKER_JSON)
    assert ticker.product_code == "BTC_USD"
    assert ticker.tick_id == 33839
    assert ticker.best_bid == 6164.0
    assert ticker.volume == 37.29123857


def test_ticker_from_dict_rejects_wrong_type():
    with pytest.raises(TypeError):
        Ticker.from_dict({"best_bid": "cheap"})


def test_mid_price_is_halfway():
    ticker = Ticker.from_dict(TICKER_JSON)
    mid = ticker.mid_price()
    assert ticker.best_bid < mid < ticker.best_ask
    assert mid - ticker.best_bid == pytest.approx(ticker.best_ask - mid)


def test_date_time_parses_fractional_timestamp():
    ticker = Ticker.from_dict(TICKER_JSON)
    assert ticker.date_time() == datetime(2018, 10, 12, 3, 1, 53, 859760, tzinfo=timezone.utc)


def test_date_time_of_garbage_is_zero_time():
    ticker = Ticker(timestamp="yesterday")
    assert ticker.date_time() == datetime(1, 1, 1, tzinfo=timezone.utc)


def test_truncate_date_time_to_hour():
    ticker = Ticker.from_dict(TICKER_JSON)
    assert ticker.truncate_date_time(timedelta(hours=1)) == datetime(
        2018, 10, 12, 3, tzinfo=timezone.utc
    )


@pytest.mark.parametrize(
    "duration", [timedelta(seconds=1), timedelta(minutes=1), timedelta(hours=1)]
)
def test_truncate_date_time_invariants(duration):
    ticker = Ticker.from_dict(TICKER_JSON)
    original = ticker.date_time()
    truncated = ticker.truncate_date_time(duration)
    assert truncated <= original
    assert original - truncated < duration
    assert ticker.truncate_date_time(duration) == _truncate_again(truncated, duration)


def _truncate_again(when, duration):
    return Ticker(timestamp=when.strftime("%Y-%m-%dT%H:%M:%SZ")).truncate_date_time(duration)


def test_order_round_trip():
    order = Order(
        product_code="BTC_USD",
        child_order_type="LIMIT",
        side="BUY",
        price=7000.0,
        size=0.01,
        minute_to_expire=1,
        time_in_force="GTC",
    )
    assert Order.from_dict(order.to_dict()) == order
    assert order.to_dict()["minute_to_expire"] == 1


def test_headers_are_deterministic_and_keyed():
    client = make_client()
    with mock.patch("time.time", return_value=1700000000.0):
        first = client.headers("GET", "/v1/ticker", b"")
        second = client.headers("GET", "/v1/ticker", b"")
        other = APIClient("placeholder", "token").headers("GET", "/v1/ticker", b"")
        moved = client.headers("POST", "/v1/ticker", b"")
    assert first == second
    assert first["ACCESS-KEY"] == "placeholder"
    assert first["ACCESS-TIMESTAMP"] == "1700000000"
    assert first["Content-Type"] == "application/json"
    assert len(first["ACCESS-SIGN"]) == 64
    assert first["ACCESS-SIGN"] != other["ACCESS-SIGN"]
    assert first["ACCESS-SIGN"] != moved["ACCESS-SIGN"]


def test_get_ticker_sends_signed_request():
    client = make_client()
    with responses.RequestsMock() as rsps, mock.patch("time.time", return_value=1700000000.0):
        rsps.add(responses.GET, "https://api.bitflyer.com/v1/ticker", json=TICKER_JSON)
        ticker = client.get_ticker("BTC_USD")
        expected = client.headers("GET", "/v1/ticker?product_code=BTC_USD", b"")
        request = rsps.calls[0].request
    assert ticker == Ticker.from_dict(TICKER_JSON)
    assert parse_qs(urlsplit(request.url).query) == {"product_code": ["BTC_USD"]}
    assert request.headers["ACCESS-SIGN"] == expected["ACCESS-SIGN"]


def test_get_balance_parses_list():
    client = make_client()
    payload = [
        {"currency_code": "JPY", "amount": 1024078, "available": 508000},
        {"currency_code": "BTC", "amount": 10.24, "available": 4.12},
    ]
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://api.bitflyer.com/v1/me/getbalance", json=payload)
        balances = client.get_balance()
    assert [b.currency_code for b in balances] == ["JPY", "BTC"]
    assert balances[1].available == 4.12


def test_get_balance_rejects_error_object():
    client = make_client()
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            "https://api.bitflyer.com/v1/me/getbalance",
            json={"status": -500, "error_message": "Invalid"},
        )
        with pytest.raises(ValueError):
            client.get_balance()


def test_send_order_posts_order_json():
    client = make_client()
    order = Order(product_code="BTC_USD", child_order_type="LIMIT", side="BUY", price=7000.0, size=0.01)
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            "https://api.bitflyer.com/v1/me/sendchildorder",
            json={"child_order_acceptance_id": "JRF20181012-144016-140584"},
        )
        result = client.send_order(order)
        body = json.loads(rsps.calls[0].request.body)
    assert result == SendOrderResponse("JRF20181012-144016-140584")
    assert body == order.to_dict()


def test_list_orders_sorts_query_and_parses():
    client = make_client()
    query = {"product_code": "BTC_USD", "child_order_acceptance_id": "JRF20181012-144016-140584"}
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            "https://api.bitflyer.com/v1/me/getchildorders",
            json=[{"id": 7, "product_code": "BTC_USD", "side": "SELL"}],
        )
        orders = client.list_orders(query)
        raw_query = urlsplit(rsps.calls[0].request.url).query
    assert orders == [Order(id=7, product_code="BTC_USD", side="SELL")]
    assert raw_query.startswith("child_order_acceptance_id=")
    assert parse_qs(raw_query) == {k: [v] for k, v in query.items()}


def test_parse_ticker_message_extracts_ticker():
    message = {"jsonrpc": "2.0", "method": "channelMessage",
               "params": {"channel": "lightning_ticker_BTC_JPY", "message": TICKER_JSON}}
    assert parse_ticker_message(message) == Ticker.from_dict(TICKER_JSON)
    assert parse_ticker_message(json.dumps(message)) == Ticker.from_dict(TICKER_JSON)


@pytest.mark.parametrize(
    "message",
    [
        {"jsonrpc": "2.0", "method": "subscribe", "params": {"message": TICKER_JSON}},
        {"jsonrpc": "2.0", "method": "channelMessage", "params": ["x"]},
        {"jsonrpc": "2.0", "method": "channelMessage", "params": {"message": [1, 2]}},
        "not json",
    ],
)
def test_parse_ticker_message_ignores_other_messages(message):
    assert parse_ticker_message(message) is None


class FakeSocket:
    def __init__(self, messages):
        self.sent = []
        self.closed = False
        self._messages = list(messages)

    def send(self, data):
        self.sent.append(data)

    def recv(self):
        if not self._messages:
            raise websocket.WebSocketConnectionClosedException("closed")
        return self._messages.pop(0)

    def close(self):
        self.closed = True


def test_stream_ticker_subscribes_and_yields():
    channel_message = json.dumps(
        {"jsonrpc": "2.0", "method": "channelMessage",
         "params": {"channel": "lightning_ticker_BTC_JPY", "message": TICKER_JSON}}
    )
    fake = FakeSocket([json.dumps({"jsonrpc": "2.0", "result": True}), channel_message])
    with mock.patch("websocket.create_connection", return_value=fake):
        tickers = list(make_client().stream_ticker("BTC_JPY"))
    assert tickers == [Ticker.from_dict(TICKER_JSON)]
    assert json.loads(fake.sent[0]) == {
        "jsonrpc": "2.0",
        "method": "subscribe",
        "params": {"channel": "lightning_ticker_BTC_JPY"},
    }
    assert fake.closed