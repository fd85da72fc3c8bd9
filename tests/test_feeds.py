"""
Tests for trade feeds.

Tests cover:
- Payload normalization (Data API rows, WebSocket payloads)
- Rejection of incomplete or out-of-range payloads
- Data API polling cursor (no history replay, no repeats)
- Activity WebSocket wiring and message filtering
"""

import json
import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from src.api.activity_ws import ActivityWebSocket
from src.copytrade.feeds import ActivityWebSocketFeed, DataApiTradeFeed, Subscription, trade_from_payload
from src.copytrade.models import Side

TARGET = "0x" + "ab" * 20


def data_api_row(**overrides):
    row = {
        "proxyWallet": TARGET.upper().replace("0X", "0x"),
        "timestamp": 1767729600,
        "conditionId": "0xcond",
        "type": "TRADE",
        "size": 100,
        "usdcSize": 65,
        "transactionHash": "0xtx1",
        "price": 0.65,
        "asset": "111",
        "side": "BUY",
        "outcome": "Yes",
        "slug": "will-it-rain",
        "name": "rainmaker",
    }
    row.update(overrides)
    return row


class TestTradeFromPayload:
    """Tests for payload normalization."""

    def test_data_api_row(self):
        trade = trade_from_payload(data_api_row())

        assert trade.trader_address == TARGET
        assert trade.side is Side.BUY
        assert trade.outcome == "Yes"
        assert trade.market_slug == "will-it-rain"
        assert trade.price == 0.65
        assert trade.size == 100.0
        assert trade.timestamp == 1767729600000
        assert trade.tx_hash == "0xtx1"
        assert trade.condition_id == "0xcond"
        assert trade.asset_id == "111"
        assert trade.trader_name == "rainmaker"

    def test_snake_case_and_nested_trader(self):
        payload = {
            "trader": {"address": TARGET, "name": "alice"},
            "tx_hash": "0xtx2",
            "side": "sell",
            "price": "0.40",
            "shares": "12.5",
            "market_slug": "btc-up",
            "timestamp": 1767729600123,
        }

        trade = trade_from_payload(payload)

        assert trade.trader_address == TARGET
        assert trade.side is Side.SELL
        assert trade.size == 12.5
        assert trade.market_slug == "btc-up"
        assert trade.timestamp == 1767729600123
        assert trade.trader_name == "alice"

    @pytest.mark.parametrize("missing", ["proxyWallet", "transactionHash", "side", "price", "size"])
    def test_missing_required_field(self, missing):
        row = data_api_row()
        del row[missing]

        assert trade_from_payload(row) is None

    @pytest.mark.parametrize("overrides", [
        {"side": "HOLD"},
        {"price": "abc"},
        {"price": 1.0},
        {"price": 0},
        {"size": 0},
    ])
    def test_invalid_values(self, overrides):
        assert trade_from_payload(data_api_row(**overrides)) is None


class TestSubscription:

    def test_unsubscribe_idempotent(self):
        stop = MagicMock()
        subscription = Subscription(stop)

        subscription.unsubscribe()
        subscription.unsubscribe()

        stop.assert_called_once()
        assert subscription.active is False


class TestDataApiTradeFeed:
    """Tests for the polling feed."""

    def test_delivers_only_new_trades_once(self):
        now = int(time.time())
        data_api = MagicMock()
        data_api.get_trades = MagicMock(return_value=[
            data_api_row(transactionHash="0xnew", timestamp=now + 60),
            data_api_row(transactionHash="0xold", timestamp=now - 60),
        ])
        received = []
        delivered = threading.Event()

        def on_trade(trade):
            received.append(trade)
            delivered.set()

        feed = DataApiTradeFeed(data_api, poll_interval=0.01)
        subscription = feed.subscribe(TARGET, on_trade, MagicMock())
        try:
            assert delivered.wait(timeout=2.0)
            # let a few more polls see the same rows
            time.sleep(0.1)
        finally:
            subscription.unsubscribe()

        assert [t.tx_hash for t in received] == ["0xnew"]
        data_api.get_trades.assert_called_with(TARGET, limit=50)

    def test_trade_in_subscription_second_delivered(self):
        data_api = MagicMock()
        data_api.get_trades = MagicMock(return_value=[
            data_api_row(transactionHash="0xsame", timestamp=1767729600),
            data_api_row(transactionHash="0xbefore", timestamp=1767729599),
        ])
        received = []
        delivered = threading.Event()

        def on_trade(trade):
            received.append(trade.tx_hash)
            delivered.set()

        with patch("src.copytrade.feeds.time") as mock_time:
            mock_time.time.return_value = 1767729600.7
            subscription = DataApiTradeFeed(data_api, poll_interval=0.01).subscribe(
                TARGET, on_trade, MagicMock()
            )
            try:
                assert delivered.wait(timeout=2.0)
                time.sleep(0.05)
            finally:
                subscription.unsubscribe()

        assert received == ["0xsame"]

    def test_same_timestamp_different_hash_delivered(self):
        later = int(time.time()) + 60
        data_api = MagicMock()
        data_api.get_trades = MagicMock(return_value=[
            data_api_row(transactionHash="0xa", timestamp=later),
            data_api_row(transactionHash="0xb", timestamp=later),
        ])
        received = []
        done = threading.Event()

        def on_trade(trade):
            received.append(trade.tx_hash)
            if len(received) >= 2:
                done.set()

        subscription = DataApiTradeFeed(data_api, poll_interval=0.01).subscribe(TARGET, on_trade, MagicMock())
        try:
            assert done.wait(timeout=2.0)
            time.sleep(0.05)
        finally:
            subscription.unsubscribe()

        assert sorted(received) == ["0xa", "0xb"]

    def test_poll_error_reported_and_polling_continues(self):
        later = int(time.time()) + 60
        calls = []

        def get_trades(address, limit):
            calls.append(address)
            if len(calls) == 1:
                raise ConnectionError("data api down")
            return [data_api_row(transactionHash="0xnew", timestamp=later)]

        data_api = MagicMock()
        data_api.get_trades = MagicMock(side_effect=get_trades)
        errors = []
        delivered = threading.Event()

        subscription = DataApiTradeFeed(data_api, poll_interval=0.01).subscribe(
            TARGET, lambda trade: delivered.set(), errors.append
        )
        try:
            assert delivered.wait(timeout=2.0)
        finally:
            subscription.unsubscribe()

        assert len(errors) == 1
        assert "data api down" in str(errors[0])


class TestActivityWebSocketFeed:
    """Tests for the WebSocket feed wiring."""

    def test_subscribe_connects_and_forwards(self):
        socket = MagicMock()
        feed = ActivityWebSocketFeed(lambda: socket)
        on_trade = MagicMock()
        on_error = MagicMock()

        subscription = feed.subscribe(TARGET, on_trade, on_error)

        socket.connect.assert_called_once()
        socket.add_error_handler.assert_called_once_with(on_error)
        handler = socket.add_handler.call_args[0][0]
        handler(data_api_row())
        handler({"side": "BUY"})
        assert on_trade.call_count == 1

        subscription.unsubscribe()
        socket.disconnect.assert_called_once()


class TestActivityWebSocket:
    """Tests for message dispatch."""

    def test_trade_messages_dispatched(self):
        socket = ActivityWebSocket(url="wss://example.invalid")
        handler = MagicMock()
        socket.add_handler(handler)

        socket._on_message(None, json.dumps({"topic": "activity", "type": "trades", "payload": {"side": "BUY"}}))
        socket._on_message(None, json.dumps({"topic": "comments", "type": "created", "payload": {}}))
        socket._on_message(None, "not json")
        socket._on_message(None, "[]")

        handler.assert_called_once_with({"side": "BUY"})

    def test_handler_error_isolated(self):
        socket = ActivityWebSocket(url="wss://example.invalid")
        failing = MagicMock(side_effect=RuntimeError("boom"))
        ok = MagicMock()
        socket.add_handler(failing)
        socket.add_handler(ok)

        socket._on_message(None, json.dumps({"topic": "activity", "type": "trades", "payload": {"a": 1}}))

        ok.assert_called_once_with({"a": 1})

    def test_subscribes_on_open(self):
        socket = ActivityWebSocket(url="wss://example.invalid")
        ws = MagicMock()

        socket._on_open(ws)

        sent = json.loads(ws.send.call_args[0][0])
        assert sent == {"action": "subscribe", "subscriptions": [{"topic": "activity", "type": "trades"}]}

    def test_error_handlers_notified(self):
        socket = ActivityWebSocket(url="wss://example.invalid")
        on_error = MagicMock()
        socket.add_error_handler(on_error)

        socket._on_error(None, "connection reset")

        error = on_error.call_args[0][0]
        assert isinstance(error, Exception)
        assert "connection reset" in str(error)

    def test_server_close_reported(self):
        socket = ActivityWebSocket(url="wss://example.invalid")
        on_error = MagicMock()
        socket.add_error_handler(on_error)
        socket.running = True

        socket._on_close(None, 1006, "abnormal closure")

        assert socket.running is False
        error = on_error.call_args[0][0]
        assert isinstance(error, ConnectionError)
        assert "1006" in str(error)
        assert "abnormal closure" in str(error)

    def test_disconnect_close_not_reported(self):
        socket = ActivityWebSocket(url="wss://example.invalid")
        on_error = MagicMock()
        socket.add_error_handler(on_error)
        socket.running = True
        socket.ws = MagicMock()
        socket.ws.close.side_effect = lambda: socket._on_close(None, 1000, "normal")

        socket.disconnect()

        on_error.assert_not_called()
        socket.ws.close.assert_called_once()
