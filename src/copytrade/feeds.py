"""
Trade feeds.

Every feed delivers TradeObservation objects built by `trade_from_payload`,
so the session never sees raw feed shapes. Feeds run on their own threads;
callbacks are invoked from those threads.
"""
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from ..config import FEED_POLL_INTERVAL
from .errors import ConfigError
from .models import Side, TradeObservation

logger = logging.getLogger(__name__)

TradeCallback = Callable[[TradeObservation], None]
ErrorCallback = Callable[[Exception], None]


def _first(payload: Dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return default


def _to_millis(timestamp: Any) -> int:
    try:
        ts = int(float(timestamp))
    except (TypeError, ValueError):
        return int(time.time() * 1000)
    return ts * 1000 if ts < 1e12 else ts


def trade_from_payload(payload: Dict) -> Optional[TradeObservation]:
    """
    Build a TradeObservation from a Data API row or a WebSocket payload.

    Handles camelCase and snake_case variants and a nested `trader` object.
    Returns None for payloads missing side, price, size or an event id.
    """
    trader = payload.get("trader") if isinstance(payload.get("trader"), dict) else {}

    address = _first(payload, "proxyWallet", "traderAddress", "trader_address", "user") or trader.get("address")
    tx_hash = _first(payload, "transactionHash", "txHash", "tx_hash", "id")
    raw_side = _first(payload, "side")
    raw_price = _first(payload, "price")
    raw_size = _first(payload, "size", "shares")

    if not address or not tx_hash or raw_side is None or raw_price is None or raw_size is None:
        return None

    try:
        side = Side.parse(raw_side)
        price = float(raw_price)
        size = float(raw_size)
    except (ConfigError, TypeError, ValueError):
        return None

    if not (0 < price < 1) or size <= 0:
        return None

    return TradeObservation(
        trader_address=str(address).lower(),
        side=side,
        outcome=str(_first(payload, "outcome", default="")),
        market_slug=str(_first(payload, "slug", "marketSlug", "market_slug", default="")),
        price=price,
        size=size,
        timestamp=_to_millis(_first(payload, "timestamp", "matchTime", "match_time")),
        tx_hash=str(tx_hash),
        condition_id=str(_first(payload, "conditionId", "condition_id", "market", default="")),
        asset_id=str(_first(payload, "asset", "asset_id", "assetId", default="")),
        trader_name=_first(payload, "name", "pseudonym", "traderName") or trader.get("name"),
    )


class Subscription:
    """Handle returned by a feed; `unsubscribe()` stops delivery."""

    def __init__(self, stop: Callable[[], None]):
        self._stop = stop
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._stop()


class TradeFeed:
    """Base class for trade feeds."""

    def subscribe(self, address: str, on_trade: TradeCallback, on_error: ErrorCallback) -> Subscription:
        raise NotImplementedError


class DataApiTradeFeed(TradeFeed):
    """
    Polls the Data API for a single wallet's trades.

    Rows older than the subscription are never delivered; each poll only
    forwards rows newer than the last one seen.
    """

    def __init__(self, data_api, poll_interval: float = FEED_POLL_INTERVAL, limit: int = 50):
        self.data_api = data_api
        self.poll_interval = poll_interval
        self.limit = limit

    def subscribe(self, address: str, on_trade: TradeCallback, on_error: ErrorCallback) -> Subscription:
        stop_event = threading.Event()
        # Data API timestamps are whole seconds
        cursor = {"ts": int(time.time()) * 1000, "hashes": set()}

        def poll_once():
            rows = self.data_api.get_trades(address, limit=self.limit)
            trades = [t for t in (trade_from_payload(r) for r in rows) if t is not None]
            trades.sort(key=lambda t: t.timestamp)
            for trade in trades:
                if trade.timestamp < cursor["ts"]:
                    continue
                if trade.timestamp == cursor["ts"] and trade.tx_hash in cursor["hashes"]:
                    continue
                if trade.timestamp > cursor["ts"]:
                    cursor["ts"] = trade.timestamp
                    cursor["hashes"] = set()
                cursor["hashes"].add(trade.tx_hash)
                if stop_event.is_set():
                    return
                on_trade(trade)

        def run():
            logger.info(f"Starting Data API polling for {address}...")
            while not stop_event.is_set():
                try:
                    poll_once()
                except Exception as e:
                    logger.error(f"Polling error: {e}")
                    on_error(e)
                stop_event.wait(self.poll_interval)

        thread = threading.Thread(target=run, name=f"poll-{address[:10]}", daemon=True)
        thread.start()

        def stop():
            stop_event.set()
            if thread is not threading.current_thread():
                thread.join(timeout=self.poll_interval + 1)

        return Subscription(stop)


class ActivityWebSocketFeed(TradeFeed):
    """
    Streams all exchange trades over the activity WebSocket.

    The stream has no address filter, so the session filters by address.
    """

    def __init__(self, socket_factory: Callable[[], Any]):
        self.socket_factory = socket_factory

    def subscribe(self, address: str, on_trade: TradeCallback, on_error: ErrorCallback) -> Subscription:
        socket = self.socket_factory()

        def handle(payload: Dict):
            trade = trade_from_payload(payload)
            if trade is not None:
                on_trade(trade)

        socket.add_handler(handle)
        socket.add_error_handler(on_error)
        socket.connect()
        logger.info("Listening for trades on the activity stream")
        return Subscription(socket.disconnect)
