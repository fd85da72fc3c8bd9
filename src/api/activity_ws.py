"""Real-time activity WebSocket client (all-market trade stream)."""
import json
import logging
import threading
from typing import Callable, Dict, List, Optional

import websocket

from ..config import ACTIVITY_WS_URL

logger = logging.getLogger(__name__)


class ActivityWebSocket:
    """
    WebSocket client for the Polymarket real-time data stream.

    Subscribes to the `activity/trades` topic, which carries every trade on
    the exchange. Address filtering is left to the consumer.
    """

    SUBSCRIPTION = {"topic": "activity", "type": "trades"}

    def __init__(self, url: str = ACTIVITY_WS_URL, ping_interval: float = 5.0):
        self.url = url
        self.ping_interval = ping_interval
        self.ws: Optional[websocket.WebSocketApp] = None
        self.handlers: List[Callable[[Dict], None]] = []
        self.error_handlers: List[Callable[[Exception], None]] = []
        self.running = False
        self._thread: Optional[threading.Thread] = None

    def add_handler(self, handler: Callable[[Dict], None]):
        """Add a trade payload handler."""
        self.handlers.append(handler)

    def add_error_handler(self, handler: Callable[[Exception], None]):
        self.error_handlers.append(handler)

    def _on_message(self, ws, message):
        """Dispatch trade payloads to handlers."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            return

        if not isinstance(data, dict):
            return
        if data.get("topic") != "activity" or data.get("type") != "trades":
            return

        payload = data.get("payload") or {}
        for handler in self.handlers:
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Handler error: {e}")

    def _notify_error(self, error: Exception):
        for handler in self.error_handlers:
            try:
                handler(error)
            except Exception as e:
                logger.error(f"Error handler failed: {e}")

    def _on_error(self, ws, error):
        logger.error(f"WebSocket error: {error}")
        self._notify_error(error if isinstance(error, Exception) else Exception(str(error)))

    def _on_close(self, ws, close_status_code, close_msg):
        logger.info(f"WebSocket closed: {close_status_code} - {close_msg}")
        was_running = self.running
        self.running = False
        # disconnect() clears `running` first, so only unexpected closes are reported
        if was_running:
            self._notify_error(
                ConnectionError(f"Activity stream closed: {close_status_code} - {close_msg}")
            )

    def _on_open(self, ws):
        logger.info("Activity WebSocket connected")
        ws.send(json.dumps({"action": "subscribe", "subscriptions": [self.SUBSCRIPTION]}))

    def connect(self):
        """Connect on a background thread."""
        self.ws = websocket.WebSocketApp(
            self.url,
            on_message=self._on_message,
            on_error=self._on_error,
            on_close=self._on_close,
            on_open=self._on_open,
        )
        self.running = True
        self._thread = threading.Thread(
            target=self.ws.run_forever,
            kwargs={"ping_interval": self.ping_interval},
            daemon=True,
        )
        self._thread.start()

    def disconnect(self, timeout: float = 5.0):
        """Close the socket and wait for the reader thread."""
        self.running = False
        if self.ws:
            self.ws.close()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
