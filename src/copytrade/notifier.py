"""
Trade notifications.

Builds Discord embeds for copied trades and plain-text notices for skips,
limit stops and feed errors. Delivery goes through a Discord webhook; any
delivery failure is logged and swallowed so it never reaches the trade
pipeline.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

import requests

logger = logging.getLogger(__name__)

COLOR_DRY_RUN = 0x95A5A6
COLOR_BUY = 0x2ECC71
COLOR_SELL = 0xE74C3C

MARKET_URL = "https://polymarket.com/event"
PROFILE_URL = "https://polymarket.com/@"
POLYGONSCAN_TX_URL = "https://polygonscan.com/tx/"


@dataclass
class TradeMessage:
    """Structured trade-result notification."""

    trader_address: str
    side: str
    outcome: str
    price: float
    leader_notional: float
    copy_usdc: float
    success: bool
    status_text: str = ""
    order_id: Optional[str] = None
    tx_hash: Optional[str] = None
    trader_name: Optional[str] = None
    market_name: str = ""
    market_slug: str = ""
    event_slug: Optional[str] = None
    dry_run: bool = False
    timestamp: int = 0  # ms


def normalize_timestamp(timestamp: int) -> int:
    """Timestamps below 1e12 are in seconds; return milliseconds."""
    return timestamp * 1000 if timestamp < 1e12 else timestamp


def _short(value: str, head: int = 10, tail: int = 8) -> str:
    if len(value) <= head + tail:
        return value
    return f"{value[:head]}...{value[-tail:]}"


def market_url(market_slug: str, event_slug: Optional[str] = None) -> Optional[str]:
    if not market_slug:
        return None
    if event_slug and event_slug != market_slug:
        return f"{MARKET_URL}/{event_slug}/{market_slug}"
    return f"{MARKET_URL}/{market_slug}"


def format_trade_embed(message: TradeMessage) -> Dict:
    """Format a copy trade event as a Discord embed dict."""
    if message.dry_run:
        color = COLOR_DRY_RUN
    else:
        color = COLOR_BUY if message.side == "BUY" else COLOR_SELL

    display_name = message.market_name or message.market_slug or "Unknown Market"
    title = f"{'[DRY RUN] ' if message.dry_run else ''}{display_name}"

    if message.trader_name:
        trader = f"[{message.trader_name}]({PROFILE_URL}{message.trader_name})"
    else:
        trader = f"`{_short(message.trader_address)}`"

    if message.success:
        status = f"Success\nOrder: `{message.order_id[:16]}...`" if message.order_id else "Success"
    else:
        status = message.status_text or "Failed"

    embed = {
        "title": title,
        "color": color,
        "fields": [
            {"name": "👤 Trader", "value": trader, "inline": True},
            {"name": "📊 Action", "value": f"**{message.side}** {message.outcome or 'N/A'}", "inline": True},
            {
                "name": "💰 Leader Bet",
                "value": f"${message.leader_notional:.2f}\n@ {message.price:.4f}",
                "inline": True,
            },
            {"name": "💵 Copied Amount", "value": f"${message.copy_usdc:.2f}", "inline": True},
            {"name": "✅ Status" if message.success else "❌ Status", "value": status, "inline": True},
        ],
    }

    url = market_url(message.market_slug, message.event_slug)
    if url:
        embed["url"] = url

    if message.timestamp:
        ts = normalize_timestamp(message.timestamp) / 1000
        embed["timestamp"] = datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()

    if message.dry_run:
        embed["footer"] = {"text": "🧪 Dry Run Mode - No real trades executed"}
    elif message.tx_hash:
        embed["fields"].append({
            "name": "🔗 Transaction",
            "value": f"[`{_short(message.tx_hash)}`]({POLYGONSCAN_TX_URL}{message.tx_hash})",
            "inline": False,
        })

    return embed


def format_max_odds_notice(outcome: str, price: float, max_odds: float, target_address: str) -> str:
    return (
        f"⏭️ **Trade Skipped (Max Odds Exceeded)**\n"
        f"BUY {outcome} @ ${price:.2f} > max ${max_odds:.2f}\n"
        f"Target: `{target_address[:8]}...`"
    )


def format_market_cap_notice(market_name: str, current: float, planned: float, cap: float) -> str:
    return (
        f"⏭️ **Trade Skipped (Market Cap Reached)**\n"
        f"Market: {market_name}\n"
        f"Current spent: ${current:.2f}\n"
        f"Trade amount: ${planned:.2f}\n"
        f"Market cap: ${cap}"
    )


def format_total_limit_notice(cumulative: float, limit: float) -> str:
    return (
        f"🛑 **Total Limit Reached!**\n\n"
        f"Session stopped automatically.\n"
        f"Total spent: ${cumulative:.2f}\n"
        f"Limit: ${limit}\n\n"
        f"Start a new session to continue."
    )


def format_error_notice(error: str) -> str:
    return f"⚠️ **Copy Trading Error**: {error}"


class Notifier:
    """Notification sink. Implementations must never raise."""

    def send_trade(self, channel_id: str, message: TradeMessage) -> bool:
        raise NotImplementedError

    def send_text(self, channel_id: str, content: str) -> bool:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Writes notifications to the log only."""

    def send_trade(self, channel_id: str, message: TradeMessage) -> bool:
        embed = format_trade_embed(message)
        fields = ", ".join(f"{f['name']}={f['value']!r}" for f in embed["fields"])
        logger.info(f"[{channel_id}] {embed['title']}: {fields}")
        return True

    def send_text(self, channel_id: str, content: str) -> bool:
        logger.info(f"[{channel_id}] {content}")
        return True


class DiscordWebhookNotifier(Notifier):
    """
    Posts notifications to Discord webhooks.

    Args:
        webhooks: Mapping of channel id -> webhook URL
        default_url: Webhook used for channels not in the mapping
        timeout: HTTP timeout in seconds
    """

    def __init__(
        self,
        webhooks: Optional[Dict[str, str]] = None,
        default_url: str = "",
        timeout: float = 10.0,
    ):
        self.webhooks = dict(webhooks or {})
        self.default_url = default_url
        self.timeout = timeout
        self.session = requests.Session()

    def _url_for(self, channel_id: str) -> str:
        return self.webhooks.get(channel_id) or self.default_url

    def _post(self, channel_id: str, payload: Dict) -> bool:
        url = self._url_for(channel_id)
        if not url:
            logger.error(f"No webhook configured for channel {channel_id}")
            return False
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return True
        except requests.RequestException as e:
            logger.error(f"Failed to send notification to {channel_id}: {e}")
            return False

    def send_trade(self, channel_id: str, message: TradeMessage) -> bool:
        return self._post(channel_id, {"embeds": [format_trade_embed(message)]})

    def send_text(self, channel_id: str, content: str) -> bool:
        return self._post(channel_id, {"content": content})
