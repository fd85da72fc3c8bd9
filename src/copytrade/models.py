"""
Data model for the copy-trading engine.

TradeObservation is produced once at the feed boundary and never mutated.
SessionConfig is fixed for the lifetime of a session. OrderIntent and
ExecutionResult carry a single copied order through the pipeline.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from .errors import ConfigError

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


class Side(Enum):
    """Order side."""
    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def parse(cls, value: Any) -> "Side":
        if isinstance(value, Side):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ConfigError(f"Invalid side: {value}")


class OrderType(Enum):
    """Order types accepted for copied orders."""
    FOK = "FOK"  # Fill or kill
    FAK = "FAK"  # Fill and kill (partial fills allowed)
    GTC = "GTC"  # Good til cancelled

    @property
    def is_market(self) -> bool:
        """FOK and FAK orders go through the market-order path."""
        return self in (OrderType.FOK, OrderType.FAK)

    @classmethod
    def parse(cls, value: Any) -> "OrderType":
        if isinstance(value, OrderType):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ConfigError(f"Invalid order type: {value}")


class SkipReason(Enum):
    """Policy reasons for not copying a trade."""
    MAX_ODDS = "max_odds"
    CATEGORY = "category"
    TOO_SMALL = "too_small"
    MARKET_CAP = "market_cap"


@dataclass(frozen=True)
class TradeObservation:
    """A trade made by a watched wallet."""

    trader_address: str
    side: Side
    outcome: str
    market_slug: str
    price: float
    size: float
    timestamp: int  # milliseconds
    tx_hash: str
    condition_id: str = ""
    asset_id: str = ""
    trader_name: Optional[str] = None

    @property
    def notional(self) -> float:
        """Leader's USDC notional (size x price)."""
        return self.size * self.price

    @property
    def market_key(self) -> str:
        """Identifier used for per-market accounting and metadata lookup."""
        return self.market_slug or self.condition_id


@dataclass(frozen=True)
class SessionConfig:
    """
    Operator policy for one copy-trading session.

    Attributes:
        target_address: Wallet to mirror (stored lower-case).
        channel_id: Notification channel name.
        dry_run: Simulate instead of submitting orders.
        size_scale: Fraction of the leader notional to copy (0 < s <= 1).
        max_size_per_trade: USDC cap per copied trade.
        max_slippage: Price tolerance as a fraction (0.03 = 3%).
        min_trade_size: Copies below this USDC amount are skipped.
        order_type: FOK, FAK or GTC.
        categories: Optional lower-case tag allow-list.
        total_limit: Optional session-wide USDC cap (BUY spend).
        max_odds: Optional price ceiling for BUY trades.
        max_total_per_market: Optional per-market USDC cap (BUY spend).
    """

    target_address: str
    channel_id: str
    dry_run: bool = True
    size_scale: float = 0.1
    max_size_per_trade: float = 10.0
    max_slippage: float = 0.03
    min_trade_size: float = 5.0
    order_type: OrderType = OrderType.FOK
    categories: Optional[tuple] = None
    total_limit: Optional[float] = None
    max_odds: Optional[float] = None
    max_total_per_market: Optional[float] = None
    started_by: str = ""

    def __post_init__(self):
        if not ADDRESS_PATTERN.match(self.target_address or ""):
            raise ConfigError(
                "Invalid wallet address format. Expected 0x followed by 40 hex characters."
            )
        object.__setattr__(self, "target_address", self.target_address.lower())
        object.__setattr__(self, "order_type", OrderType.parse(self.order_type))
        object.__setattr__(self, "categories", normalize_categories(self.categories))

        if not (0 < self.size_scale <= 1):
            raise ConfigError("Size scale must be between 0 and 1 (e.g., 0.1 for 10%).")
        if self.max_size_per_trade <= 0:
            raise ConfigError("Max size per trade must be positive.")
        if not (0 <= self.max_slippage < 1):
            raise ConfigError("Max slippage must be in [0, 1).")
        if self.min_trade_size < 0:
            raise ConfigError("Min trade size cannot be negative.")
        if self.total_limit is not None and self.total_limit <= 0:
            raise ConfigError("Total limit must be positive.")
        if self.max_total_per_market is not None and self.max_total_per_market <= 0:
            raise ConfigError("Market limit must be positive.")
        if self.max_odds is not None:
            if not (0 < self.max_odds < 1):
                raise ConfigError("Max odds must be between 0 and 1.")
            object.__setattr__(self, "max_odds", round(self.max_odds, 2))

    def to_dict(self) -> dict:
        return {
            "target_address": self.target_address,
            "channel_id": self.channel_id,
            "dry_run": self.dry_run,
            "size_scale": self.size_scale,
            "max_size_per_trade": self.max_size_per_trade,
            "max_slippage": self.max_slippage,
            "min_trade_size": self.min_trade_size,
            "order_type": self.order_type.value,
            "categories": list(self.categories) if self.categories else None,
            "total_limit": self.total_limit,
            "max_odds": self.max_odds,
            "max_total_per_market": self.max_total_per_market,
        }


def normalize_categories(categories: Optional[Iterable[str]]) -> Optional[tuple]:
    """
    Normalize a category allow-list.

    Accepts a comma separated string or an iterable. Entries are trimmed and
    lower-cased; an empty result means "no filter" (None).
    """
    if categories is None:
        return None
    if isinstance(categories, str):
        categories = categories.split(",")
    cleaned = tuple(c.strip().lower() for c in categories if c and c.strip())
    return cleaned or None


@dataclass(frozen=True)
class InstrumentMetadata:
    """Resolved CLOB instrument for one (market, outcome) pair."""

    token_id: str
    tick_size: str  # e.g. "0.01"
    neg_risk: bool
    question: str
    condition_id: str


@dataclass(frozen=True)
class OrderIntent:
    """
    A fully normalized order, ready for the router.

    For market BUY orders `amount` is the USDC to spend and `size` the
    expected share count; for everything else `amount` equals `size`
    (shares).
    """

    token_id: str
    side: Side
    price: Decimal
    size: Decimal
    amount: Decimal
    order_type: OrderType
    tick_size: str
    neg_risk: bool

    @property
    def is_usdc_denominated(self) -> bool:
        return self.order_type.is_market and self.side is Side.BUY


@dataclass
class ExecutionResult:
    """Outcome of one copy attempt."""

    success: bool
    usdc_amount: float = 0.0
    order_id: Optional[str] = None
    transaction_hash: Optional[str] = None
    error: Optional[str] = None
    raw_response: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "usdc_amount": self.usdc_amount,
            "order_id": self.order_id,
            "transaction_hash": self.transaction_hash,
            "error": self.error,
        }
