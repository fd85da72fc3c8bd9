"""
Copy-trading relay for Polymarket.

This module provides tools for:
- Mirroring a target wallet's trades with scaled copy orders
- Sizing, slippage and CLOB precision rules
- Policy gates (max odds, categories, min size, per-market and total caps)
- Single-flight session management with deduplication
- Discord notifications
"""

from .errors import (
    ConfigError,
    CopyTradingError,
    MarketNotFoundError,
    OutcomeNotFoundError,
    ResolutionError,
    SessionError,
    SubmissionError,
)
from .guard import ExecutionGuard, GuardDecision
from .markets import MarketInfo, MarketInfoCache, MarketMetadataResolver
from .models import (
    ExecutionResult,
    InstrumentMetadata,
    OrderIntent,
    OrderType,
    SessionConfig,
    Side,
    SkipReason,
    TradeObservation,
)
from .notifier import DiscordWebhookNotifier, LoggingNotifier, TradeMessage
from .session import CopyTradingSession, SessionState

__all__ = [
    # Session
    "CopyTradingSession",
    "SessionState",
    # Policy and execution
    "ExecutionGuard",
    "GuardDecision",
    # Market metadata
    "MarketMetadataResolver",
    "MarketInfoCache",
    "MarketInfo",
    # Data model
    "TradeObservation",
    "SessionConfig",
    "InstrumentMetadata",
    "OrderIntent",
    "ExecutionResult",
    "Side",
    "OrderType",
    "SkipReason",
    # Notifications
    "DiscordWebhookNotifier",
    "LoggingNotifier",
    "TradeMessage",
    # Errors
    "CopyTradingError",
    "ConfigError",
    "ResolutionError",
    "MarketNotFoundError",
    "OutcomeNotFoundError",
    "SubmissionError",
    "SessionError",
]
