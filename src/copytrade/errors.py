"""Exception hierarchy for the copy-trading engine."""
import re
from typing import Iterable

_TOO_SMALL_PATTERN = re.compile(r"too small|below minimum", re.IGNORECASE)


class CopyTradingError(Exception):
    """Base class for all copy-trading errors."""

    pass


class ConfigError(CopyTradingError):
    """Raised when a session configuration value is out of range."""

    pass


class ResolutionError(CopyTradingError):
    """Raised when market metadata cannot be resolved."""

    pass


class MarketNotFoundError(ResolutionError):
    """Raised when the market itself is unknown."""

    def __init__(self, market: str, detail: str = ""):
        self.market = market
        message = f"Market not found: {market}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class OutcomeNotFoundError(ResolutionError):
    """Raised when the market exists but has no such outcome."""

    def __init__(self, market: str, outcome: str, available: Iterable[str]):
        self.market = market
        self.outcome = outcome
        self.available = list(available)
        super().__init__(
            f'Outcome "{outcome}" not found in market {market}. '
            f"Available: {', '.join(self.available)}"
        )


class SubmissionError(CopyTradingError):
    """Raised when an order cannot be built or sent."""

    pass


class SubmissionTimeoutError(SubmissionError):
    """Raised when the submission call does not return in time."""

    pass


class SessionError(CopyTradingError):
    """Raised when a session lifecycle operation fails."""

    pass


def is_too_small(message: str) -> bool:
    """Return True if an error message describes an undersized trade."""
    if not message:
        return False
    return bool(_TOO_SMALL_PATTERN.search(message))
