"""
Copy sizing and slippage.

Pure functions: the same trade and config always give the same plan, so a
dry run computes exactly what a live run would attempt.
"""

from dataclasses import dataclass
from decimal import Decimal

from .models import SessionConfig, Side, TradeObservation


@dataclass(frozen=True)
class CopyPlan:
    """Planned copy for one leader trade."""

    leader_notional: float
    copy_usdc: float
    limit_price: Decimal  # slippage-adjusted, not yet tick-rounded
    capped: bool = False


def plan_copy_amount(leader_notional: float, size_scale: float, max_size_per_trade: float) -> float:
    """
    Scale the leader's notional and clamp it to the per-trade maximum.

    Returns:
        min(leader_notional * size_scale, max_size_per_trade), never negative.
    """
    amount = max(0.0, leader_notional * size_scale)
    if amount > max_size_per_trade:
        amount = max_size_per_trade
    return amount


def slippage_price(price: float, side: Side, max_slippage: float) -> Decimal:
    """
    Protective price bound for an immediate order.

    BUY raises the acceptable ceiling, SELL lowers the acceptable floor.
    """
    base = Decimal(str(price))
    slip = Decimal(str(max_slippage))
    if side is Side.BUY:
        return base * (Decimal("1") + slip)
    return base * (Decimal("1") - slip)


def plan_copy(trade: TradeObservation, config: SessionConfig) -> CopyPlan:
    """Compute the copy notional and limit price for a leader trade."""
    leader_notional = trade.notional
    uncapped = leader_notional * config.size_scale
    copy_usdc = plan_copy_amount(leader_notional, config.size_scale, config.max_size_per_trade)
    return CopyPlan(
        leader_notional=leader_notional,
        copy_usdc=copy_usdc,
        limit_price=slippage_price(trade.price, trade.side, config.max_slippage),
        capped=uncapped > config.max_size_per_trade,
    )
