"""
Execution Guard

Single entry point per accepted leader trade. Applies the policy gates in
order, each short-circuiting:

1. Max odds (BUY only)
2. Category allow-list
3. Minimum copy size
4. Per-market cap (BUY only)
5. Dry run -> simulated success
6. Live -> resolve, normalize, route

The session-wide cap is not checked here: the session applies it after the
result is known.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import ResolutionError, SubmissionError
from .markets import MarketInfo
from .models import ExecutionResult, SessionConfig, Side, SkipReason, TradeObservation
from .precision import build_order_intent
from .sizing import CopyPlan, plan_copy

logger = logging.getLogger(__name__)


@dataclass
class GuardDecision:
    """What the guard did with one trade."""

    leader_notional: float
    copy_usdc: float = 0.0
    market: Optional[MarketInfo] = None
    market_key: str = ""
    skip_reason: Optional[SkipReason] = None
    skip_message: str = ""
    result: Optional[ExecutionResult] = None
    market_spent: float = 0.0

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None


class ExecutionGuard:
    """
    Policy checks plus the sizing -> precision -> routing pipeline.

    Attributes:
        resolver: MarketMetadataResolver for token id / tick size / neg risk
        market_cache: MarketInfoCache for tags and display names
        router: OrderRouter, may be None when only dry runs are expected
    """

    def __init__(self, resolver, market_cache, router=None):
        self.resolver = resolver
        self.market_cache = market_cache
        self.router = router

    def evaluate(
        self,
        trade: TradeObservation,
        config: SessionConfig,
        market_spent: Callable[[str], float],
    ) -> GuardDecision:
        """
        Run the gates and, if all pass, simulate or execute the copy.

        Args:
            trade: Leader trade
            config: Session policy
            market_spent: Lookup of USDC already spent in a market this session
        """
        decision = GuardDecision(leader_notional=trade.notional)

        # 1. Max odds
        if config.max_odds is not None and trade.side is Side.BUY and trade.price > config.max_odds:
            logger.info(
                f"Skipping BUY trade - price {trade.price} exceeds max odds {config.max_odds}"
            )
            decision.skip_reason = SkipReason.MAX_ODDS
            decision.skip_message = f"Price {trade.price:.2f} exceeds max odds {config.max_odds:.2f}"
            return decision

        market = self.market_cache.get(trade.market_slug, trade.condition_id)
        decision.market = market
        decision.market_key = market.slug or trade.market_key

        # 2. Categories
        if config.categories:
            market_tags = [t.lower() for t in market.tags]
            if not any(cat in market_tags for cat in config.categories):
                logger.info(
                    f"Skipping trade - market tags [{', '.join(market.tags)}] "
                    f"don't match filter [{', '.join(config.categories)}]"
                )
                decision.skip_reason = SkipReason.CATEGORY
                decision.skip_message = "Market category not in filter"
                return decision

        # 3. Minimum size
        plan = plan_copy(trade, config)
        decision.copy_usdc = plan.copy_usdc
        if plan.capped:
            logger.info(
                f"Copy amount capped at ${config.max_size_per_trade} "
                f"(leader notional ${plan.leader_notional:.2f})"
            )
        if plan.copy_usdc < config.min_trade_size:
            logger.info(
                f"Skipping trade - amount ${plan.copy_usdc:.2f} < min ${config.min_trade_size}"
            )
            decision.skip_reason = SkipReason.TOO_SMALL
            decision.skip_message = (
                f"Trade size ${plan.copy_usdc:.2f} below minimum ${config.min_trade_size}"
            )
            return decision

        # 4. Per-market cap
        if config.max_total_per_market is not None and trade.side is Side.BUY:
            current = market_spent(decision.market_key)
            decision.market_spent = current
            if current + plan.copy_usdc > config.max_total_per_market:
                logger.info(
                    f"Skipping BUY trade - market cap reached for {decision.market_key} "
                    f"(current ${current:.2f}, planned ${plan.copy_usdc:.2f}, "
                    f"cap ${config.max_total_per_market})"
                )
                decision.skip_reason = SkipReason.MARKET_CAP
                decision.skip_message = "Market cap reached"
                return decision

        # 5. Dry run
        if config.dry_run:
            logger.info(
                f"DRY RUN: {trade.side.value} ${plan.copy_usdc:.2f} of {trade.outcome} "
                f"@ ~${float(plan.limit_price):.4f}"
            )
            decision.result = ExecutionResult(success=True, usdc_amount=plan.copy_usdc)
            return decision

        # 6. Live
        decision.result = self.execute(trade, config, plan, decision.market_key)
        return decision

    def execute(
        self,
        trade: TradeObservation,
        config: SessionConfig,
        plan: CopyPlan,
        market_slug: str,
    ) -> ExecutionResult:
        """Resolve, normalize and route a planned copy."""
        if self.router is None:
            return ExecutionResult(success=False, error="Live trading not configured")

        try:
            metadata = self.resolver.resolve(market_slug, trade.outcome)
        except ResolutionError as e:
            logger.error(f"Execution error: {e}")
            return ExecutionResult(success=False, usdc_amount=0.0, error=str(e))

        try:
            intent = build_order_intent(
                metadata,
                side=trade.side,
                order_type=config.order_type,
                copy_usdc=plan.copy_usdc,
                reference_price=trade.price,
                limit_price=plan.limit_price,
            )
        except SubmissionError as e:
            logger.info(f"Trade rejected: {e}")
            return ExecutionResult(success=False, usdc_amount=plan.copy_usdc, error=str(e))

        if intent.is_usdc_denominated:
            logger.info(
                f"Copy trade: {trade.side.value} ${intent.amount} USDC @ ${intent.price} "
                f"(leader: ${trade.price:.4f}), expected shares ~{intent.size}"
            )
        else:
            logger.info(
                f"Copy trade: {trade.side.value} {intent.size} shares @ ${intent.price} "
                f"(leader: ${trade.price:.4f})"
            )

        result = self.router.submit(intent)
        result.usdc_amount = plan.copy_usdc
        return result
