"""
Copy Trading Session

Owns at most one active subscription to a trade feed and processes the
target wallet's trades one at a time.

States:
    Idle   -> start(config) -> Active
    Active -> stop() / total limit breached -> Idle

Feed callbacks arrive on feed threads and are handed to a single asyncio
consumer per session, so spend accounting is never updated by two events
at once. Blocking collaborators (metadata lookups, order submission,
notification delivery) run in worker threads and are awaited before the
next event is taken.

Example:
    >>> session = CopyTradingSession(feed, guard, notifier)
    >>> await session.start(SessionConfig(target_address="0x...", channel_id="signals"))
    >>> ...
    >>> await session.stop()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..config import DEDUPE_CAPACITY
from .dedupe import DedupeSet
from .errors import SessionError, is_too_small
from .feeds import Subscription
from .guard import GuardDecision
from .models import ExecutionResult, SessionConfig, Side, SkipReason, TradeObservation
from .notifier import (
    TradeMessage,
    format_error_notice,
    format_market_cap_notice,
    format_max_odds_notice,
    format_total_limit_notice,
)

logger = logging.getLogger(__name__)

_STOP = object()


def _utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


@dataclass
class _FeedError:
    error: Exception


@dataclass
class SessionState:
    """
    Mutable state of the active session.

    Attributes:
        config: Session policy.
        subscription: Feed subscription handle.
        start_time: When the session started.
        cumulative_spent: USDC committed to BUY copies (dry run included).
        spent_by_market: USDC committed per market (BUY only).
        skipped_count: Trades skipped by policy.
        processed_count: Trades that reached the execution guard.
    """

    config: SessionConfig
    subscription: Subscription
    queue: asyncio.Queue
    start_time: datetime = field(default_factory=_utc_now)
    cumulative_spent: float = 0.0
    spent_by_market: Dict[str, float] = field(default_factory=dict)
    skipped_count: int = 0
    processed_count: int = 0
    worker: Optional[asyncio.Task] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "target_address": self.config.target_address,
            "channel_id": self.config.channel_id,
            "cumulative_spent": self.cumulative_spent,
            "dry_run": self.config.dry_run,
            "spent_by_market": [
                {"market": market, "spent": spent} for market, spent in self.spent_by_market.items()
            ],
            "skipped_count": self.skipped_count,
            "processed_count": self.processed_count,
            "uptime_seconds": int((_utc_now() - self.start_time).total_seconds()),
        }


class CopyTradingSession:
    """
    Single-flight copy-trading session manager.

    Attributes:
        feed: TradeFeed to subscribe to
        guard: ExecutionGuard applied to each accepted trade
        notifier: Notifier for trade results and notices
    """

    def __init__(self, feed, guard, notifier, dedupe_capacity: int = DEDUPE_CAPACITY):
        self.feed = feed
        self.guard = guard
        self.notifier = notifier
        self._state: Optional[SessionState] = None
        self._seen = DedupeSet(dedupe_capacity)

    def is_active(self) -> bool:
        """Check if a session is currently active."""
        return self._state is not None

    @property
    def session(self) -> Optional[SessionState]:
        return self._state

    def get_stats(self) -> Optional[Dict[str, Any]]:
        """Statistics of the active session, or None when idle."""
        if self._state is None:
            return None
        return self._state.to_dict()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, config: SessionConfig) -> None:
        """
        Start a session, stopping any active one first.

        Raises:
            SessionError: If the feed subscription fails
        """
        if self._state is not None:
            logger.info("Stopping existing session before starting new one")
            await self.stop()

        logger.info(f"Starting copy trading session for {config.target_address}")
        logger.info(f"Channel: {config.channel_id}, DryRun: {config.dry_run}")

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def enqueue(item) -> None:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, item)
            except RuntimeError:
                logger.debug("Event loop closed - dropping feed event")

        def on_trade(trade: TradeObservation) -> None:
            enqueue(trade)

        def on_error(error: Exception) -> None:
            enqueue(_FeedError(error))

        try:
            subscription = self.feed.subscribe(config.target_address, on_trade, on_error)
        except Exception as e:
            logger.error(f"Failed to start copy trading session: {e}")
            raise SessionError(f"Failed to subscribe to trade feed: {e}") from e

        self._seen.clear()
        state = SessionState(config=config, subscription=subscription, queue=queue)
        state.worker = asyncio.create_task(self._consume(state))
        self._state = state

        logger.info(f"Session started successfully. Tracking: {config.target_address}")
        logger.info(
            f"Min trade size: ${config.min_trade_size}, Max per trade: ${config.max_size_per_trade}"
        )

    async def stop(self) -> None:
        """
        Stop the active session. Safe to call when idle.

        Raises:
            SessionError: If unsubscribing from the feed fails (the session is
                still torn down)
        """
        state = self._state
        if state is None:
            logger.info("No active session to stop")
            return

        logger.info("Stopping copy trading session")

        # Detach first so queued or in-flight events are discarded
        self._state = None
        self._seen.clear()
        state.queue.put_nowait(_STOP)

        try:
            await asyncio.to_thread(state.subscription.unsubscribe)
        except Exception as e:
            logger.error(f"Error stopping session: {e}")
            raise SessionError(f"Failed to unsubscribe from trade feed: {e}") from e

        logger.info("Session stopped successfully")

    async def wait_idle(self) -> None:
        """Wait until every event delivered so far to the active session is processed."""
        state = self._state
        if state is None:
            return
        # Let pending call_soon_threadsafe puts land
        await asyncio.sleep(0)
        await state.queue.join()

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    async def _consume(self, state: SessionState) -> None:
        while True:
            item = await state.queue.get()
            try:
                if item is _STOP:
                    return
                if self._state is not state:
                    continue
                if isinstance(item, _FeedError):
                    await self._handle_feed_error(state, item.error)
                else:
                    await self.handle_trade(state, item)
            except Exception as e:
                # One bad event must never end the session
                logger.exception(f"Error handling trade: {e}")
            finally:
                state.queue.task_done()

    async def handle_trade(self, state: SessionState, trade: TradeObservation) -> None:
        """Filter, dedupe, evaluate and account for one feed event."""
        config = state.config

        if trade.trader_address.lower() != config.target_address:
            return

        if trade.tx_hash and self._seen.check_and_add(trade.tx_hash):
            return

        logger.info(
            f"Trade detected from {trade.trader_address}: {trade.side.value} "
            f"{trade.outcome} @ ${trade.price}"
        )

        try:
            decision = await asyncio.to_thread(
                self.guard.evaluate,
                trade,
                config,
                lambda key: state.spent_by_market.get(key, 0.0),
            )
        except Exception as e:
            logger.exception(f"Error handling trade {trade.tx_hash}: {e}")
            await self._send_text(config.channel_id, format_error_notice(str(e)))
            return

        if self._state is not state:
            logger.info(f"Session stopped while processing {trade.tx_hash} - result discarded")
            return

        state.processed_count += 1

        if decision.skipped:
            state.skipped_count += 1
            await self._notify_skip(state, trade, decision)
            return

        result = decision.result
        if not result.success and is_too_small(result.error):
            logger.info(f"Trade rejected as too small: {result.error}")
            state.skipped_count += 1
            await self._send_trade(state, trade, decision, result)
            return

        counts_toward_spend = (config.dry_run or result.success) and trade.side is Side.BUY
        if counts_toward_spend:
            amount = result.usdc_amount
            if config.total_limit is not None:
                new_total = state.cumulative_spent + amount
                if new_total > config.total_limit:
                    logger.info(
                        f"Total limit reached: ${state.cumulative_spent:.2f} + ${amount:.2f} "
                        f"= ${new_total:.2f} > ${config.total_limit}"
                    )
                    await self._send_text(
                        config.channel_id,
                        format_total_limit_notice(state.cumulative_spent, config.total_limit),
                    )
                    await self.stop()
                    return

            state.cumulative_spent += amount
            key = decision.market_key or trade.market_key
            state.spent_by_market[key] = state.spent_by_market.get(key, 0.0) + amount
            logger.info(f"Market spending updated for {key}: ${state.spent_by_market[key]:.2f}")

        await self._send_trade(state, trade, decision, result)

    async def _handle_feed_error(self, state: SessionState, error: Exception) -> None:
        logger.error(f"Copy trading error: {error}")
        await self._send_text(state.config.channel_id, format_error_notice(str(error)))

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def _notify_skip(self, state: SessionState, trade: TradeObservation, decision: GuardDecision) -> None:
        config = state.config
        if decision.skip_reason is SkipReason.MAX_ODDS:
            content = format_max_odds_notice(
                trade.outcome, trade.price, config.max_odds, config.target_address
            )
            await self._send_text(config.channel_id, content)
        elif decision.skip_reason is SkipReason.MARKET_CAP:
            name = decision.market.name if decision.market else decision.market_key
            content = format_market_cap_notice(
                name, decision.market_spent, decision.copy_usdc, config.max_total_per_market
            )
            await self._send_text(config.channel_id, content)
        else:
            result = ExecutionResult(
                success=False,
                usdc_amount=decision.copy_usdc,
                error=f"Skipped: {decision.skip_message}",
            )
            await self._send_trade(state, trade, decision, result)

    async def _send_trade(
        self,
        state: SessionState,
        trade: TradeObservation,
        decision: GuardDecision,
        result: ExecutionResult,
    ) -> None:
        market = decision.market
        message = TradeMessage(
            trader_address=trade.trader_address,
            trader_name=trade.trader_name,
            side=trade.side.value,
            outcome=trade.outcome,
            price=trade.price,
            leader_notional=decision.leader_notional,
            copy_usdc=result.usdc_amount,
            success=result.success,
            status_text=result.error or "",
            order_id=result.order_id,
            tx_hash=result.transaction_hash or trade.tx_hash,
            market_name=market.name if market else "",
            market_slug=market.slug if market else trade.market_slug,
            event_slug=market.event_slug if market else None,
            dry_run=state.config.dry_run,
            timestamp=trade.timestamp,
        )
        try:
            await asyncio.to_thread(self.notifier.send_trade, state.config.channel_id, message)
        except Exception as e:
            logger.error(f"Failed to send trade notification: {e}")

    async def _send_text(self, channel_id: str, content: str) -> None:
        try:
            await asyncio.to_thread(self.notifier.send_text, channel_id, content)
        except Exception as e:
            logger.error(f"Failed to send notification: {e}")
