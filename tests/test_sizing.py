"""
Tests for copy sizing and slippage.

Tests cover:
- Scaling and per-trade cap
- Slippage direction for BUY and SELL
- Dry run / live parity of the plan
"""

from decimal import Decimal

import pytest

from src.copytrade.models import SessionConfig, Side, TradeObservation
from src.copytrade.sizing import plan_copy, plan_copy_amount, slippage_price

TARGET = "0x" + "ab" * 20


def make_trade(**overrides) -> TradeObservation:
    fields = dict(
        trader_address=TARGET,
        side=Side.BUY,
        outcome="Yes",
        market_slug="will-it-rain",
        price=0.65,
        size=100.0,
        timestamp=1767729600000,
        tx_hash="0xtx1",
    )
    fields.update(overrides)
    return TradeObservation(**fields)


def make_config(**overrides) -> SessionConfig:
    fields = dict(
        target_address=TARGET,
        channel_id="signals",
        size_scale=0.1,
        max_size_per_trade=10.0,
        max_slippage=0.03,
        min_trade_size=5.0,
    )
    fields.update(overrides)
    return SessionConfig(**fields)


class TestPlanCopyAmount:
    """Tests for notional scaling."""

    def test_scaled_below_cap(self):
        """$65 leader notional at 10% is $6.50."""
        assert plan_copy_amount(65.0, 0.1, 10.0) == pytest.approx(6.5)

    def test_clamped_to_max(self):
        assert plan_copy_amount(500.0, 0.1, 10.0) == 10.0

    def test_small_trade_not_floored(self):
        """The minimum is a gate, not a floor: $3 at 10% stays $0.30."""
        assert plan_copy_amount(3.0, 0.1, 10.0) == pytest.approx(0.3)

    def test_never_negative(self):
        assert plan_copy_amount(0.0, 0.5, 10.0) == 0.0

    @pytest.mark.parametrize("notional,scale", [(1.0, 1.0), (250.0, 0.02), (40.0, 0.25), (99.9, 0.5)])
    def test_is_min_of_scaled_and_cap(self, notional, scale):
        assert plan_copy_amount(notional, scale, 10.0) == pytest.approx(min(notional * scale, 10.0))


class TestSlippagePrice:
    """Tests for the protective price bound."""

    def test_buy_raises_ceiling(self):
        assert slippage_price(0.65, Side.BUY, 0.03) == Decimal("0.6695")

    def test_sell_lowers_floor(self):
        assert slippage_price(0.65, Side.SELL, 0.03) == Decimal("0.6305")

    def test_zero_slippage_is_identity(self):
        assert slippage_price(0.42, Side.BUY, 0.0) == Decimal("0.42")
        assert slippage_price(0.42, Side.SELL, 0.0) == Decimal("0.42")


class TestPlanCopy:
    """Tests for the combined plan."""

    def test_example_plan(self):
        plan = plan_copy(make_trade(), make_config())

        assert plan.leader_notional == pytest.approx(65.0)
        assert plan.copy_usdc == pytest.approx(6.5)
        assert plan.limit_price == Decimal("0.6695")
        assert plan.capped is False

    def test_capped_flag(self):
        plan = plan_copy(make_trade(size=1000.0), make_config())

        assert plan.copy_usdc == 10.0
        assert plan.capped is True

    def test_dry_run_and_live_plans_match(self):
        trade = make_trade(size=37.0, price=0.41)
        dry = plan_copy(trade, make_config(dry_run=True))
        live = plan_copy(trade, make_config(dry_run=False))

        assert dry == live
