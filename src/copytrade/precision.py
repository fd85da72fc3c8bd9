"""
Tick and decimal-precision rules for CLOB orders.

Prices are rounded to the nearest tick and clamped to [0.01, 0.99]. Amounts
follow the exchange's maker/taker precision limits:

    market BUY   USDC (maker) 2 dp, shares (taker) 4 dp
    market SELL  shares (maker) 2 dp, USDC (taker) 4 dp
    limit (GTC)  shares 2 dp

For market BUY orders the USDC amount is rounded first and the share count
derived from it. Rounding shares first and multiplying back can leave a
USDC figure with more than 2 decimals, which the exchange rejects.
"""

import logging
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Tuple, Union

from .errors import SubmissionError
from .models import InstrumentMetadata, OrderIntent, OrderType, Side

logger = logging.getLogger(__name__)

Number = Union[Decimal, float, int, str]

MIN_PRICE = Decimal("0.01")
MAX_PRICE = Decimal("0.99")

VALID_TICK_SIZES = ("0.1", "0.01", "0.001", "0.0001")

USDC_MAKER_PLACES = 2
SHARE_MAKER_PLACES = 2
TAKER_PLACES = 4


def _dec(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_to_tick(price: Number, tick_size: str) -> Decimal:
    """Round a price to the nearest multiple of the tick size (half up)."""
    tick = _dec(tick_size)
    if tick <= 0:
        raise ValueError(f"Invalid tick size: {tick_size}")
    ticks = (_dec(price) / tick).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return (ticks * tick).quantize(tick)


def clamp_price(price: Decimal) -> Decimal:
    """Clamp a price into the valid probability range [0.01, 0.99]."""
    return max(MIN_PRICE, min(MAX_PRICE, price))


def normalize_price(price: Number, tick_size: str) -> Decimal:
    """Tick-round then clamp."""
    return clamp_price(round_to_tick(price, tick_size))


def round_down(value: Number, places: int) -> Decimal:
    """Truncate a value to `places` decimals."""
    quantum = Decimal(1).scaleb(-places)
    return _dec(value).quantize(quantum, rounding=ROUND_DOWN)


def normalize_market_buy(usdc_amount: Number, price: Number) -> Tuple[Decimal, Decimal]:
    """
    Round a USDC-denominated market BUY.

    Returns:
        (usdc, shares) with usdc at 2 dp and shares derived from the rounded
        usdc at 4 dp.
    """
    price = _dec(price)
    if price <= 0:
        raise ValueError(f"Price must be positive, got {price}")
    usdc = round_down(usdc_amount, USDC_MAKER_PLACES)
    shares = round_down(usdc / price, TAKER_PLACES)
    return usdc, shares


def normalize_market_sell(shares: Number, price: Number) -> Tuple[Decimal, Decimal]:
    """
    Round a share-denominated market SELL.

    Returns:
        (shares, usdc) with shares at 2 dp and the proceeds at 4 dp.
    """
    shares = round_down(shares, SHARE_MAKER_PLACES)
    usdc = round_down(shares * _dec(price), TAKER_PLACES)
    return shares, usdc


def normalize_limit_size(shares: Number) -> Decimal:
    """Limit orders carry share size at maker precision."""
    return round_down(shares, SHARE_MAKER_PLACES)


def build_order_intent(
    metadata: InstrumentMetadata,
    side: Side,
    order_type: OrderType,
    copy_usdc: float,
    reference_price: float,
    limit_price: Number,
) -> OrderIntent:
    """
    Turn a planned copy into a protocol-legal OrderIntent.

    Args:
        metadata: Resolved instrument (token id, tick size, neg risk)
        side: BUY or SELL
        order_type: FOK/FAK use market sizing, GTC uses limit sizing
        copy_usdc: Planned USDC notional
        reference_price: Leader's observed price, used for share sizing
        limit_price: Slippage-adjusted price before tick rounding

    Raises:
        SubmissionError: Unsupported tick size, or rounding leaves nothing to trade
    """
    if metadata.tick_size not in VALID_TICK_SIZES:
        raise SubmissionError(
            f"Unsupported tick size {metadata.tick_size} for token {metadata.token_id}"
        )

    price = normalize_price(limit_price, metadata.tick_size)

    if order_type.is_market and side is Side.BUY:
        amount, size = normalize_market_buy(copy_usdc, price)
    else:
        ref = _dec(reference_price)
        if ref <= 0:
            raise SubmissionError(f"Invalid reference price: {reference_price}")
        raw_shares = _dec(copy_usdc) / ref
        if order_type.is_market:
            size, proceeds = normalize_market_sell(raw_shares, price)
            logger.debug(f"Market SELL {size} shares @ {price}, expected proceeds ${proceeds}")
        else:
            size = normalize_limit_size(raw_shares)
        amount = size

    if amount <= 0 or size <= 0:
        raise SubmissionError(
            f"Order too small after precision rounding: ${copy_usdc:.4f} @ {price}"
        )

    return OrderIntent(
        token_id=metadata.token_id,
        side=side,
        price=price,
        size=size,
        amount=amount,
        order_type=order_type,
        tick_size=metadata.tick_size,
        neg_risk=metadata.neg_risk,
    )
