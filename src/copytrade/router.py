"""
Order Router

Turns a normalized OrderIntent into a signed CLOB order via py-clob-client
and submits it.

Routing:
- FOK / FAK -> market order (create_market_order). BUY orders pass the USDC
  notional as the amount so the exchange derives shares with its own
  compliant rounding; SELL orders pass the share count.
- GTC -> limit order (create_order) with explicit size and no expiry.

The router never retries and never applies policy (min size, caps). A
submission that does not return within the timeout is reported as a
failure.
"""
import json
import logging
import threading
from typing import Any, Callable, Optional

from py_clob_client.clob_types import MarketOrderArgs, OrderArgs, PartialCreateOrderOptions
from py_clob_client.clob_types import OrderType as ClobOrderType
from py_clob_client.exceptions import PolyApiException
from py_clob_client.order_builder.constants import BUY, SELL

from ..config import SUBMIT_TIMEOUT
from .errors import SubmissionTimeoutError
from .models import ExecutionResult, OrderIntent, OrderType, Side

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error - no orderID returned"

# Good-til-cancelled limit orders never expire
NO_EXPIRATION = 0

_CLOB_ORDER_TYPES = {
    OrderType.FOK: ClobOrderType.FOK,
    OrderType.FAK: ClobOrderType.FAK,
    OrderType.GTC: ClobOrderType.GTC,
}


def _call_with_timeout(func: Callable[..., Any], *args, timeout: float, operation_name: str) -> Any:
    """
    Run a blocking call on a daemon thread and give up after `timeout`.

    Raises:
        SubmissionTimeoutError: If the call is still running at the deadline
    """
    result = [None]
    exception = [None]

    def target():
        try:
            result[0] = func(*args)
        except Exception as e:
            exception[0] = e

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    thread.join(timeout=timeout)

    if thread.is_alive():
        raise SubmissionTimeoutError(f"{operation_name} timed out after {timeout}s")

    if exception[0] is not None:
        raise exception[0]

    return result[0]


def _error_text(error: Any) -> str:
    if isinstance(error, str):
        return error
    return json.dumps(error)


class OrderRouter:
    """
    Submits copy orders through an authenticated py-clob-client ClobClient.

    Example:
        router = OrderRouter(create_clob_client())
        result = router.submit(intent)
        if result.success:
            print(f"Order placed: {result.order_id}")
    """

    def __init__(self, clob_client, submit_timeout: float = SUBMIT_TIMEOUT):
        self.clob = clob_client
        self.submit_timeout = submit_timeout

    def build_order(self, intent: OrderIntent):
        """Create the signed order for an intent."""
        side = BUY if intent.side is Side.BUY else SELL
        options = PartialCreateOrderOptions(tick_size=intent.tick_size, neg_risk=intent.neg_risk)

        if intent.order_type.is_market:
            if intent.side is Side.BUY:
                logger.info(
                    f"Placing {intent.order_type.value} market order: BUY "
                    f"${intent.amount} USDC @ ${intent.price} (~{intent.size} shares)"
                )
            else:
                logger.info(
                    f"Placing {intent.order_type.value} market order: SELL "
                    f"{intent.amount} shares @ ${intent.price}"
                )
            args = MarketOrderArgs(
                token_id=intent.token_id,
                amount=float(intent.amount),
                side=side,
                price=float(intent.price),
                order_type=_CLOB_ORDER_TYPES[intent.order_type],
            )
            return self.clob.create_market_order(args, options)

        logger.info(
            f"Placing {intent.order_type.value} order: {intent.side.value} "
            f"{intent.size} @ ${intent.price}"
        )
        args = OrderArgs(
            token_id=intent.token_id,
            price=float(intent.price),
            size=float(intent.size),
            side=side,
            expiration=NO_EXPIRATION,
        )
        return self.clob.create_order(args, options)

    def submit(self, intent: OrderIntent) -> ExecutionResult:
        """
        Sign and post an order.

        Returns:
            ExecutionResult; failures are reported, never raised.
        """
        logger.debug(
            f"Token: {intent.token_id}, TickSize: {intent.tick_size}, NegRisk: {intent.neg_risk}"
        )
        try:
            signed = self.build_order(intent)
            response = _call_with_timeout(
                self.clob.post_order,
                signed,
                _CLOB_ORDER_TYPES[intent.order_type],
                timeout=self.submit_timeout,
                operation_name="post_order",
            )
        except SubmissionTimeoutError as e:
            logger.error(f"Order timed out: {e}")
            return ExecutionResult(success=False, error=str(e))
        except PolyApiException as e:
            message = _error_text(e.error_msg)
            logger.error(f"Order placement failed (status {e.status_code}): {message}")
            return ExecutionResult(success=False, error=message)
        except Exception as e:
            logger.error(f"Order placement failed: {e}")
            return ExecutionResult(success=False, error=str(e) or "Unknown error")

        return self.classify_response(response)

    @staticmethod
    def classify_response(response: Optional[dict]) -> ExecutionResult:
        """Map a post_order response onto an ExecutionResult."""
        response = response or {}

        if response.get("error"):
            message = _error_text(response["error"])
            logger.error(f"Order placement failed (status {response.get('status')}): {message}")
            return ExecutionResult(success=False, error=message, raw_response=response)

        order_id = response.get("orderID")
        if not response.get("success") or not order_id:
            message = response.get("errorMsg") or UNKNOWN_ERROR
            logger.error(f"Order placement failed: {message}")
            return ExecutionResult(success=False, error=message, raw_response=response)

        hashes = response.get("transactionsHashes") or []
        logger.info(f"Order placed successfully: {order_id}")
        return ExecutionResult(
            success=True,
            order_id=order_id,
            transaction_hash=hashes[0] if hashes else None,
            raw_response=response,
        )
