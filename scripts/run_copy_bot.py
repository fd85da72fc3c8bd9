#!/usr/bin/env python3
"""
Run the Copy Trading Relay

Mirrors a target wallet's Polymarket trades with scaled copy orders and
posts every result to a Discord channel.

Usage:
    # Dry run (default, safe)
    python scripts/run_copy_bot.py --target 0xabc...

    # Run for a specific duration (in minutes)
    python scripts/run_copy_bot.py --target 0xabc... --duration 60

    # Live trading (CAUTION - requires proper credentials)
    python scripts/run_copy_bot.py --target 0xabc... --live

    # Only copy politics/sports BUYs priced at or below 0.80
    python scripts/run_copy_bot.py --target 0xabc... --categories politics,sports --max-odds 0.8

Safety Notes:
    - Dry run is the default. Real money is NEVER risked unless --live is passed.
    - --total-limit stops the session once cumulative BUY spend would exceed it.
    - Live mode requires POLYMARKET_PRIVATE_KEY and POLYMARKET_FUNDER in .env

Environment Variables:
    POLYMARKET_PRIVATE_KEY - Private key for signing orders
    POLYMARKET_FUNDER - Proxy wallet holding the funds
    DISCORD_WEBHOOK_URL - Webhook for notifications (log only if unset)
    SIZE_SCALE, MAX_SIZE_PER_TRADE, MAX_SLIPPAGE, MIN_TRADE_SIZE, ORDER_TYPE - defaults
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.api.activity_ws import ActivityWebSocket
from src.api.data_api import DataApiClient
from src.api.gamma import GammaClient
from src.config import (
    DEFAULT_CHANNEL_ID,
    DISCORD_WEBHOOK_URL,
    LOGS_DIR,
    MAX_SIZE_PER_TRADE,
    MAX_SLIPPAGE,
    MIN_TRADE_SIZE,
    ORDER_TYPE,
    SIZE_SCALE,
)
from src.copytrade.clob import create_clob_client, create_read_only_client
from src.copytrade.errors import CopyTradingError
from src.copytrade.feeds import ActivityWebSocketFeed, DataApiTradeFeed
from src.copytrade.guard import ExecutionGuard
from src.copytrade.markets import MarketInfoCache, MarketMetadataResolver
from src.copytrade.models import SessionConfig, normalize_categories
from src.copytrade.notifier import DiscordWebhookNotifier, LoggingNotifier
from src.copytrade.router import OrderRouter
from src.copytrade.session import CopyTradingSession


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the bot."""
    level = logging.DEBUG if verbose else logging.INFO

    console_format = "%(asctime)s [%(levelname)s] %(message)s"
    file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(console_format, datefmt="%H:%M:%S"))

    log_file = LOGS_DIR / f"copy_bot_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(file_format))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Reduce noise from external libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("websocket").setLevel(logging.WARNING)

    print(f"Logs will be written to: {log_file}")


def build_session(live: bool, feed_kind: str) -> CopyTradingSession:
    """Wire feed, resolver, router and notifier into a session."""
    gamma = GammaClient()
    resolver = MarketMetadataResolver(gamma, create_read_only_client())
    router = OrderRouter(create_clob_client()) if live else None
    guard = ExecutionGuard(resolver, MarketInfoCache(gamma), router)

    if feed_kind == "ws":
        feed = ActivityWebSocketFeed(ActivityWebSocket)
    else:
        feed = DataApiTradeFeed(DataApiClient())

    if DISCORD_WEBHOOK_URL:
        notifier = DiscordWebhookNotifier(default_url=DISCORD_WEBHOOK_URL)
    else:
        logging.getLogger(__name__).warning("DISCORD_WEBHOOK_URL not set - notifications go to the log")
        notifier = LoggingNotifier()

    return CopyTradingSession(feed, guard, notifier)


def print_stats(stats) -> None:
    print("\n" + "=" * 70)
    print("Session Summary")
    print("=" * 70)
    if not stats:
        print("\nSession ended (total limit reached or stopped).")
        print("=" * 70)
        return
    print(f"  Target: {stats['target_address']}")
    print(f"  Mode: {'DRY RUN' if stats['dry_run'] else 'LIVE'}")
    print(f"  Trades processed: {stats['processed_count']}")
    print(f"  Trades skipped: {stats['skipped_count']}")
    print(f"  Total spent: ${stats['cumulative_spent']:.2f}")
    print(f"  Uptime: {stats['uptime_seconds']} seconds")
    for entry in stats["spent_by_market"]:
        print(f"    - {entry['market']}: ${entry['spent']:.2f}")
    print("=" * 70)


def confirm_live_trading() -> bool:
    """Ask the operator to type LIVE before any real order can be placed."""
    print("\n" + "!" * 70)
    print("WARNING: LIVE TRADING MODE")
    print("Real money will be at risk!")
    print("!" * 70)

    confirm = input("\nType 'LIVE' to confirm live trading: ")
    if confirm != "LIVE":
        print("Live trading cancelled.")
        return False
    return True


async def run_bot(config: SessionConfig, feed_kind: str, duration_minutes: int) -> None:
    mode_str = "DRY RUN" if config.dry_run else "LIVE"

    print("\n" + "=" * 70)
    print(f"Starting Copy Trading Relay ({mode_str} MODE)")
    print("=" * 70)

    print("\nConfiguration:")
    for key, value in config.to_dict().items():
        print(f"  {key}: {value}")
    print(f"  Duration: {duration_minutes} minutes" if duration_minutes > 0 else "  Duration: Unlimited")
    print("\nPress Ctrl+C to stop\n")

    session = build_session(live=not config.dry_run, feed_kind=feed_kind)
    await session.start(config)

    stats = None
    try:
        elapsed = 0
        while session.is_active():
            await asyncio.sleep(1)
            elapsed += 1
            if duration_minutes > 0 and elapsed >= duration_minutes * 60:
                print(f"\nDuration limit reached ({duration_minutes} minutes)")
                break
            stats = session.get_stats()
    except (KeyboardInterrupt, asyncio.CancelledError):
        print("\nShutdown requested by user...")
    finally:
        stats = session.get_stats() or stats
        await session.stop()
        print_stats(stats)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run the Polymarket copy trading relay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_copy_bot.py --target 0xabc...                 # Dry run (default)
  python scripts/run_copy_bot.py --target 0xabc... --duration 60   # Run for 60 minutes
  python scripts/run_copy_bot.py --target 0xabc... --live          # Live trading (CAUTION)
        """,
    )

    parser.add_argument("--target", required=True, help="Wallet address to copy (0x + 40 hex)")
    parser.add_argument(
        "--channel",
        default=DEFAULT_CHANNEL_ID,
        help=f"Notification channel (default: {DEFAULT_CHANNEL_ID})",
    )
    parser.add_argument(
        "--live",
        action="store_true",
        help="Enable live trading (CAUTION: real money at risk)",
    )
    parser.add_argument("--size-scale", type=float, default=SIZE_SCALE,
                        help=f"Fraction of leader notional to copy (default: {SIZE_SCALE})")
    parser.add_argument("--max-size", type=float, default=MAX_SIZE_PER_TRADE, metavar="USD",
                        help=f"Max USDC per copied trade (default: {MAX_SIZE_PER_TRADE})")
    parser.add_argument("--slippage", type=float, default=MAX_SLIPPAGE,
                        help=f"Max slippage fraction (default: {MAX_SLIPPAGE})")
    parser.add_argument("--min-size", type=float, default=MIN_TRADE_SIZE, metavar="USD",
                        help=f"Min USDC per copied trade (default: {MIN_TRADE_SIZE})")
    parser.add_argument("--order-type", choices=["FOK", "FAK", "GTC"], default=ORDER_TYPE,
                        help=f"Order type (default: {ORDER_TYPE})")
    parser.add_argument("--categories", default=None,
                        help="Comma separated market tags to copy (default: all)")
    parser.add_argument("--total-limit", type=float, default=None, metavar="USD",
                        help="Stop the session once BUY spend would exceed this")
    parser.add_argument("--max-odds", type=float, default=None,
                        help="Skip BUY trades priced above this")
    parser.add_argument("--market-limit", type=float, default=None, metavar="USD",
                        help="Max BUY spend per market")
    parser.add_argument("--feed", choices=["poll", "ws"], default="poll",
                        help="Trade feed: Data API polling or activity WebSocket (default: poll)")
    parser.add_argument("--duration", type=int, default=0, metavar="MINUTES",
                        help="How long to run in minutes (0 = unlimited, default: 0)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    try:
        config = SessionConfig(
            target_address=args.target,
            channel_id=args.channel,
            dry_run=not args.live,
            size_scale=args.size_scale,
            max_size_per_trade=args.max_size,
            max_slippage=args.slippage,
            min_trade_size=args.min_size,
            order_type=args.order_type,
            categories=normalize_categories(args.categories),
            total_limit=args.total_limit,
            max_odds=args.max_odds,
            max_total_per_market=args.market_limit,
            started_by="cli",
        )
    except CopyTradingError as e:
        print(f"Error: {e}")
        sys.exit(2)

    if not config.dry_run and not confirm_live_trading():
        return

    setup_logging(verbose=args.verbose)

    try:
        asyncio.run(run_bot(config, feed_kind=args.feed, duration_minutes=args.duration))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"\nFatal error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
