"""Configuration management for the Polymarket copy-trading relay."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_float(key: str, default: float) -> float:
    """Read a float from the environment, rejecting garbage values."""
    value = os.getenv(key)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Invalid number for {key}: {value}")


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid number for {key}: {value}")


# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

LOGS_DIR = PROJECT_ROOT / "logs"
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# Polymarket credentials
POLYMARKET_PRIVATE_KEY = os.getenv("POLYMARKET_PRIVATE_KEY", "")
POLYMARKET_FUNDER = os.getenv("POLYMARKET_FUNDER", "")

# 2 = GNOSIS_SAFE (proxy wallet holding the funds)
POLYMARKET_SIGNATURE_TYPE = _env_int("POLYMARKET_SIGNATURE_TYPE", 2)

# =============================================================================
# COPY TRADING DEFAULTS
# =============================================================================

# Fraction of the leader's USDC notional to copy (0 < scale <= 1)
SIZE_SCALE = _env_float("SIZE_SCALE", 0.1)

# Hard cap per copied trade (USDC)
MAX_SIZE_PER_TRADE = _env_float("MAX_SIZE_PER_TRADE", 10.0)

# Price tolerance applied to the leader's price (0.03 = 3%)
MAX_SLIPPAGE = _env_float("MAX_SLIPPAGE", 0.03)

# Copies smaller than this are skipped (USDC)
MIN_TRADE_SIZE = _env_float("MIN_TRADE_SIZE", 5.0)

# FOK, FAK or GTC
ORDER_TYPE = os.getenv("ORDER_TYPE", "FOK").upper()

# =============================================================================
# NOTIFICATIONS
# =============================================================================

DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL", "")
DEFAULT_CHANNEL_ID = os.getenv("DEFAULT_CHANNEL_ID", "default")

# =============================================================================
# RUNTIME
# =============================================================================

# Seconds between Data API polls
FEED_POLL_INTERVAL = _env_float("FEED_POLL_INTERVAL", 2.0)

# Upper bound on a single order submission (seconds)
SUBMIT_TIMEOUT = _env_float("SUBMIT_TIMEOUT", 10.0)

# Market metadata cache lifetime (seconds)
METADATA_CACHE_TTL = _env_float("METADATA_CACHE_TTL", 300.0)

# Number of recently seen transaction hashes kept for deduplication
DEDUPE_CAPACITY = _env_int("DEDUPE_CAPACITY", 2000)

# =============================================================================
# API ENDPOINTS
# =============================================================================

CLOB_BASE_URL = os.getenv("CLOB_BASE_URL", "https://clob.polymarket.com")
GAMMA_API_URL = os.getenv("GAMMA_API_URL", "https://gamma-api.polymarket.com")
DATA_API_URL = os.getenv("DATA_API_URL", "https://data-api.polymarket.com")
ACTIVITY_WS_URL = os.getenv("ACTIVITY_WS_URL", "wss://ws-live-data.polymarket.com")

# Chain configuration (Polygon)
CHAIN_ID = 137
