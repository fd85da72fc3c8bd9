"""
py-clob-client bootstrap.

IMPORTANT: Live trading requires credentials in the .env file:
- POLYMARKET_PRIVATE_KEY: Your wallet private key
- POLYMARKET_FUNDER: Your proxy wallet address (holds funds)
"""
import logging

from py_clob_client.client import ClobClient

from ..config import (
    CHAIN_ID,
    CLOB_BASE_URL,
    POLYMARKET_FUNDER,
    POLYMARKET_PRIVATE_KEY,
    POLYMARKET_SIGNATURE_TYPE,
)
from .errors import SessionError

logger = logging.getLogger(__name__)

# L2 = API-key authenticated, required for posting orders
L2_AUTH_MODE = 2


def create_clob_client(
    private_key: str = POLYMARKET_PRIVATE_KEY,
    funder: str = POLYMARKET_FUNDER,
    signature_type: int = POLYMARKET_SIGNATURE_TYPE,
    host: str = CLOB_BASE_URL,
    chain_id: int = CHAIN_ID,
) -> ClobClient:
    """
    Build an authenticated ClobClient for order submission.

    Raises:
        SessionError: Missing credentials or API key derivation failure
    """
    if not private_key:
        raise SessionError("POLYMARKET_PRIVATE_KEY not set")
    if not funder:
        raise SessionError("POLYMARKET_FUNDER not set")

    # Ensure private key has 0x prefix
    key = private_key if private_key.startswith("0x") else "0x" + private_key

    try:
        client = ClobClient(
            host,
            key=key,
            chain_id=chain_id,
            funder=funder,
            signature_type=signature_type,
        )
        creds = client.create_or_derive_api_creds()
        client.set_api_creds(creds)
    except Exception as e:
        raise SessionError(f"Failed to initialize CLOB client: {e}") from e

    if client.mode < L2_AUTH_MODE:
        raise SessionError(f"Failed to reach L2 auth (mode={client.mode})")

    logger.info("CLOB client initialized")
    logger.info(f"   Signing wallet: {client.get_address()}")
    logger.info(f"   Funder (proxy): {funder}")
    return client


def create_read_only_client(host: str = CLOB_BASE_URL, chain_id: int = CHAIN_ID) -> ClobClient:
    """Unauthenticated client for market, tick size and neg-risk lookups."""
    return ClobClient(host, chain_id=chain_id)
