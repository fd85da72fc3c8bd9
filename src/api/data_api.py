"""Polymarket Data API client (wallet activity)."""
import logging
from typing import Dict, List, Optional

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import DATA_API_URL

logger = logging.getLogger(__name__)

MAX_RETRY_ATTEMPTS = 3
RETRY_MIN_WAIT = 0.5  # seconds
RETRY_MAX_WAIT = 2.0  # seconds


class DataApiClient:
    """
    Client for the public Data API.

    Example:
        client = DataApiClient()
        for row in client.get_trades("0xabc..."):
            print(row["side"], row["outcome"], row["price"])
    """

    def __init__(self, base_url: str = DATA_API_URL, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    @retry(
        stop=stop_after_attempt(MAX_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=RETRY_MIN_WAIT, max=RETRY_MAX_WAIT),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _get(self, endpoint: str, params: Optional[Dict] = None):
        response = self.session.get(
            f"{self.base_url}{endpoint}", params=params, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def get_trades(self, user: str, limit: int = 50) -> List[Dict]:
        """
        Most recent trades of a wallet, newest first.

        Args:
            user: Wallet (proxy) address
            limit: Max rows
        """
        result = self._get(
            "/activity",
            {"user": user.lower(), "type": "TRADE", "limit": limit, "sortDirection": "DESC"},
        )
        if isinstance(result, list):
            return result
        return result.get("data", []) if result else []
