"""Gamma API client for market metadata."""
import json
import logging
from typing import Dict, List, Optional

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import GAMMA_API_URL

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRY_ATTEMPTS = 3
RETRY_MIN_WAIT = 0.5  # seconds
RETRY_MAX_WAIT = 2.0  # seconds


def _as_list(value) -> list:
    """Gamma encodes some list fields as JSON strings."""
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return [value]
    return list(value) if isinstance(value, (list, tuple)) else []


class GammaClient:
    """
    Client for Polymarket Gamma API.

    Used for:
    - Market lookup by slug or condition id
    - Parent event slug for grouped markets
    - Market tags (category filtering)
    """

    def __init__(self, base_url: str = GAMMA_API_URL, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": "CopyRelay/1.0",
        })

    @retry(
        stop=stop_after_attempt(MAX_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=RETRY_MIN_WAIT, max=RETRY_MAX_WAIT),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _get(self, endpoint: str, params: Optional[Dict] = None):
        """Make GET request. Returns None on 404."""
        response = self.session.get(
            f"{self.base_url}{endpoint}", params=params, timeout=self.timeout
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def get_market_by_slug(self, slug: str) -> Optional[Dict]:
        """Get market by slug, or None if unknown."""
        if not slug:
            return None
        result = self._get(f"/markets/slug/{slug}")
        if isinstance(result, list):
            return result[0] if result else None
        return result or None

    def get_market(self, condition_id: str) -> Optional[Dict]:
        """Get market by condition ID, or None if unknown."""
        if not condition_id:
            return None
        result = self._get("/markets", {"condition_ids": condition_id})
        if isinstance(result, list):
            return result[0] if result else None
        return result or None

    @staticmethod
    def get_event_slug(market: Dict) -> Optional[str]:
        """Parent event slug, for markets grouped under an event."""
        events = market.get("events") or []
        if events and isinstance(events[0], dict):
            return events[0].get("slug")
        return market.get("eventSlug")

    @staticmethod
    def get_tags(market: Dict) -> List[str]:
        """
        Collect lower-case tag labels and slugs from a market.

        Tags live either on the market or on its parent events.
        """
        raw = list(_as_list(market.get("tags")))
        for event in market.get("events") or []:
            if isinstance(event, dict):
                raw.extend(_as_list(event.get("tags")))

        tags = []
        for tag in raw:
            if isinstance(tag, dict):
                candidates = [tag.get("label"), tag.get("slug")]
            else:
                candidates = [tag]
            for value in candidates:
                if value and str(value).lower() not in tags:
                    tags.append(str(value).lower())
        return tags
