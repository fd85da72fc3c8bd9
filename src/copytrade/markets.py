"""
Market metadata lookup.

MarketMetadataResolver maps (market slug, outcome) to the CLOB instrument
needed for signing: token id, tick size and neg-risk flag. Results for all
outcomes of a market are cached together for a limited time.

MarketInfoCache holds display data (question, slugs, tags) used for category
filtering and notifications. It never raises: a lookup failure yields a
placeholder so a metadata outage cannot abort a copy.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from ..config import METADATA_CACHE_TTL
from .errors import MarketNotFoundError, OutcomeNotFoundError
from .models import InstrumentMetadata

logger = logging.getLogger(__name__)


@dataclass
class _ResolverEntry:
    metadata: Dict[str, InstrumentMetadata]
    fetched_at: float


class MarketMetadataResolver:
    """
    Resolves instrument metadata from Gamma + CLOB, with a TTL cache.

    Args:
        gamma: GammaClient (market lookup by slug)
        clob: py-clob-client ClobClient (read-only is enough)
        cache_ttl: Cache lifetime in seconds (default 5 minutes)
        clock: Monotonic time source
    """

    def __init__(
        self,
        gamma,
        clob,
        cache_ttl: float = METADATA_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.gamma = gamma
        self.clob = clob
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._cache: Dict[str, _ResolverEntry] = {}

    def resolve(self, market_slug: str, outcome: str) -> InstrumentMetadata:
        """
        Resolve the instrument for a market outcome.

        Raises:
            MarketNotFoundError: Unknown market, or no CLOB tokens for it
            OutcomeNotFoundError: Market has no such outcome
        """
        normalized = outcome.upper()

        cached = self._cache.get(market_slug)
        if cached and self._clock() - cached.fetched_at < self.cache_ttl:
            metadata = cached.metadata.get(normalized)
            if metadata:
                logger.debug(f"Cache hit for {market_slug} / {normalized}")
                return metadata

        logger.info(f"Fetching market metadata for {market_slug}...")
        gamma_market = self.gamma.get_market_by_slug(market_slug)
        if not gamma_market:
            raise MarketNotFoundError(market_slug)

        condition_id = gamma_market.get("conditionId") or gamma_market.get("condition_id")
        if not condition_id:
            raise MarketNotFoundError(market_slug, "no condition id")

        clob_market = self.clob.get_market(condition_id)
        if not clob_market or not clob_market.get("tokens"):
            raise MarketNotFoundError(
                market_slug, f"CLOB market data not found for condition {condition_id}"
            )

        question = gamma_market.get("question") or market_slug
        metadata_map: Dict[str, InstrumentMetadata] = {}
        for token in clob_market["tokens"]:
            token_id = token["token_id"]
            metadata_map[str(token["outcome"]).upper()] = InstrumentMetadata(
                token_id=token_id,
                tick_size=str(self.clob.get_tick_size(token_id)),
                neg_risk=bool(self.clob.get_neg_risk(token_id)),
                question=question,
                condition_id=condition_id,
            )

        self._cache[market_slug] = _ResolverEntry(metadata=metadata_map, fetched_at=self._clock())

        metadata = metadata_map.get(normalized)
        if metadata is None:
            raise OutcomeNotFoundError(market_slug, outcome, metadata_map.keys())

        logger.info(f"Resolved {market_slug} / {normalized} -> Token {metadata.token_id}")
        return metadata

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Market metadata cache cleared")

    def cache_size(self) -> int:
        return len(self._cache)


@dataclass(frozen=True)
class MarketInfo:
    """Display and category data for a market."""

    name: str
    slug: str
    event_slug: Optional[str] = None
    tags: tuple = field(default_factory=tuple)


class MarketInfoCache:
    """In-memory cache of MarketInfo keyed by slug or condition id."""

    def __init__(self, gamma):
        self.gamma = gamma
        self._cache: Dict[str, MarketInfo] = {}

    def get(self, slug: str, condition_id: str = "") -> MarketInfo:
        key = slug or condition_id
        cached = self._cache.get(key)
        if cached:
            return cached

        try:
            market = None
            if slug:
                market = self.gamma.get_market_by_slug(slug)
            if not market and condition_id:
                market = self.gamma.get_market(condition_id)
            if not market:
                raise MarketNotFoundError(key)

            info = MarketInfo(
                name=market.get("question") or "Unknown Market",
                slug=market.get("slug") or slug,
                event_slug=self.gamma.get_event_slug(market),
                tags=tuple(self.gamma.get_tags(market)),
            )
        except Exception as e:
            logger.error(f"Failed to fetch market {key}: {e}")
            return MarketInfo(name=f"Market {key[:10]}...", slug=slug)

        self._cache[key] = info
        return info

    def clear(self) -> None:
        self._cache.clear()

    def size(self) -> int:
        return len(self._cache)
