"""
Tests for market metadata lookup.

Tests cover:
- Token / tick size / neg-risk resolution via Gamma + CLOB
- Case-insensitive outcome matching
- TTL cache behaviour
- Not-found errors
- MarketInfoCache placeholders on failure
"""

from unittest.mock import MagicMock

import pytest

from src.api.gamma import GammaClient
from src.copytrade.errors import MarketNotFoundError, OutcomeNotFoundError
from src.copytrade.markets import MarketInfo, MarketInfoCache, MarketMetadataResolver

GAMMA_MARKET = {
    "question": "Will it rain tomorrow?",
    "slug": "will-it-rain",
    "conditionId": "0xcond",
    "events": [{"slug": "weather-week", "tags": [{"label": "Weather", "slug": "weather"}]}],
    "tags": '["Science"]',
}

CLOB_MARKET = {
    "condition_id": "0xcond",
    "tokens": [
        {"token_id": "111", "outcome": "Yes"},
        {"token_id": "222", "outcome": "No"},
    ],
}


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def gamma():
    client = MagicMock()
    client.get_market_by_slug = MagicMock(return_value=dict(GAMMA_MARKET))
    client.get_market = MagicMock(return_value=dict(GAMMA_MARKET))
    client.get_event_slug = GammaClient.get_event_slug
    client.get_tags = GammaClient.get_tags
    return client


@pytest.fixture
def clob():
    client = MagicMock()
    client.get_market = MagicMock(return_value=CLOB_MARKET)
    client.get_tick_size = MagicMock(return_value="0.01")
    client.get_neg_risk = MagicMock(side_effect=lambda token_id: token_id == "222")
    return client


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def resolver(gamma, clob, clock):
    return MarketMetadataResolver(gamma, clob, cache_ttl=300.0, clock=clock)


class TestMarketMetadataResolver:
    """Tests for instrument resolution."""

    def test_resolves_token(self, resolver, clob):
        metadata = resolver.resolve("will-it-rain", "Yes")

        assert metadata.token_id == "111"
        assert metadata.tick_size == "0.01"
        assert metadata.neg_risk is False
        assert metadata.question == "Will it rain tomorrow?"
        assert metadata.condition_id == "0xcond"
        clob.get_market.assert_called_once_with("0xcond")

    def test_outcome_case_insensitive(self, resolver):
        assert resolver.resolve("will-it-rain", "no").token_id == "222"
        assert resolver.resolve("will-it-rain", "NO").neg_risk is True

    def test_cached_within_ttl(self, resolver, gamma, clock):
        resolver.resolve("will-it-rain", "Yes")
        clock.now += 299
        resolver.resolve("will-it-rain", "No")

        assert gamma.get_market_by_slug.call_count == 1
        assert resolver.cache_size() == 1

    def test_refetched_after_ttl(self, resolver, gamma, clock):
        resolver.resolve("will-it-rain", "Yes")
        clock.now += 301
        resolver.resolve("will-it-rain", "Yes")

        assert gamma.get_market_by_slug.call_count == 2

    def test_clear_cache(self, resolver, gamma):
        resolver.resolve("will-it-rain", "Yes")
        resolver.clear_cache()
        resolver.resolve("will-it-rain", "Yes")

        assert gamma.get_market_by_slug.call_count == 2

    def test_unknown_market(self, resolver, gamma):
        gamma.get_market_by_slug.return_value = None

        with pytest.raises(MarketNotFoundError, match="Market not found: gone"):
            resolver.resolve("gone", "Yes")

    def test_gamma_market_without_condition_id(self, resolver, gamma, clob):
        gamma.get_market_by_slug.return_value = {"question": "Will it rain tomorrow?", "slug": "will-it-rain"}

        with pytest.raises(MarketNotFoundError, match="no condition id"):
            resolver.resolve("will-it-rain", "Yes")

        clob.get_market.assert_not_called()

    def test_clob_market_without_tokens(self, resolver, clob):
        clob.get_market.return_value = {"tokens": []}

        with pytest.raises(MarketNotFoundError, match="CLOB market data not found"):
            resolver.resolve("will-it-rain", "Yes")

    def test_unknown_outcome_lists_available(self, resolver):
        with pytest.raises(OutcomeNotFoundError) as exc_info:
            resolver.resolve("will-it-rain", "Maybe")

        assert "Available: YES, NO" in str(exc_info.value)


class TestMarketInfoCache:
    """Tests for display metadata."""

    def test_builds_info(self, gamma):
        cache = MarketInfoCache(gamma)

        info = cache.get("will-it-rain")

        assert info == MarketInfo(
            name="Will it rain tomorrow?",
            slug="will-it-rain",
            event_slug="weather-week",
            tags=("science", "weather"),
        )

    def test_cached(self, gamma):
        cache = MarketInfoCache(gamma)
        cache.get("will-it-rain")
        cache.get("will-it-rain")

        assert gamma.get_market_by_slug.call_count == 1
        assert cache.size() == 1

    def test_condition_id_fallback(self, gamma):
        gamma.get_market_by_slug.return_value = None
        cache = MarketInfoCache(gamma)

        info = cache.get("", "0xcond")

        gamma.get_market.assert_called_once_with("0xcond")
        assert info.slug == "will-it-rain"

    def test_failure_returns_placeholder(self, gamma):
        gamma.get_market_by_slug.side_effect = ConnectionError("gamma down")
        cache = MarketInfoCache(gamma)

        info = cache.get("will-it-rain-tomorrow")

        assert info.name == "Market will-it-ra..."
        assert info.tags == ()
        # placeholders are not cached
        assert cache.size() == 0

    def test_unknown_market_returns_placeholder(self, gamma):
        gamma.get_market_by_slug.return_value = None
        gamma.get_market.return_value = None
        cache = MarketInfoCache(gamma)

        info = cache.get("gone", "0xcond")

        assert info.slug == "gone"
        assert info.name.startswith("Market ")
