"""Tests for CachedMarketData: bar freshness, stale fallback, quote TTL."""

import time
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from conftest import make_bars
from trader.config import MarketDataSettings
from trader.data.store import SqlitePriceCache
from trader.exceptions import MarketDataError
from trader.market_data.cache import CachedMarketData
from trader.market_data.provider import PriceHistoryProvider, QuoteProvider
from trader.models import Quote

DAY = 24 * 3600


@pytest.fixture
def history() -> AsyncMock:
    provider = AsyncMock(spec=PriceHistoryProvider)
    provider.get_daily_bars.return_value = make_bars(range(1, 151), symbol="AAPL")
    return provider


@pytest.fixture
def quotes() -> AsyncMock:
    provider = AsyncMock(spec=QuoteProvider)
    provider.get_quote.side_effect = lambda symbol: Quote(symbol=symbol, price=Decimal("187.5"))
    return provider


def _cached(history, quotes, price_cache, offset: float = 0.0) -> CachedMarketData:
    return CachedMarketData(
        history,
        quotes,
        price_cache,
        MarketDataSettings(quote_cache_seconds=300),
        clock=lambda: time.time() + offset,
    )


class TestBars:
    @pytest.mark.asyncio
    async def test_miss_fetches_and_stores(
        self, history: AsyncMock, quotes: AsyncMock, price_cache: SqlitePriceCache
    ) -> None:
        market = _cached(history, quotes, price_cache)

        bars = await market.get_daily_bars("AAPL")

        assert len(bars) == 100
        assert bars[0].close == Decimal("150")
        assert len(await price_cache.get_bars("AAPL", limit=500)) == 150
        history.get_daily_bars.assert_awaited_once_with("AAPL", "compact")

    @pytest.mark.asyncio
    async def test_fresh_cache_skips_upstream(
        self, history: AsyncMock, quotes: AsyncMock, price_cache: SqlitePriceCache
    ) -> None:
        market = _cached(history, quotes, price_cache)
        await market.get_daily_bars("AAPL")

        again = await market.get_daily_bars("AAPL")

        assert len(again) == 100
        assert history.get_daily_bars.await_count == 1

    @pytest.mark.asyncio
    async def test_expired_cache_refetches(
        self, history: AsyncMock, quotes: AsyncMock, price_cache: SqlitePriceCache
    ) -> None:
        await price_cache.store_bars("AAPL", make_bars([1, 2, 3], symbol="AAPL"))
        market = _cached(history, quotes, price_cache, offset=2 * DAY)

        bars = await market.get_daily_bars("AAPL")

        assert bars[0].close == Decimal("150")
        history.get_daily_bars.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upstream_failure_serves_stale(
        self, history: AsyncMock, quotes: AsyncMock, price_cache: SqlitePriceCache
    ) -> None:
        await price_cache.store_bars("AAPL", make_bars([1, 2, 3], symbol="AAPL"))
        history.get_daily_bars.side_effect = MarketDataError("rate limited")
        market = _cached(history, quotes, price_cache, offset=30 * DAY)

        bars = await market.get_daily_bars("AAPL")

        assert [b.close for b in bars] == [Decimal("3"), Decimal("2"), Decimal("1")]

    @pytest.mark.asyncio
    async def test_upstream_failure_without_cache_raises(
        self, history: AsyncMock, quotes: AsyncMock, price_cache: SqlitePriceCache
    ) -> None:
        history.get_daily_bars.side_effect = MarketDataError("unknown symbol")
        market = _cached(history, quotes, price_cache)

        with pytest.raises(MarketDataError):
            await market.get_daily_bars("NOPE")


class TestQuotes:
    @pytest.mark.asyncio
    async def test_quote_cached_within_ttl(
        self, history: AsyncMock, quotes: AsyncMock, price_cache: SqlitePriceCache
    ) -> None:
        market = _cached(history, quotes, price_cache)

        first = await market.get_quote("AAPL")
        second = await market.get_quote("AAPL")

        assert first is second
        assert quotes.get_quote.await_count == 1

    @pytest.mark.asyncio
    async def test_quote_refreshed_after_ttl(
        self, history: AsyncMock, quotes: AsyncMock, price_cache: SqlitePriceCache
    ) -> None:
        now = [1000.0]
        market = CachedMarketData(
            history,
            quotes,
            price_cache,
            MarketDataSettings(quote_cache_seconds=300),
            clock=lambda: now[0],
        )

        await market.get_quote("AAPL")
        now[0] += 301
        await market.get_quote("AAPL")

        assert quotes.get_quote.await_count == 2
