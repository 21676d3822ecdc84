"""Caching layer in front of the upstream market data providers.

Bars: served from the SQLite price cache while younger than the max age;
otherwise refetched. When the refetch fails, whatever is cached is
returned, however old.

Quotes: held in memory for ``quote_cache_seconds``.
"""

import asyncio
import time
from collections.abc import Callable

from trader.config import MarketDataSettings
from trader.data.store import SqlitePriceCache
from trader.exceptions import MarketDataError
from trader.logging import get_logger
from trader.market_data.provider import PriceHistoryProvider, QuoteProvider, SizeHint
from trader.models import PriceBar, Quote

logger = get_logger(__name__)

_CACHE_LIMITS: dict[str, int] = {"compact": 100, "full": 1000}


class CachedMarketData(PriceHistoryProvider, QuoteProvider):
    """Wraps upstream providers with a bar cache and a quote TTL cache.

    Args:
        history_source: Upstream bar provider.
        quote_source: Upstream quote provider.
        price_cache: Persistent bar cache.
        settings: Cache ages.
        clock: Wall-clock time source (injectable for tests).
    """

    def __init__(
        self,
        history_source: PriceHistoryProvider,
        quote_source: QuoteProvider,
        price_cache: SqlitePriceCache,
        settings: MarketDataSettings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._history_source = history_source
        self._quote_source = quote_source
        self._price_cache = price_cache
        self._settings = settings
        self._clock = clock
        self._quotes: dict[str, Quote] = {}
        self._lock = asyncio.Lock()

    async def get_daily_bars(
        self, symbol: str, size_hint: SizeHint = "compact"
    ) -> list[PriceBar]:
        limit = _CACHE_LIMITS[size_hint]
        max_age = self._settings.bar_cache_max_age_hours * 3600

        fetched_at = await self._price_cache.get_last_fetched_at(symbol)
        if fetched_at is not None and self._clock() - fetched_at < max_age:
            cached = await self._price_cache.get_bars(symbol, limit)
            if cached:
                logger.debug(
                    "bar_cache_hit",
                    symbol=symbol,
                    age_hours=round((self._clock() - fetched_at) / 3600, 1),
                )
                return cached

        try:
            bars = await self._history_source.get_daily_bars(symbol, size_hint)
        except MarketDataError as e:
            stale = await self._price_cache.get_bars(symbol, limit)
            if stale:
                logger.warning("using_stale_bars", symbol=symbol, count=len(stale), error=str(e))
                return stale
            raise

        await self._price_cache.store_bars(symbol, bars)
        return bars[:limit]

    async def get_quote(self, symbol: str) -> Quote:
        async with self._lock:
            cached = self._quotes.get(symbol)
        ttl = self._settings.quote_cache_seconds
        if cached is not None and self._clock() - cached.fetched_at < ttl:
            return cached

        quote = await self._quote_source.get_quote(symbol)
        quote.fetched_at = self._clock()
        async with self._lock:
            self._quotes[symbol] = quote
        return quote

