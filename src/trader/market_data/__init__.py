"""Market data: provider contracts, Yahoo Finance source, caching and pacing."""

from trader.market_data.cache import CachedMarketData
from trader.market_data.provider import PriceHistoryProvider, QuoteProvider, SizeHint
from trader.market_data.rate_limiter import ApiRateLimiter
from trader.market_data.yahoo import YahooMarketData

__all__ = [
    "ApiRateLimiter",
    "CachedMarketData",
    "PriceHistoryProvider",
    "QuoteProvider",
    "SizeHint",
    "YahooMarketData",
]
