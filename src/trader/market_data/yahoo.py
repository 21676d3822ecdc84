"""Yahoo Finance market data via yfinance.

yfinance is synchronous, so every upstream call runs in a worker thread
through asyncio.to_thread. Floats from pandas are converted with
Decimal(str(x)) at this boundary; nothing past it sees a float.
"""

import asyncio
import math
from decimal import Decimal

import yfinance as yf

from trader.exceptions import MarketDataError
from trader.logging import get_logger
from trader.market_data.provider import PriceHistoryProvider, QuoteProvider, SizeHint
from trader.market_data.rate_limiter import ApiRateLimiter
from trader.models import PriceBar, Quote

logger = get_logger(__name__)

# yfinance period per size hint; compact must cover ma_long_period + padding
_PERIODS: dict[str, str] = {"compact": "6mo", "full": "2y"}


def _to_decimal(value: object) -> Decimal:
    if value is None:
        return Decimal("0")
    number = float(value)
    if math.isnan(number):
        return Decimal("0")
    return Decimal(str(number))


class YahooMarketData(PriceHistoryProvider, QuoteProvider):
    """Daily bars and quotes from Yahoo Finance.

    Args:
        rate_limiter: Optional limiter awaited before each upstream call.
    """

    def __init__(self, rate_limiter: ApiRateLimiter | None = None) -> None:
        self._rate_limiter = rate_limiter

    async def _throttle(self) -> None:
        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()

    @staticmethod
    def _fetch_history(symbol: str, period: str) -> list[PriceBar]:
        frame = yf.Ticker(symbol).history(period=period, interval="1d", auto_adjust=False)
        bars: list[PriceBar] = []
        for row in frame.itertuples():
            if math.isnan(row.Close):
                continue
            bars.append(
                PriceBar(
                    symbol=symbol,
                    timestamp=row.Index.date(),
                    open=_to_decimal(row.Open),
                    high=_to_decimal(row.High),
                    low=_to_decimal(row.Low),
                    close=_to_decimal(row.Close),
                    volume=0 if math.isnan(row.Volume) else int(row.Volume),
                )
            )
        bars.reverse()  # most recent first
        return bars

    @staticmethod
    def _fetch_quote(symbol: str) -> Quote:
        info = yf.Ticker(symbol).fast_info
        price = _to_decimal(info.last_price)
        previous_close = _to_decimal(info.previous_close)

        change = price - previous_close
        change_percent = (
            (change / previous_close * 100).quantize(Decimal("0.01"))
            if previous_close
            else Decimal("0")
        )
        return Quote(
            symbol=symbol,
            price=price,
            previous_close=previous_close,
            open=_to_decimal(info.open),
            high=_to_decimal(info.day_high),
            low=_to_decimal(info.day_low),
            volume=int(_to_decimal(info.last_volume)),
            change=change,
            change_percent=change_percent,
        )

    async def get_daily_bars(
        self, symbol: str, size_hint: SizeHint = "compact"
    ) -> list[PriceBar]:
        await self._throttle()
        try:
            bars = await asyncio.to_thread(self._fetch_history, symbol, _PERIODS[size_hint])
        except Exception as e:
            raise MarketDataError(f"Failed to fetch history for {symbol}: {e}") from e

        if not bars:
            raise MarketDataError(f"No price history returned for {symbol}")

        logger.info("daily_bars_fetched", symbol=symbol, count=len(bars), size_hint=size_hint)
        return bars

    async def get_quote(self, symbol: str) -> Quote:
        await self._throttle()
        try:
            quote = await asyncio.to_thread(self._fetch_quote, symbol)
        except Exception as e:
            raise MarketDataError(f"Failed to fetch quote for {symbol}: {e}") from e

        if quote.price <= 0:
            raise MarketDataError(f"No valid price for {symbol}")

        logger.debug("quote_fetched", symbol=symbol, price=str(quote.price))
        return quote
