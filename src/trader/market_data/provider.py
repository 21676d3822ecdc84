"""Abstract market data interfaces.

Strategy and trading code depends only on these contracts. The concrete
Yahoo implementation and its cache live beside them.
"""

from abc import ABC, abstractmethod
from typing import Literal

from trader.models import PriceBar, Quote

SizeHint = Literal["compact", "full"]


class PriceHistoryProvider(ABC):
    """Source of daily OHLCV history."""

    @abstractmethod
    async def get_daily_bars(
        self, symbol: str, size_hint: SizeHint = "compact"
    ) -> list[PriceBar]:
        """Return daily bars ordered most-recent-first.

        May serve cached or stale bars when the upstream source fails.

        Raises:
            MarketDataError: If no bars can be produced at all.
        """
        ...


class QuoteProvider(ABC):
    """Source of latest quotes."""

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """Return the latest quote for a symbol.

        Raises:
            MarketDataError: If the quote cannot be retrieved.
        """
        ...
