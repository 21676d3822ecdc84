"""Abstract persistence contracts consumed by the trading core.

The lifecycle and orchestration code depends only on these interfaces;
SQLite implementations live in trader.data.store.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from decimal import Decimal

from trader.models import Portfolio, ScreeningResult, Trade


class TradeStore(ABC):
    """Persistence for trade records."""

    @abstractmethod
    async def create_trade(self, trade: Trade) -> int:
        """Insert a trade and return its newly assigned id."""
        ...

    @abstractmethod
    async def get_trade(self, trade_id: int) -> Trade | None:
        ...

    @abstractmethod
    async def update_trade(self, trade_id: int, changes: Mapping[str, object]) -> None:
        """Apply a partial update. Keys are Trade attribute names."""
        ...

    @abstractmethod
    async def get_open_trades(self) -> list[Trade]:
        ...

    @abstractmethod
    async def get_closed_trades(self) -> list[Trade]:
        ...

    @abstractmethod
    async def get_trades_by_symbol(self, symbol: str) -> list[Trade]:
        ...

    @abstractmethod
    async def get_all_trades(self) -> list[Trade]:
        """Return every trade ordered by entry date, newest first."""
        ...


class PortfolioStore(ABC):
    """Persistence for the singleton portfolio row."""

    @abstractmethod
    async def ensure_portfolio(self, initial_cash: Decimal) -> Portfolio:
        """Create the portfolio with ``initial_cash`` if it does not exist yet."""
        ...

    @abstractmethod
    async def get_portfolio(self) -> Portfolio:
        ...

    @abstractmethod
    async def update_cash(self, cash: Decimal) -> None:
        ...

    @abstractmethod
    async def update_total_value(self, total_value: Decimal) -> None:
        ...


class ScreeningResultStore(ABC):
    """Persistence for end-of-day screening picks."""

    @abstractmethod
    async def store_results(self, results: Sequence[ScreeningResult]) -> int:
        """Clear prior unexecuted results, then store the new ones."""
        ...

    @abstractmethod
    async def get_unexecuted(self) -> list[ScreeningResult]:
        ...

    @abstractmethod
    async def mark_executed(self, result_id: int) -> None:
        ...
