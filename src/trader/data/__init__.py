"""Persistence layer.

Abstract store contracts plus the aiosqlite-backed implementations for
trades, the portfolio row, screening picks, the watchlist, and cached
price bars.
"""

from trader.data.base import PortfolioStore, ScreeningResultStore, TradeStore
from trader.data.database import TradingDatabase
from trader.data.store import (
    SqlitePortfolioStore,
    SqlitePriceCache,
    SqliteScreeningResultStore,
    SqliteTradeStore,
    SqliteWatchlist,
)

__all__ = [
    "PortfolioStore",
    "ScreeningResultStore",
    "SqlitePortfolioStore",
    "SqlitePriceCache",
    "SqliteScreeningResultStore",
    "SqliteTradeStore",
    "SqliteWatchlist",
    "TradeStore",
    "TradingDatabase",
]
