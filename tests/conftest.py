"""Shared test fixtures for the swing trader."""

from collections.abc import Sequence
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from trader.config import AppSettings, ScreeningSettings, StrategySettings, TradingSettings
from trader.data.database import TradingDatabase
from trader.data.store import (
    SqlitePortfolioStore,
    SqlitePriceCache,
    SqliteScreeningResultStore,
    SqliteTradeStore,
    SqliteWatchlist,
)
from trader.exceptions import MarketDataError
from trader.market_data.provider import PriceHistoryProvider, QuoteProvider
from trader.models import PriceBar, Quote, Trade, TradeAction
from trader.orchestrator import Orchestrator
from trader.strategy.analyzer import StrategyAnalyzer
from trader.trading.engine import TradingEngine
from trader.trading.ledger import PortfolioLedger

INITIAL_CASH = Decimal("100000")


def make_bars(
    closes: Sequence[Decimal | int | str],
    symbol: str = "TEST",
    spread: Decimal = Decimal("1"),
    start: date = date(2024, 1, 1),
) -> list[PriceBar]:
    """Build most-recent-first bars from CHRONOLOGICAL closes.

    Each bar has open == close, high = close + spread, low = close - spread.
    """
    bars = []
    for i, close in enumerate(closes):
        c = Decimal(str(close))
        bars.append(
            PriceBar(
                symbol=symbol,
                timestamp=start + timedelta(days=i),
                open=c,
                high=c + spread,
                low=c - spread,
                close=c,
                volume=1000,
            )
        )
    bars.reverse()
    return bars


def pullback_closes() -> list[int]:
    """60 chronological closes: 50-day climb from 100 to 149, then 10 drops of 3.

    The sharp pullback drives RSI(14) below 30 while SMA20 (138.5) is still
    above SMA50 (130.1), so the series produces a BUY.
    """
    return [100 + i for i in range(50)] + [149 - 3 * k for k in range(1, 11)]


def make_trade(
    symbol: str = "AAPL",
    action: TradeAction = TradeAction.BUY,
    quantity: int = 10,
    entry_price: Decimal = Decimal("100"),
    stop_loss: Decimal | None = None,
    take_profit: Decimal | None = None,
    entry_date: datetime | None = None,
) -> Trade:
    """Unsaved OPEN trade with sensible stop/target for its direction."""
    if stop_loss is None:
        stop_loss = entry_price - 5 if action == TradeAction.BUY else entry_price + 5
    if take_profit is None:
        take_profit = entry_price + 15 if action == TradeAction.BUY else entry_price - 15
    return Trade(
        symbol=symbol,
        action=action,
        quantity=quantity,
        entry_price=entry_price,
        entry_date=entry_date or datetime.now(timezone.utc),
        stop_loss=stop_loss,
        take_profit=take_profit,
        entry_reason="test entry",
        exit_criteria="test exit",
    )


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (simulation mode, no API keys)."""
    return AppSettings(
        log_level="DEBUG",
        trading=TradingSettings(mode="simulation", initial_capital=INITIAL_CASH),
        strategy=StrategySettings(),
        # GOOD screens at RSI ~23.3, just under the default 25 floor
        screening=ScreeningSettings(min_rsi=Decimal("20")),
    )


@pytest_asyncio.fixture
async def database():
    """Connected in-memory TradingDatabase."""
    db = TradingDatabase(":memory:")
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def trade_store(database: TradingDatabase) -> SqliteTradeStore:
    return SqliteTradeStore(database)


@pytest.fixture
def portfolio_store(database: TradingDatabase) -> SqlitePortfolioStore:
    return SqlitePortfolioStore(database)


@pytest.fixture
def screening_store(database: TradingDatabase) -> SqliteScreeningResultStore:
    return SqliteScreeningResultStore(database)


@pytest.fixture
def watchlist(database: TradingDatabase) -> SqliteWatchlist:
    return SqliteWatchlist(database)


@pytest.fixture
def price_cache(database: TradingDatabase) -> SqlitePriceCache:
    return SqlitePriceCache(database)


@pytest_asyncio.fixture
async def ledger(portfolio_store: SqlitePortfolioStore) -> PortfolioLedger:
    """Ledger with the portfolio initialized to INITIAL_CASH."""
    ledger = PortfolioLedger(portfolio_store)
    await ledger.initialize(INITIAL_CASH)
    return ledger


# Canned market data: GOOD produces a BUY at 119 (stop 115.64, 84 shares
# against 100k cash), FLAT a HOLD; any other symbol fails to fetch.
SERIES = {
    "GOOD": make_bars(pullback_closes(), symbol="GOOD"),
    "FLAT": make_bars([100] * 60, symbol="FLAT"),
}


@pytest.fixture
def canned_history() -> AsyncMock:
    provider = AsyncMock(spec=PriceHistoryProvider)

    async def bars_for(symbol: str, size_hint: str = "compact") -> list[PriceBar]:
        if symbol not in SERIES:
            raise MarketDataError(f"No price data for {symbol}")
        return SERIES[symbol]

    provider.get_daily_bars.side_effect = bars_for
    return provider


@pytest.fixture
def canned_quotes() -> AsyncMock:
    provider = AsyncMock(spec=QuoteProvider)

    async def quote_for(symbol: str) -> Quote:
        if symbol not in SERIES:
            raise MarketDataError(f"No quote for {symbol}")
        return Quote(symbol=symbol, price=SERIES[symbol][0].close)

    provider.get_quote.side_effect = quote_for
    return provider


@pytest.fixture
def trading_engine(
    mock_settings: AppSettings,
    trade_store: SqliteTradeStore,
    ledger: PortfolioLedger,
    canned_history: AsyncMock,
    canned_quotes: AsyncMock,
) -> TradingEngine:
    """Engine over the in-memory stores with a real analyzer on canned data."""
    analyzer = StrategyAnalyzer(mock_settings.strategy, canned_history, canned_quotes)
    return TradingEngine(
        trade_store, ledger, analyzer, mock_settings.trading, mock_settings.strategy
    )


@pytest.fixture
def orchestrator(
    mock_settings: AppSettings,
    trading_engine: TradingEngine,
    screening_store: SqliteScreeningResultStore,
    watchlist: SqliteWatchlist,
) -> Orchestrator:
    return Orchestrator(
        mock_settings, trading_engine.analyzer, trading_engine, screening_store, watchlist
    )
