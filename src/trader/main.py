"""Entry point for the RSI + MA swing trader.

Wires all components together, optionally embeds the FastAPI API, and
starts the orchestrator. When the API is enabled (default), the trading
loop and the API share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. TradingDatabase (SQLite connection and schema)
2. Stores (trades, portfolio, screening picks, watchlist, price cache)
3. Market data (Yahoo source behind a rate limiter and cache)
4. StrategyAnalyzer
5. Broker (AlpacaBroker in paper/live mode, none in simulation)
6. PortfolioLedger (initialized with the configured capital)
7. TradingEngine
8. Orchestrator
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from trader.config import AppSettings
from trader.data.database import TradingDatabase
from trader.data.store import (
    SqlitePortfolioStore,
    SqlitePriceCache,
    SqliteScreeningResultStore,
    SqliteTradeStore,
    SqliteWatchlist,
)
from trader.execution.broker import BrokerageOrderPlacer
from trader.logging import get_logger, setup_logging
from trader.market_data.cache import CachedMarketData
from trader.market_data.rate_limiter import ApiRateLimiter
from trader.market_data.yahoo import YahooMarketData
from trader.orchestrator import Orchestrator
from trader.strategy.analyzer import StrategyAnalyzer
from trader.trading.engine import TradingEngine
from trader.trading.ledger import PortfolioLedger


async def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all trader components from settings.

    Opens the database and initializes the portfolio row, so the caller
    owns closing ``database`` and ``engine``.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    logger = get_logger("trader.main")

    # 1. Open database
    database = TradingDatabase(settings.database.path)
    await database.connect()

    # 2. Stores
    trade_store = SqliteTradeStore(database)
    portfolio_store = SqlitePortfolioStore(database)
    screening_store = SqliteScreeningResultStore(database)
    watchlist = SqliteWatchlist(database)
    price_cache = SqlitePriceCache(database)

    # 3. Market data
    yahoo = YahooMarketData(ApiRateLimiter(settings.market_data.api_calls_per_minute))
    market_data = CachedMarketData(yahoo, yahoo, price_cache, settings.market_data)

    # 4. Strategy analyzer
    analyzer = StrategyAnalyzer(
        settings.strategy,
        history_provider=market_data,
        quote_provider=market_data,
        history_size=settings.market_data.history_size,
    )

    # 5. Broker based on mode
    broker: BrokerageOrderPlacer | None = None
    if settings.trading.mode in ("paper", "live"):
        if not settings.broker.api_key.get_secret_value():
            logger.warning(
                "no_api_keys_configured",
                mode=settings.trading.mode,
                note="Orders will fail and fall back to simulation.",
            )
        from trader.execution.alpaca import AlpacaBroker

        broker = AlpacaBroker(settings.broker)

    # 6. Ledger
    ledger = PortfolioLedger(portfolio_store)
    await ledger.initialize(settings.trading.initial_capital)

    # 7. Trading engine
    engine = TradingEngine(
        trade_store=trade_store,
        ledger=ledger,
        analyzer=analyzer,
        trading_settings=settings.trading,
        strategy_settings=settings.strategy,
        broker=broker,
    )

    # 8. Orchestrator
    orchestrator = Orchestrator(
        settings=settings,
        analyzer=analyzer,
        engine=engine,
        screening_store=screening_store,
        watchlist=watchlist,
    )

    return {
        "database": database,
        "market_data": market_data,
        "analyzer": analyzer,
        "broker": broker,
        "ledger": ledger,
        "engine": engine,
        "orchestrator": orchestrator,
    }


async def _shutdown(components: dict[str, Any]) -> None:
    await components["orchestrator"].stop()
    await components["engine"].close()
    await components["database"].close()


def _setup_signal_handlers(
    orchestrator: Orchestrator, stop_event: asyncio.Event | None = None
) -> None:
    """Register SIGINT/SIGTERM handlers for graceful shutdown.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("trader.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(orchestrator.stop())
        if stop_event is not None:
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage trader component lifecycle within the FastAPI application.

    On startup: stores the orchestrator on app.state and starts its loop.
    On shutdown: stops the orchestrator, closes the broker and database.
    """
    logger = get_logger("trader.main")
    settings = app.state.settings
    components = app.state.components

    app.state.orchestrator = components["orchestrator"]

    await components["orchestrator"].start()
    logger.info("lifespan_started", mode=settings.trading.mode)

    yield

    await _shutdown(components)
    logger.info("swing_trader_stopped")


async def run() -> None:
    """Run the swing trader.

    When the API is enabled (API_ENABLED=true, the default) uvicorn serves
    the app and the lifespan manages startup/shutdown. Otherwise the
    orchestrator loop runs until SIGINT/SIGTERM.
    """
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("trader.main")

    components = await _build_components(settings)

    if settings.api.enabled:
        from trader.api.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_api",
            host=settings.api.host,
            port=settings.api.port,
            mode=settings.trading.mode,
        )

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        stop_event = asyncio.Event()
        _setup_signal_handlers(components["orchestrator"], stop_event)

        logger.info(
            "starting_without_api",
            mode=settings.trading.mode,
            scan_interval=settings.trading.scan_interval,
            risk_per_trade=str(settings.trading.risk_per_trade),
        )

        try:
            await components["orchestrator"].start()
            await stop_event.wait()
        finally:
            await _shutdown(components)
            logger.info("swing_trader_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
