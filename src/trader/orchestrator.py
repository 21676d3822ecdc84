"""Screening and batch orchestration -- the single entry point for runs.

Each cycle:
  0. APPLY: Runtime config overrides (if set through the API)
  1. MONITOR: Check open trades for exits (always before new entries)
  2. SCREEN & TRADE: Analyse symbols, open trades for BUY/SELL signals
  3. REPORT: Portfolio statistics

Cycles are serialized by a cycle lock so on-demand runs and the timer
loop never overlap. The split end-of-day flow (screen_and_store, then
execute_stored_picks next session) uses the same lock.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from structlog.contextvars import bound_contextvars

from trader.config import AppSettings, RuntimeConfig
from trader.data.base import ScreeningResultStore
from trader.data.store import SqliteWatchlist
from trader.exceptions import InsufficientFundsError
from trader.logging import get_logger
from trader.models import ScreeningResult
from trader.pnl.calculator import PortfolioStats
from trader.strategy.analyzer import StrategyAnalyzer
from trader.strategy.models import ScreeningCriteria
from trader.trading.engine import MonitorReport, TradingEngine

logger = get_logger(__name__)

ERROR_ACTION = "ERROR"


@dataclass
class SymbolOutcome:
    """What happened to one symbol in a batch."""

    symbol: str
    action: str  # BUY/SELL/HOLD, or ERROR when analysis failed
    rsi: Decimal
    reason: str
    trade_created: bool = False
    trade_id: int | None = None
    error: str | None = None


@dataclass
class BatchResult:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    trades_created: int = 0
    outcomes: list[SymbolOutcome] = field(default_factory=list)


@dataclass
class CycleResult:
    monitor: MonitorReport
    batch: BatchResult
    stats: PortfolioStats


@dataclass
class ScreeningRun:
    """Summary of an end-of-day scan and the picks it stored."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    picks: list[ScreeningResult] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


class Orchestrator:
    """Drives analysis and trading over many symbols.

    Args:
        settings: Application-wide settings (mutated by runtime overrides).
        analyzer: Per-symbol strategy analysis.
        engine: Trade lifecycle engine.
        screening_store: Persistence for end-of-day picks.
        watchlist: Default symbol universe for cycles.
    """

    def __init__(
        self,
        settings: AppSettings,
        analyzer: StrategyAnalyzer,
        engine: TradingEngine,
        screening_store: ScreeningResultStore,
        watchlist: SqliteWatchlist,
    ) -> None:
        self._settings = settings
        self._analyzer = analyzer
        self._engine = engine
        self._screening_store = screening_store
        self._watchlist = watchlist
        self._running = False
        self._stopping = False
        self._cycle_lock = asyncio.Lock()
        self._runtime_config: RuntimeConfig | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        """Whether the timer loop is active."""
        return self._running

    @property
    def engine(self) -> TradingEngine:
        return self._engine

    @property
    def analyzer(self) -> StrategyAnalyzer:
        return self._analyzer

    @property
    def watchlist(self) -> SqliteWatchlist:
        return self._watchlist

    @property
    def screening_store(self) -> ScreeningResultStore:
        return self._screening_store

    @property
    def runtime_config(self) -> RuntimeConfig | None:
        """Current runtime config overlay, if set."""
        return self._runtime_config

    @runtime_config.setter
    def runtime_config(self, config: RuntimeConfig) -> None:
        self._runtime_config = config
        logger.info("runtime_config_updated", config=str(config))

    def _apply_runtime_config(self) -> None:
        """Apply runtime config overrides to settings if set.

        Called at the start of each cycle so API changes take effect on
        the next run without restarting.
        """
        rc = self._runtime_config
        if rc is None:
            return
        if rc.risk_per_trade is not None:
            self._settings.trading.risk_per_trade = rc.risk_per_trade
        if rc.max_position_size is not None:
            self._settings.trading.max_position_size = rc.max_position_size
        if rc.rsi_oversold is not None:
            self._settings.strategy.rsi_oversold = rc.rsi_oversold
        if rc.rsi_overbought is not None:
            self._settings.strategy.rsi_overbought = rc.rsi_overbought
        if rc.scan_interval is not None:
            self._settings.trading.scan_interval = rc.scan_interval
        if rc.max_symbols_per_cycle is not None:
            self._settings.trading.max_symbols_per_cycle = rc.max_symbols_per_cycle

    def _limit_symbols(self, symbols: Sequence[str]) -> list[str]:
        limit = self._settings.trading.max_symbols_per_cycle
        selected = list(symbols)
        if limit is not None and len(selected) > limit:
            logger.info(
                "symbol_limit_applied",
                requested=len(selected),
                limit=limit,
                skipped=len(selected) - limit,
            )
            selected = selected[:limit]
        return selected

    async def _resolve_symbols(self, symbols: Sequence[str] | None) -> list[str]:
        if symbols is None:
            symbols = await self._watchlist.symbols()
        return self._limit_symbols(symbols)

    async def analyze_and_trade(
        self,
        symbols: Sequence[str],
        criteria: ScreeningCriteria | None = None,
    ) -> BatchResult:
        """Analyse each symbol and open trades for actionable signals.

        Symbols are processed sequentially and in order. A failure on one
        symbol is recorded as an ERROR outcome and never aborts the batch.
        Symbols that already hold an OPEN trade are analysed but not traded.

        Args:
            symbols: Symbols to process.
            criteria: Optional screening filter applied before trading.
        """
        result = BatchResult()
        symbols = self._limit_symbols(symbols)
        logger.info("batch_started", symbols=len(symbols))

        for symbol in symbols:
            if self._stopping:
                logger.info("batch_interrupted", remaining=len(symbols) - result.processed)
                break

            result.processed += 1
            try:
                with bound_contextvars(symbol=symbol):
                    outcome = await self._process_symbol(symbol, criteria)
            except Exception as e:
                logger.error("symbol_processing_failed", symbol=symbol, error=str(e))
                result.failed += 1
                result.outcomes.append(
                    SymbolOutcome(
                        symbol=symbol,
                        action=ERROR_ACTION,
                        rsi=Decimal("0"),
                        reason="Failed to analyze",
                        error=str(e),
                    )
                )
                continue

            result.succeeded += 1
            result.outcomes.append(outcome)
            if outcome.trade_created:
                result.trades_created += 1

        logger.info(
            "batch_complete",
            processed=result.processed,
            succeeded=result.succeeded,
            failed=result.failed,
            trades_created=result.trades_created,
        )
        return result

    async def _process_symbol(
        self, symbol: str, criteria: ScreeningCriteria | None
    ) -> SymbolOutcome:
        analysis = await self._analyzer.analyze_stock(symbol)
        outcome = SymbolOutcome(
            symbol=symbol,
            action=analysis.action.value,
            rsi=analysis.indicators.rsi,
            reason=analysis.reason,
        )

        if not analysis.should_trade:
            return outcome
        if criteria is not None and not criteria.matches(analysis):
            logger.info("screening_criteria_not_met", symbol=symbol)
            return outcome
        if await self._engine.has_open_trade(symbol):
            logger.info("open_position_exists", symbol=symbol)
            return outcome

        trade = await self._engine.create_trade_from_analysis(analysis)
        if trade.quantity <= 0:
            logger.warning("position_size_zero", symbol=symbol)
            return outcome

        try:
            outcome.trade_id = await self._engine.execute_trade(trade)
        except InsufficientFundsError as e:
            logger.warning("insufficient_funds", symbol=symbol, error=str(e))
            outcome.reason = f"{analysis.reason} (skipped: {e})"
            return outcome

        outcome.trade_created = True
        return outcome

    async def run_cycle(self, symbols: Sequence[str] | None = None) -> CycleResult:
        """Monitor open positions, then screen and trade, then report.

        Args:
            symbols: Symbols to screen; defaults to the watchlist.
        """
        async with self._cycle_lock:
            self._apply_runtime_config()
            monitor = await self._engine.monitor_positions()
            batch = await self.analyze_and_trade(await self._resolve_symbols(symbols))
            stats = await self._engine.get_portfolio_stats()

        logger.info(
            "cycle_complete",
            closed=len(monitor.closed),
            trades_created=batch.trades_created,
            total_value=str(stats.total_value),
        )
        return CycleResult(monitor=monitor, batch=batch, stats=stats)

    async def screen_and_store(self, symbols: Sequence[str] | None = None) -> ScreeningRun:
        """End-of-day scan: store actionable picks for the next session.

        Applies the configured screening criteria. Unexecuted picks from a
        previous scan are replaced. Symbols that fail to analyse are
        counted and reported per symbol in ``errors``.
        """
        async with self._cycle_lock:
            self._apply_runtime_config()
            criteria = ScreeningCriteria.from_settings(self._settings.screening)
            report = await self._analyzer.screen_stocks(
                await self._resolve_symbols(symbols), criteria
            )
            picks = [
                ScreeningResult(
                    symbol=a.symbol,
                    signal=a.action,
                    price=a.entry_price,
                    rsi=a.indicators.rsi,
                    ma_short=a.indicators.ma_short,
                    ma_long=a.indicators.ma_long,
                    stop_loss=a.stop_loss,
                    take_profit=a.take_profit,
                    reason=a.reason,
                )
                for a in report.passed
            ]
            await self._screening_store.store_results(picks)

        run = ScreeningRun(
            processed=report.screened,
            succeeded=report.screened - len(report.failed),
            failed=len(report.failed),
            picks=picks,
            errors=dict(report.failed),
        )
        logger.info("picks_stored", picks=len(picks), processed=run.processed, failed=run.failed)
        return run

    async def execute_stored_picks(self) -> BatchResult:
        """Open trades for unexecuted picks and mark each one executed.

        A pick is consumed even when it is skipped (open position, zero
        size, insufficient funds) so it is never retried.
        """
        result = BatchResult()
        async with self._cycle_lock:
            picks = await self._screening_store.get_unexecuted()
            logger.info("executing_stored_picks", picks=len(picks))

            for pick in picks:
                assert pick.id is not None
                result.processed += 1
                outcome = SymbolOutcome(
                    symbol=pick.symbol,
                    action=pick.signal.value,
                    rsi=pick.rsi,
                    reason=pick.reason,
                )
                with bound_contextvars(symbol=pick.symbol, pick_id=pick.id):
                    try:
                        await self._execute_pick(pick, outcome)
                        result.succeeded += 1
                    except Exception as e:
                        logger.error("pick_execution_failed", error=str(e))
                        outcome.action = ERROR_ACTION
                        outcome.error = str(e)
                        result.failed += 1

                    try:
                        await self._screening_store.mark_executed(pick.id)
                    except Exception as e:
                        logger.error("pick_mark_executed_failed", error=str(e))

                if outcome.trade_created:
                    result.trades_created += 1
                result.outcomes.append(outcome)

        logger.info(
            "stored_picks_executed",
            processed=result.processed,
            trades_created=result.trades_created,
        )
        return result

    async def _execute_pick(self, pick: ScreeningResult, outcome: SymbolOutcome) -> None:
        if await self._engine.has_open_trade(pick.symbol):
            logger.info("open_position_exists")
            return
        trade = await self._engine.create_trade_from_pick(pick)
        if trade.quantity <= 0:
            logger.warning("position_size_zero")
            return
        outcome.trade_id = await self._engine.execute_trade(trade)
        outcome.trade_created = True

    async def start(self) -> None:
        """Run cycles every scan_interval seconds until stop() is called."""
        if self._running:
            logger.info("orchestrator_already_running")
            return
        logger.info("orchestrator_starting", mode=self._settings.trading.mode)
        self._running = True
        self._stopping = False
        self._task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        """Stop issuing work; the symbol in progress is allowed to finish."""
        logger.info("orchestrator_stopping_gracefully")
        self._running = False
        if self._task is None:
            return
        task, self._task = self._task, None
        self._stopping = True
        try:
            # Wait for the in-flight cycle, then wake the loop from its sleep.
            async with self._cycle_lock:
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        finally:
            self._stopping = False
        logger.info("orchestrator_stopped")

    async def _run_loop(self) -> None:
        """Timer loop. Errors in one cycle are logged and the loop continues."""
        while self._running:
            try:
                await self.run_cycle()
                await asyncio.sleep(self._settings.trading.scan_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("orchestrator_cycle_error", error=str(e), exc_info=True)
                await asyncio.sleep(10)
