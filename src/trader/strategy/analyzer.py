"""Per-symbol analysis, screening, and exit evaluation.

StrategyAnalyzer is the only strategy component that performs I/O: it
pulls bars and quotes from the market data providers and hands them to
the pure indicator, signal, and exit functions.

Flow for a symbol:
1. Fetch daily bars (most-recent-first)
2. Compute the indicator snapshot and signal
3. Build stop-loss / take-profit targets for BUY or SELL
4. Produce an AnalysisResult with a human-readable reason
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from trader.config import StrategySettings
from trader.exceptions import InsufficientDataError
from trader.logging import get_logger
from trader.market_data.provider import PriceHistoryProvider, QuoteProvider, SizeHint
from trader.models import PriceBar, Signal, Trade
from trader.strategy.exits import check_exit_conditions, check_price_exit
from trader.strategy.models import (
    AnalysisResult,
    ExitDecision,
    IndicatorSnapshot,
    ScreeningCriteria,
    ScreeningReport,
)
from trader.strategy.planning import compute_targets
from trader.strategy.signal import get_signal

logger = get_logger(__name__)


def _describe(action: Signal, snapshot: IndicatorSnapshot, settings: StrategySettings) -> str:
    short_ma = f"MA{settings.ma_short_period}"
    long_ma = f"MA{settings.ma_long_period}"

    if action == Signal.BUY:
        return (
            f"RSI oversold ({snapshot.rsi:.2f}) with bullish MA crossover "
            f"({short_ma}: {snapshot.ma_short:.2f} > {long_ma}: {snapshot.ma_long:.2f})"
        )
    if action == Signal.SELL:
        return (
            f"RSI overbought ({snapshot.rsi:.2f}) with bearish MA crossover "
            f"({short_ma}: {snapshot.ma_short:.2f} < {long_ma}: {snapshot.ma_long:.2f})"
        )
    return (
        f"No clear signal. RSI: {snapshot.rsi:.2f}, "
        f"{short_ma}: {snapshot.ma_short:.2f}, {long_ma}: {snapshot.ma_long:.2f}"
    )


class StrategyAnalyzer:
    """Runs the RSI + MA crossover strategy against live market data.

    Args:
        settings: Strategy thresholds and periods.
        history_provider: Source of daily bars.
        quote_provider: Source of current prices for exit checks.
        history_size: Size hint passed to the history provider.
    """

    def __init__(
        self,
        settings: StrategySettings,
        history_provider: PriceHistoryProvider,
        quote_provider: QuoteProvider,
        history_size: SizeHint = "compact",
    ) -> None:
        self._settings = settings
        self._history_provider = history_provider
        self._quote_provider = quote_provider
        self._history_size = history_size

    @property
    def settings(self) -> StrategySettings:
        return self._settings

    def analyze_bars(self, symbol: str, bars: Sequence[PriceBar]) -> AnalysisResult:
        """Analyse an already-fetched bar sequence (most-recent-first).

        Raises:
            InsufficientDataError: If there are fewer than
                ma_long_period + min_history_padding bars, or any
                indicator lacks history.
        """
        required = self._settings.ma_long_period + self._settings.min_history_padding
        if len(bars) < required:
            raise InsufficientDataError(
                f"Insufficient data for analysis of {symbol}: "
                f"need {required} bars, got {len(bars)}"
            )

        snapshot = get_signal(bars, self._settings)
        entry_price = bars[0].close
        stop_loss, take_profit = compute_targets(
            snapshot.signal, entry_price, snapshot, self._settings
        )

        return AnalysisResult(
            symbol=symbol,
            should_trade=snapshot.signal != Signal.HOLD,
            action=snapshot.signal,
            indicators=snapshot,
            entry_price=entry_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            reason=_describe(snapshot.signal, snapshot, self._settings),
        )

    async def analyze_stock(self, symbol: str) -> AnalysisResult:
        """Fetch history for a symbol and analyse it.

        Raises:
            InsufficientDataError: Not enough history to analyse.
            MarketDataError: Bars could not be fetched.
        """
        bars = await self._history_provider.get_daily_bars(symbol, self._history_size)
        result = self.analyze_bars(symbol, bars)

        logger.debug(
            "stock_analyzed",
            symbol=symbol,
            action=result.action.value,
            rsi=str(result.indicators.rsi),
            ma_short=str(result.indicators.ma_short),
            ma_long=str(result.indicators.ma_long),
        )
        return result

    async def screen_stocks(
        self,
        symbols: Sequence[str],
        criteria: ScreeningCriteria | None = None,
    ) -> ScreeningReport:
        """Analyse each symbol and keep tradeable ones matching the criteria.

        Symbols are processed sequentially. A failure on one symbol is
        logged, recorded in ``report.failed``, and never aborts the scan.

        Args:
            symbols: Symbols to screen.
            criteria: Optional filters; None applies no filter beyond
                ``should_trade``.

        Returns:
            ScreeningReport with passing analyses and failures.
        """
        criteria = criteria or ScreeningCriteria()
        report = ScreeningReport()

        for symbol in symbols:
            report.screened += 1
            try:
                analysis = await self.analyze_stock(symbol)
            except Exception as e:
                logger.warning("screening_symbol_failed", symbol=symbol, error=str(e))
                report.failed[symbol] = str(e)
                continue

            if analysis.should_trade and criteria.matches(analysis):
                report.passed.append(analysis)
                logger.info(
                    "screening_passed",
                    symbol=symbol,
                    action=analysis.action.value,
                    rsi=str(analysis.indicators.rsi),
                )

        logger.info(
            "screening_complete",
            screened=report.screened,
            passed=len(report.passed),
            failed=len(report.failed),
        )
        return report

    async def evaluate_exit(self, trade: Trade) -> ExitDecision:
        """Check an open trade against current market data.

        Price rules are checked from a fresh quote first; bars are only
        fetched for the reversal rule when neither level was breached.

        Raises:
            MarketDataError: Quote or bars could not be fetched.
            InsufficientDataError: Not enough history for the reversal rule.
        """
        quote = await self._quote_provider.get_quote(trade.symbol)
        current_price: Decimal = quote.price

        decision = check_price_exit(trade, current_price)
        if decision is not None:
            return decision

        bars = await self._history_provider.get_daily_bars(trade.symbol, self._history_size)
        snapshot = get_signal(bars, self._settings)
        return check_exit_conditions(trade, current_price, snapshot, self._settings)
