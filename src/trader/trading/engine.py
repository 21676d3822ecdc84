"""Trade lifecycle: open, close, monitor, and report.

A trade is OPEN from creation and becomes CLOSED exactly once. When a
broker is configured, entries are first sent as bracket orders; a failed
order never blocks the trade, which is then recorded as a simulation.

Entry flow:
1. Reject BUYs the ledger cannot afford (nothing persisted)
2. Optionally place a broker bracket order
3. Persist the trade
4. Debit cash (BUY only), refresh total value
5. If 3 or 4 fails after the broker accepted the order, cancel it

Exit flow:
1. Resolve the exit price/reason (explicit, or from StrategyAnalyzer)
2. Compute pnl, mark CLOSED with exit fields
3. Credit/debit cash, refresh total value
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from trader.config import StrategySettings, TradingSettings
from trader.data.base import TradeStore
from trader.exceptions import TradeNotFoundError
from trader.execution.broker import BrokerageOrderPlacer
from trader.logging import get_logger
from trader.models import ScreeningResult, Trade, TradeStatus
from trader.pnl.calculator import PortfolioStats, compute_portfolio_stats, compute_trade_pnl
from trader.strategy.analyzer import StrategyAnalyzer
from trader.strategy.models import AnalysisResult
from trader.strategy.planning import build_trade, build_trade_from_pick
from trader.strategy.sizing import calculate_position_size
from trader.trading.ledger import PortfolioLedger

logger = get_logger(__name__)


@dataclass
class MonitorReport:
    """Outcome of one pass over the open positions."""

    checked: int = 0
    closed: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)


class TradingEngine:
    """Opens, closes and monitors trades against the portfolio ledger.

    Args:
        trade_store: Persistence for trades.
        ledger: Portfolio cash ledger.
        analyzer: Supplies exit decisions for open trades.
        trading_settings: Risk fractions used for sizing.
        strategy_settings: Exit text and strategy name on new trades.
        broker: Optional brokerage; None means pure simulation.
    """

    def __init__(
        self,
        trade_store: TradeStore,
        ledger: PortfolioLedger,
        analyzer: StrategyAnalyzer,
        trading_settings: TradingSettings,
        strategy_settings: StrategySettings,
        broker: BrokerageOrderPlacer | None = None,
    ) -> None:
        self._trades = trade_store
        self._ledger = ledger
        self._analyzer = analyzer
        self._trading_settings = trading_settings
        self._strategy_settings = strategy_settings
        self._broker = broker
        self._lock = asyncio.Lock()

    @property
    def trade_store(self) -> TradeStore:
        return self._trades

    @property
    def ledger(self) -> PortfolioLedger:
        return self._ledger

    @property
    def analyzer(self) -> StrategyAnalyzer:
        return self._analyzer

    async def has_open_trade(self, symbol: str) -> bool:
        trades = await self._trades.get_trades_by_symbol(symbol)
        return any(t.is_open for t in trades)

    async def _size(self, entry_price: Decimal, stop_loss: Decimal) -> int:
        portfolio = await self._ledger.get_portfolio()
        return calculate_position_size(
            portfolio.cash,
            entry_price,
            stop_loss,
            risk_fraction=self._trading_settings.risk_per_trade,
            max_position_fraction=self._trading_settings.max_position_size,
        )

    async def create_trade_from_analysis(self, analysis: AnalysisResult) -> Trade:
        """Size an analysis against current cash and draft an unsaved trade.

        The draft may carry quantity 0, meaning the trade should be skipped.
        """
        quantity = await self._size(analysis.entry_price, analysis.stop_loss)
        return build_trade(analysis, quantity, self._strategy_settings)

    async def create_trade_from_pick(self, pick: ScreeningResult) -> Trade:
        """Size a stored screening pick against current cash."""
        quantity = await self._size(pick.price, pick.stop_loss)
        return build_trade_from_pick(pick, quantity, self._strategy_settings)

    async def execute_trade(self, trade: Trade) -> int:
        """Open a trade and return its id.

        Raises:
            InsufficientFundsError: BUY cost exceeds cash; nothing persisted.
            ValueError: Quantity is not positive.
        """
        if trade.quantity <= 0:
            raise ValueError(f"Trade quantity must be positive, got {trade.quantity}")

        async with self._lock:
            await self._ledger.check_funds(trade)

            if self._broker is not None:
                outcome = await self._broker.place_bracket_order(
                    trade.symbol,
                    trade.quantity,
                    trade.action,
                    trade.stop_loss,
                    trade.take_profit,
                )
                if outcome.ok:
                    trade.order_id = outcome.order_id
                else:
                    logger.warning(
                        "broker_order_failed_simulating",
                        symbol=trade.symbol,
                        error=outcome.error,
                    )

            trade.status = TradeStatus.OPEN
            try:
                trade.id = await self._trades.create_trade(trade)
                cash = await self._ledger.record_entry(trade)
                await self._ledger.refresh_total_value(await self._trades.get_open_trades())
            except Exception:
                if self._broker is not None and trade.order_id is not None:
                    logger.error(
                        "trade_record_failed_cancelling_order",
                        symbol=trade.symbol,
                        order_id=trade.order_id,
                    )
                    await self._broker.cancel_order(trade.order_id)
                raise

        logger.info(
            "trade_executed",
            trade_id=trade.id,
            symbol=trade.symbol,
            action=trade.action.value,
            quantity=trade.quantity,
            entry_price=str(trade.entry_price),
            simulated=trade.order_id is None,
            cash=str(cash),
        )
        return trade.id

    async def close_trade(
        self,
        trade_id: int,
        exit_price: Decimal | None = None,
        reason: str | None = None,
    ) -> Trade:
        """Close an open trade and return it.

        Without ``exit_price`` the current price and reason come from the
        analyzer's exit evaluation. Closing an already CLOSED trade is a
        no-op that returns it unchanged.

        Raises:
            TradeNotFoundError: Unknown trade id.
            MarketDataError: Price needed but unavailable.
        """
        async with self._lock:
            trade = await self._trades.get_trade(trade_id)
            if trade is None:
                raise TradeNotFoundError(trade_id)

            if not trade.is_open:
                logger.warning("trade_already_closed", trade_id=trade_id)
                return trade

            if exit_price is None:
                decision = await self._analyzer.evaluate_exit(trade)
                exit_price = decision.current_price
                reason = reason or decision.reason
            reason = reason or "Manual close"

            pnl, pnl_percent = compute_trade_pnl(
                trade.action, trade.entry_price, exit_price, trade.quantity
            )
            changes = {
                "status": TradeStatus.CLOSED,
                "exit_price": exit_price,
                "exit_date": datetime.now(timezone.utc),
                "exit_reason": reason,
                "pnl": pnl,
                "pnl_percent": pnl_percent,
            }
            await self._trades.update_trade(trade_id, changes)
            for key, value in changes.items():
                setattr(trade, key, value)

            await self._ledger.record_exit(trade, exit_price)
            await self._ledger.refresh_total_value(await self._trades.get_open_trades())

        logger.info(
            "trade_closed",
            trade_id=trade_id,
            symbol=trade.symbol,
            exit_price=str(exit_price),
            pnl=str(pnl),
            reason=reason,
        )
        return trade

    async def monitor_positions(self) -> MonitorReport:
        """Close every open trade whose exit rules fire.

        Failures on one trade are logged and counted; the pass continues.
        """
        report = MonitorReport()
        open_trades = await self._trades.get_open_trades()
        logger.info("monitoring_positions", open_trades=len(open_trades))

        for trade in open_trades:
            assert trade.id is not None
            report.checked += 1
            try:
                decision = await self._analyzer.evaluate_exit(trade)
                if decision.should_exit:
                    logger.info(
                        "exit_signal",
                        trade_id=trade.id,
                        symbol=trade.symbol,
                        reason=decision.reason,
                    )
                    await self.close_trade(trade.id, decision.current_price, decision.reason)
                    report.closed.append(trade.id)
            except Exception as e:
                logger.error(
                    "position_monitor_failed",
                    trade_id=trade.id,
                    symbol=trade.symbol,
                    error=str(e),
                )
                report.failed[trade.id] = str(e)

        return report

    async def get_portfolio_stats(self) -> PortfolioStats:
        portfolio = await self._ledger.get_portfolio()
        trades = await self._trades.get_all_trades()
        return compute_portfolio_stats(portfolio, trades)

    async def close(self) -> None:
        if self._broker is not None:
            await self._broker.close()
