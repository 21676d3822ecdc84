"""Portfolio cash ledger.

Cash moves only through this class, and every mutation runs under one
asyncio.Lock so concurrent entries and exits cannot interleave their
read-modify-write of the cash row.

Cash rules:
  - BUY entry: cash -= entry * qty (rejected when it exceeds cash)
  - SELL entry: cash unchanged
  - BUY exit: cash += exit * qty
  - SELL exit: cash -= exit * qty
"""

import asyncio
from collections.abc import Sequence
from decimal import Decimal

from trader.data.base import PortfolioStore
from trader.exceptions import InsufficientFundsError
from trader.logging import get_logger
from trader.models import Portfolio, Trade, TradeAction
from trader.pnl.calculator import invested_capital

logger = get_logger(__name__)


class PortfolioLedger:
    """Serialized access to the singleton portfolio row.

    Args:
        store: Persistence for the portfolio row.
    """

    def __init__(self, store: PortfolioStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    async def initialize(self, initial_cash: Decimal) -> Portfolio:
        """Create the portfolio on first run; later runs keep the stored row."""
        return await self._store.ensure_portfolio(initial_cash)

    async def get_portfolio(self) -> Portfolio:
        return await self._store.get_portfolio()

    async def check_funds(self, trade: Trade) -> None:
        """Raise InsufficientFundsError if a BUY costs more than current cash."""
        if trade.action != TradeAction.BUY:
            return
        portfolio = await self._store.get_portfolio()
        if trade.cost_basis > portfolio.cash:
            raise InsufficientFundsError(trade.symbol, trade.cost_basis, portfolio.cash)

    async def record_entry(self, trade: Trade) -> Decimal:
        """Debit cash for a newly opened trade and return the new balance.

        Raises:
            InsufficientFundsError: BUY cost exceeds cash; nothing is debited.
        """
        async with self._lock:
            portfolio = await self._store.get_portfolio()
            if trade.action != TradeAction.BUY:
                return portfolio.cash

            cost = trade.cost_basis
            if cost > portfolio.cash:
                raise InsufficientFundsError(trade.symbol, cost, portfolio.cash)

            new_cash = portfolio.cash - cost
            await self._store.update_cash(new_cash)

        logger.info(
            "ledger_entry_recorded",
            trade_id=trade.id,
            symbol=trade.symbol,
            cost=str(cost),
            cash=str(new_cash),
        )
        return new_cash

    async def record_exit(self, trade: Trade, exit_price: Decimal) -> Decimal:
        """Credit (BUY) or debit (SELL) cash for a closed trade."""
        async with self._lock:
            portfolio = await self._store.get_portfolio()
            notional = exit_price * trade.quantity
            if trade.action == TradeAction.BUY:
                new_cash = portfolio.cash + notional
            else:
                new_cash = portfolio.cash - notional
            await self._store.update_cash(new_cash)

        logger.info(
            "ledger_exit_recorded",
            trade_id=trade.id,
            symbol=trade.symbol,
            action=trade.action.value,
            notional=str(notional),
            cash=str(new_cash),
        )
        return new_cash

    async def refresh_total_value(self, open_trades: Sequence[Trade]) -> Decimal:
        """Persist total_value = cash + entry notional of OPEN BUY trades."""
        async with self._lock:
            portfolio = await self._store.get_portfolio()
            total_value = portfolio.cash + invested_capital(open_trades)
            await self._store.update_total_value(total_value)
        return total_value
