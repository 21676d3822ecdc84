"""Realized P&L and portfolio statistics.

Pure functions over trades and the portfolio row; no I/O.

Conventions:
  - BUY pnl = (exit - entry) * qty, SELL pnl = (entry - exit) * qty
  - pnl_percent = (exit - entry) / entry * 100 for BOTH directions, so a
    profitable short reports a negative percentage
  - invested capital counts OPEN BUY trades at entry price; open shorts
    carry no cash value
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from trader.models import Portfolio, Trade, TradeAction, TradeStatus

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def compute_trade_pnl(
    action: TradeAction,
    entry_price: Decimal,
    exit_price: Decimal,
    quantity: int,
) -> tuple[Decimal, Decimal]:
    """Return (pnl, pnl_percent) for closing a position at ``exit_price``."""
    if action == TradeAction.BUY:
        pnl = (exit_price - entry_price) * quantity
    else:
        pnl = (entry_price - exit_price) * quantity

    pnl_percent = (
        (exit_price - entry_price) / entry_price * _HUNDRED if entry_price else _ZERO
    )
    return pnl, pnl_percent


def invested_capital(trades: Sequence[Trade]) -> Decimal:
    """Entry notional of OPEN BUY trades."""
    return sum(
        (t.cost_basis for t in trades if t.is_open and t.action == TradeAction.BUY),
        _ZERO,
    )


@dataclass
class PortfolioStats:
    """Read-only portfolio summary."""

    cash: Decimal
    initial_cash: Decimal
    invested_capital: Decimal
    total_value: Decimal
    total_return: Decimal  # percent of initial cash
    total_trades: int
    open_trades: int
    closed_trades: int
    total_pnl: Decimal
    win_rate: Decimal  # percent of closed trades with pnl > 0
    avg_win: Decimal
    avg_loss: Decimal


def compute_portfolio_stats(portfolio: Portfolio, trades: Sequence[Trade]) -> PortfolioStats:
    """Summarize the portfolio from its cash row and the full trade list.

    avg_loss is the sum of losing pnl divided by the number of closed
    trades that did not win, so break-even trades dilute it.
    """
    open_trades = [t for t in trades if t.status == TradeStatus.OPEN]
    closed = [t for t in trades if t.status == TradeStatus.CLOSED]
    closed_pnl = [t.pnl if t.pnl is not None else _ZERO for t in closed]

    wins = [p for p in closed_pnl if p > 0]
    losses = [p for p in closed_pnl if p < 0]
    non_winning = len(closed) - len(wins)

    invested = invested_capital(open_trades)
    total_value = portfolio.cash + invested
    total_return = (
        (total_value - portfolio.initial_cash) / portfolio.initial_cash * _HUNDRED
        if portfolio.initial_cash
        else _ZERO
    )

    return PortfolioStats(
        cash=portfolio.cash,
        initial_cash=portfolio.initial_cash,
        invested_capital=invested,
        total_value=total_value,
        total_return=total_return,
        total_trades=len(trades),
        open_trades=len(open_trades),
        closed_trades=len(closed),
        total_pnl=sum(closed_pnl, _ZERO),
        win_rate=Decimal(len(wins)) / len(closed) * _HUNDRED if closed else _ZERO,
        avg_win=sum(wins, _ZERO) / len(wins) if wins else _ZERO,
        avg_loss=sum(losses, _ZERO) / non_winning if non_winning else _ZERO,
    )
