"""Shared data models for the swing trader.

CRITICAL: All monetary and indicator values use Decimal. Never use float for
prices, stop levels, or P&L. Share quantities are whole ints.
"""

import time
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class Signal(str, Enum):
    """Strategy signal derived from an indicator snapshot."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class TradeAction(str, Enum):
    """Trade direction. SELL opens a short position."""

    BUY = "BUY"
    SELL = "SELL"


class TradeStatus(str, Enum):
    """Trade lifecycle state. CLOSED is terminal."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class PriceBar:
    """One daily OHLCV bar. Immutable once cached."""

    symbol: str
    timestamp: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int


@dataclass
class Quote:
    """Latest quote snapshot for a symbol."""

    symbol: str
    price: Decimal
    previous_close: Decimal = Decimal("0")
    open: Decimal = Decimal("0")
    high: Decimal = Decimal("0")
    low: Decimal = Decimal("0")
    volume: int = 0
    change: Decimal = Decimal("0")
    change_percent: Decimal = Decimal("0")
    fetched_at: float = field(default_factory=time.time)


@dataclass
class Trade:
    """A simulated or paper trade.

    stop_loss and take_profit are fixed at entry. pnl and pnl_percent are
    only populated when the trade is closed.
    """

    symbol: str
    action: TradeAction
    quantity: int
    entry_price: Decimal
    entry_date: datetime
    stop_loss: Decimal
    take_profit: Decimal
    entry_reason: str
    exit_criteria: str
    status: TradeStatus = TradeStatus.OPEN
    strategy: str = "RSI + MA Crossover"
    rsi: Decimal | None = None
    ma_short: Decimal | None = None
    ma_long: Decimal | None = None
    exit_price: Decimal | None = None
    exit_date: datetime | None = None
    exit_reason: str | None = None
    pnl: Decimal | None = None
    pnl_percent: Decimal | None = None
    order_id: str | None = None
    id: int | None = None

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN

    @property
    def cost_basis(self) -> Decimal:
        """Entry notional: entry_price * quantity."""
        return self.entry_price * self.quantity


@dataclass
class Portfolio:
    """Singleton cash ledger state."""

    cash: Decimal
    initial_cash: Decimal
    total_value: Decimal
    updated_at: datetime | None = None


@dataclass
class ScreeningResult:
    """A stored end-of-day pick awaiting execution."""

    symbol: str
    signal: Signal
    price: Decimal
    rsi: Decimal
    ma_short: Decimal
    ma_long: Decimal
    stop_loss: Decimal
    take_profit: Decimal
    reason: str
    executed: bool = False
    created_at: datetime | None = None
    id: int | None = None
