"""Abstract brokerage interface.

The trading engine depends ONLY on this interface. When no broker is
configured, or an order fails, trades fall back to pure simulation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from trader.models import TradeAction


@dataclass(frozen=True)
class OrderOutcome:
    """Result of a bracket order request.

    Either ``ok`` with an ``order_id`` or not ok with an ``error`` message.
    """

    ok: bool
    order_id: str | None = None
    status: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, order_id: str, status: str | None = None) -> "OrderOutcome":
        return cls(ok=True, order_id=order_id, status=status)

    @classmethod
    def failure(cls, error: str) -> "OrderOutcome":
        return cls(ok=False, error=error)


@dataclass(frozen=True)
class BrokerPosition:
    """A position held at the broker."""

    symbol: str
    quantity: Decimal
    side: str
    avg_entry_price: Decimal
    current_price: Decimal
    market_value: Decimal
    unrealized_pl: Decimal


@dataclass(frozen=True)
class BrokerAccount:
    """Broker account balances."""

    cash: Decimal
    portfolio_value: Decimal
    buying_power: Decimal
    equity: Decimal


class BrokerageOrderPlacer(ABC):
    """Abstract base class for brokerage clients."""

    @abstractmethod
    async def place_bracket_order(
        self,
        symbol: str,
        quantity: int,
        action: TradeAction,
        stop_loss: Decimal,
        take_profit: Decimal,
    ) -> OrderOutcome:
        """Submit a market entry with attached stop-loss and take-profit legs.

        Never raises: any transport or rejection error becomes a failed
        OrderOutcome so the caller can fall back to simulation.
        """
        ...

    @abstractmethod
    async def get_positions(self) -> list[BrokerPosition]:
        ...

    @abstractmethod
    async def get_account(self) -> BrokerAccount:
        ...

    @abstractmethod
    async def cancel_order(self, order_id: str) -> bool:
        """Cancel an open order. Returns True on success."""
        ...

    async def close(self) -> None:
        """Release any held connections."""
