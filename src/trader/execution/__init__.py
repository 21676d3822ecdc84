"""Brokerage integration."""

from trader.execution.alpaca import AlpacaBroker
from trader.execution.broker import (
    BrokerAccount,
    BrokerageOrderPlacer,
    BrokerPosition,
    OrderOutcome,
)

__all__ = [
    "AlpacaBroker",
    "BrokerAccount",
    "BrokerPosition",
    "BrokerageOrderPlacer",
    "OrderOutcome",
]
