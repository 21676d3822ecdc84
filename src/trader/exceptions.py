"""Custom exceptions for the swing trader.

All indicator, strategy, and lifecycle exceptions live here
to avoid circular imports between modules.
"""


class TraderError(Exception):
    """Base exception for all trader errors."""


class InsufficientDataError(TraderError):
    """Raised when an indicator cannot be computed from the bars provided."""


class InsufficientFundsError(TraderError):
    """Raised when a BUY trade costs more than the available cash."""

    def __init__(self, symbol: str, required: object, available: object) -> None:
        super().__init__(
            f"Insufficient funds for {symbol}: need {required}, have {available}"
        )
        self.symbol = symbol
        self.required = required
        self.available = available


class TradeNotFoundError(TraderError):
    """Raised when an operation references an unknown trade id."""

    def __init__(self, trade_id: int) -> None:
        super().__init__(f"Trade {trade_id} not found")
        self.trade_id = trade_id


class MarketDataError(TraderError):
    """Raised when quotes or price history cannot be retrieved."""


class OrderPlacementError(TraderError):
    """Raised by broker clients when an order request is rejected."""
