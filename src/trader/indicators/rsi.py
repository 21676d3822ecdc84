"""Wilder's Relative Strength Index.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from trader.exceptions import InsufficientDataError
from trader.indicators.moving_average import chronological_closes
from trader.models import PriceBar

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def calculate_rsi(bars: Sequence[PriceBar], period: int = 14) -> Decimal:
    """Compute RSI over a most-recent-first bar sequence.

    The initial average gain and loss are simple means of the first
    ``period`` chronological deltas. Every later delta is folded in with
    Wilder smoothing:

        avg = (avg * (period - 1) + value) / period

    A window with no losses returns exactly 100 rather than dividing by zero.

    Args:
        bars: Price bars, most recent first.
        period: Lookback window (default 14).

    Returns:
        RSI in the closed range [0, 100].

    Raises:
        InsufficientDataError: If fewer than ``period + 1`` bars are supplied.
    """
    if len(bars) < period + 1:
        raise InsufficientDataError(
            f"Insufficient data for RSI calculation: "
            f"need at least {period + 1} bars, got {len(bars)}"
        )

    prices = chronological_closes(bars)
    divisor = Decimal(period)

    gains = _ZERO
    losses = _ZERO
    for i in range(1, period + 1):
        change = prices[i] - prices[i - 1]
        if change > 0:
            gains += change
        else:
            losses += -change

    avg_gain = gains / divisor
    avg_loss = losses / divisor

    for i in range(period + 1, len(prices)):
        change = prices[i] - prices[i - 1]
        gain = change if change > 0 else _ZERO
        loss = -change if change < 0 else _ZERO
        avg_gain = (avg_gain * (divisor - 1) + gain) / divisor
        avg_loss = (avg_loss * (divisor - 1) + loss) / divisor

    if avg_loss == 0:
        return _HUNDRED

    rs = avg_gain / avg_loss
    return _HUNDRED - _HUNDRED / (Decimal("1") + rs)
