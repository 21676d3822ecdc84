"""Support and resistance from recent price extremes."""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from trader.exceptions import InsufficientDataError
from trader.models import PriceBar


@dataclass(frozen=True)
class SupportResistance:
    support: Decimal
    resistance: Decimal


def calculate_support_resistance(
    bars: Sequence[PriceBar], lookback: int = 20
) -> SupportResistance:
    """Lowest low and highest high over the most recent ``lookback`` bars.

    Fewer bars than ``lookback`` are accepted; the window shrinks to what
    is available.

    Raises:
        InsufficientDataError: If no bars are supplied.
    """
    recent = bars[:lookback]
    if not recent:
        raise InsufficientDataError("No bars available for support/resistance")

    return SupportResistance(
        support=min(bar.low for bar in recent),
        resistance=max(bar.high for bar in recent),
    )
