"""MACD line from fast/slow EMAs."""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from trader.indicators.moving_average import calculate_ema
from trader.models import PriceBar


@dataclass(frozen=True)
class MACDResult:
    """MACD line with the (unsmoothed) signal line and histogram."""

    macd: Decimal
    signal: Decimal
    histogram: Decimal


def calculate_macd(
    bars: Sequence[PriceBar],
    fast_period: int = 12,
    slow_period: int = 26,
) -> MACDResult:
    """Compute the MACD line as EMA(fast) - EMA(slow).

    The signal line would be an EMA of the MACD series; only the latest
    MACD value is produced here, so signal is reported as 0 and the
    histogram equals the MACD line.

    Raises:
        InsufficientDataError: If fewer than ``slow_period`` bars are supplied.
    """
    macd_line = calculate_ema(bars, fast_period) - calculate_ema(bars, slow_period)
    return MACDResult(macd=macd_line, signal=Decimal("0"), histogram=macd_line)
