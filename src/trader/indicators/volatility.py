"""Volatility indicators: Average True Range and Bollinger Bands."""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from trader.exceptions import InsufficientDataError
from trader.indicators.moving_average import calculate_sma
from trader.models import PriceBar


@dataclass(frozen=True)
class BollingerBands:
    """Upper/middle/lower bands around the SMA."""

    upper: Decimal
    middle: Decimal
    lower: Decimal


def true_ranges(bars: Sequence[PriceBar]) -> list[Decimal]:
    """True range for every bar that has a previous close, most recent first.

    TR = max(high - low, |high - prev_close|, |low - prev_close|) where
    prev_close belongs to the chronologically previous bar (next in the
    sequence).
    """
    ranges: list[Decimal] = []
    for i in range(len(bars) - 1):
        bar = bars[i]
        prev_close = bars[i + 1].close
        ranges.append(
            max(
                bar.high - bar.low,
                abs(bar.high - prev_close),
                abs(bar.low - prev_close),
            )
        )
    return ranges


def calculate_atr(bars: Sequence[PriceBar], period: int = 14) -> Decimal:
    """Simple average of the most recent ``period`` true ranges.

    Not Wilder-smoothed.

    Raises:
        InsufficientDataError: If fewer than ``period + 1`` bars are supplied.
    """
    if len(bars) < period + 1:
        raise InsufficientDataError(
            f"Insufficient data for ATR calculation: "
            f"need at least {period + 1} bars, got {len(bars)}"
        )

    recent = true_ranges(bars)[:period]
    return sum(recent, Decimal("0")) / Decimal(period)


def calculate_bollinger_bands(
    bars: Sequence[PriceBar],
    period: int = 20,
    num_std: Decimal = Decimal("2"),
) -> BollingerBands:
    """Bollinger Bands using the population standard deviation of recent closes.

    Raises:
        InsufficientDataError: If fewer than ``period`` bars are supplied.
    """
    middle = calculate_sma(bars, period)
    closes = [bar.close for bar in bars[:period]]

    variance = sum(((c - middle) ** 2 for c in closes), Decimal("0")) / Decimal(period)
    std_dev = variance.sqrt()

    return BollingerBands(
        upper=middle + std_dev * num_std,
        middle=middle,
        lower=middle - std_dev * num_std,
    )
