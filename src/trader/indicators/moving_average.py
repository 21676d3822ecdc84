"""Simple and exponential moving averages over closing prices.

Bars arrive most-recent-first (the order every PriceHistoryProvider
returns). SMA reads the head of the sequence directly; EMA reverses to
chronological order so the recurrence runs forward in time.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from trader.exceptions import InsufficientDataError
from trader.models import PriceBar


def chronological_closes(bars: Sequence[PriceBar]) -> list[Decimal]:
    """Return closing prices oldest-first from a most-recent-first sequence."""
    return [bar.close for bar in reversed(bars)]


def _require(bars: Sequence[PriceBar], needed: int, indicator: str) -> None:
    if len(bars) < needed:
        raise InsufficientDataError(
            f"Insufficient data for {indicator} calculation: "
            f"need at least {needed} bars, got {len(bars)}"
        )


def calculate_sma(bars: Sequence[PriceBar], period: int) -> Decimal:
    """Mean of the most recent ``period`` closes.

    Raises:
        InsufficientDataError: If fewer than ``period`` bars are supplied.
    """
    _require(bars, period, "SMA")
    total = sum((bar.close for bar in bars[:period]), Decimal("0"))
    return total / Decimal(period)


def calculate_ema(bars: Sequence[PriceBar], period: int) -> Decimal:
    """Exponential moving average of closes.

    Seeded with the SMA of the first ``period`` chronological closes, then
    smoothed forward with multiplier ``2 / (period + 1)``:

        ema = (price - ema) * multiplier + ema

    Raises:
        InsufficientDataError: If fewer than ``period`` bars are supplied.
    """
    _require(bars, period, "EMA")
    prices = chronological_closes(bars)
    multiplier = Decimal("2") / (Decimal(period) + Decimal("1"))

    ema = sum(prices[:period], Decimal("0")) / Decimal(period)
    for price in prices[period:]:
        ema = (price - ema) * multiplier + ema

    return ema
