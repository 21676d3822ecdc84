"""RSI + moving-average crossover signal.

A BUY needs an oversold RSI confirmed by an up-trend (short MA above long
MA); a SELL needs an overbought RSI confirmed by a down-trend. Everything
else is HOLD.
"""

from collections.abc import Sequence
from decimal import Decimal

from trader.config import StrategySettings
from trader.indicators import (
    calculate_atr,
    calculate_rsi,
    calculate_sma,
    calculate_support_resistance,
)
from trader.models import PriceBar, Signal
from trader.strategy.models import IndicatorSnapshot


def classify_signal(
    rsi: Decimal,
    ma_short: Decimal,
    ma_long: Decimal,
    oversold: Decimal = Decimal("30"),
    overbought: Decimal = Decimal("70"),
) -> Signal:
    """Map indicator values to BUY/SELL/HOLD.

    Args:
        rsi: Current RSI.
        ma_short: Short-period SMA.
        ma_long: Long-period SMA.
        oversold: RSI strictly below this is oversold.
        overbought: RSI strictly above this is overbought.

    Returns:
        BUY iff rsi < oversold and ma_short > ma_long,
        SELL iff rsi > overbought and ma_short < ma_long, otherwise HOLD.
    """
    if rsi < oversold and ma_short > ma_long:
        return Signal.BUY
    if rsi > overbought and ma_short < ma_long:
        return Signal.SELL
    return Signal.HOLD


def get_signal(
    bars: Sequence[PriceBar], settings: StrategySettings | None = None
) -> IndicatorSnapshot:
    """Compute the full indicator snapshot and signal for a bar sequence.

    Raises:
        InsufficientDataError: If any indicator lacks history.
    """
    settings = settings or StrategySettings()

    rsi = calculate_rsi(bars, settings.rsi_period)
    ma_short = calculate_sma(bars, settings.ma_short_period)
    ma_long = calculate_sma(bars, settings.ma_long_period)
    atr = calculate_atr(bars, settings.atr_period)
    levels = calculate_support_resistance(bars, settings.support_resistance_lookback)

    return IndicatorSnapshot(
        rsi=rsi,
        ma_short=ma_short,
        ma_long=ma_long,
        atr=atr,
        support=levels.support,
        resistance=levels.resistance,
        signal=classify_signal(
            rsi,
            ma_short,
            ma_long,
            oversold=settings.rsi_oversold,
            overbought=settings.rsi_overbought,
        ),
    )
