"""Entry planning: stop/target construction, exit rule text, trade drafts."""

from datetime import datetime, timezone
from decimal import Decimal

from trader.config import StrategySettings
from trader.models import ScreeningResult, Signal, Trade, TradeAction
from trader.strategy.models import AnalysisResult, IndicatorSnapshot


def compute_targets(
    action: Signal,
    entry_price: Decimal,
    indicators: IndicatorSnapshot,
    settings: StrategySettings,
) -> tuple[Decimal, Decimal]:
    """Return (stop_loss, take_profit) for a new position.

    Long: stop at the tighter of entry - 2*ATR and 2% under support.
    Short: stop at the tighter of entry + 2*ATR and 2% over resistance.
    Target sits reward_risk_ratio times the stop distance on the other side.
    HOLD yields (0, 0).
    """
    atr_offset = settings.atr_stop_multiplier * indicators.atr

    if action == Signal.BUY:
        stop_loss = max(
            entry_price - atr_offset,
            indicators.support * settings.support_buffer,
        )
        risk = entry_price - stop_loss
        return stop_loss, entry_price + risk * settings.reward_risk_ratio

    if action == Signal.SELL:
        stop_loss = min(
            entry_price + atr_offset,
            indicators.resistance * settings.resistance_buffer,
        )
        risk = stop_loss - entry_price
        return stop_loss, entry_price - risk * settings.reward_risk_ratio

    return Decimal("0"), Decimal("0")


def generate_exit_criteria(
    stop_loss: Decimal,
    take_profit: Decimal,
    action: TradeAction,
    settings: StrategySettings,
) -> str:
    """Human-readable exit rules stored with the trade."""
    short_ma = f"MA{settings.ma_short_period}"
    long_ma = f"MA{settings.ma_long_period}"

    if action == TradeAction.BUY:
        return (
            "Exit long position if:\n"
            f"1. Price hits stop loss at ${stop_loss:.2f} (protect capital)\n"
            f"2. Price hits take profit at ${take_profit:.2f} (lock in gains)\n"
            f"3. RSI exceeds {settings.rsi_overbought} (overbought condition)\n"
            f"4. {short_ma} crosses below {long_ma} (bearish crossover)"
        )
    return (
        "Exit short position if:\n"
        f"1. Price hits stop loss at ${stop_loss:.2f} (protect capital)\n"
        f"2. Price hits take profit at ${take_profit:.2f} (lock in gains)\n"
        f"3. RSI falls below {settings.rsi_oversold} (oversold condition)\n"
        f"4. {short_ma} crosses above {long_ma} (bullish crossover)"
    )


def build_trade(
    analysis: AnalysisResult,
    quantity: int,
    settings: StrategySettings,
) -> Trade:
    """Draft an unsaved OPEN trade from a BUY or SELL analysis.

    Raises:
        ValueError: If the analysis is a HOLD.
    """
    if analysis.action == Signal.HOLD:
        raise ValueError(f"Cannot build a trade from a HOLD analysis for {analysis.symbol}")

    action = TradeAction(analysis.action.value)
    return Trade(
        symbol=analysis.symbol,
        action=action,
        quantity=quantity,
        entry_price=analysis.entry_price,
        entry_date=datetime.now(timezone.utc),
        stop_loss=analysis.stop_loss,
        take_profit=analysis.take_profit,
        entry_reason=analysis.reason,
        exit_criteria=generate_exit_criteria(
            analysis.stop_loss, analysis.take_profit, action, settings
        ),
        strategy=settings.name,
        rsi=analysis.indicators.rsi,
        ma_short=analysis.indicators.ma_short,
        ma_long=analysis.indicators.ma_long,
    )


def build_trade_from_pick(
    pick: ScreeningResult,
    quantity: int,
    settings: StrategySettings,
) -> Trade:
    """Draft an unsaved OPEN trade from a stored screening pick.

    Entry, stop and target are the values captured at screening time.

    Raises:
        ValueError: If the pick is a HOLD.
    """
    if pick.signal == Signal.HOLD:
        raise ValueError(f"Cannot build a trade from a HOLD pick for {pick.symbol}")

    action = TradeAction(pick.signal.value)
    return Trade(
        symbol=pick.symbol,
        action=action,
        quantity=quantity,
        entry_price=pick.price,
        entry_date=datetime.now(timezone.utc),
        stop_loss=pick.stop_loss,
        take_profit=pick.take_profit,
        entry_reason=pick.reason,
        exit_criteria=generate_exit_criteria(pick.stop_loss, pick.take_profit, action, settings),
        strategy=settings.name,
        rsi=pick.rsi,
        ma_short=pick.ma_short,
        ma_long=pick.ma_long,
    )
