"""Exit rule evaluation for open trades.

Rules are checked in a fixed order and the first match wins:
1. stop-loss breach
2. take-profit breach
3. technical reversal (RSI past the opposite threshold, or opposite signal)

Stop-loss goes first so that a bar satisfying several rules reports the
capital-protecting reason.
"""

from decimal import Decimal

from trader.config import StrategySettings
from trader.models import Signal, Trade, TradeAction
from trader.strategy.models import ExitDecision, IndicatorSnapshot


def check_price_exit(trade: Trade, current_price: Decimal) -> ExitDecision | None:
    """Evaluate only the stop-loss and take-profit rules.

    Returns:
        An exiting ExitDecision, or None when neither level was breached.
    """
    is_long = trade.action == TradeAction.BUY

    stop_hit = (
        current_price <= trade.stop_loss if is_long else current_price >= trade.stop_loss
    )
    if stop_hit:
        return ExitDecision(True, f"Stop loss hit at ${current_price:.2f}", current_price)

    target_hit = (
        current_price >= trade.take_profit if is_long else current_price <= trade.take_profit
    )
    if target_hit:
        return ExitDecision(
            True, f"Take profit target reached at ${current_price:.2f}", current_price
        )

    return None


def check_exit_conditions(
    trade: Trade,
    current_price: Decimal,
    indicators: IndicatorSnapshot | None,
    settings: StrategySettings | None = None,
) -> ExitDecision:
    """Decide whether an open trade should be closed.

    Args:
        trade: The open trade.
        current_price: Latest market price for the trade's symbol.
        indicators: Fresh indicator snapshot, or None to skip the
            reversal rule (price rules still apply).
        settings: Supplies the RSI thresholds (defaults 30/70).

    Returns:
        ExitDecision carrying the first matching reason.
    """
    settings = settings or StrategySettings()

    decision = check_price_exit(trade, current_price)
    if decision is not None:
        return decision

    if indicators is not None:
        if trade.action == TradeAction.BUY:
            reversed_ = (
                indicators.rsi > settings.rsi_overbought
                or indicators.signal == Signal.SELL
            )
        else:
            reversed_ = (
                indicators.rsi < settings.rsi_oversold
                or indicators.signal == Signal.BUY
            )
        if reversed_:
            return ExitDecision(
                True,
                f"Technical reversal signal: RSI {indicators.rsi:.2f}, "
                f"Signal: {indicators.signal.value}",
                current_price,
            )

    return ExitDecision(False, "All conditions within acceptable range", current_price)
