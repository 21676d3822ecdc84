"""Risk-based position sizing.

Quantity is the smaller of:
1. shares whose stop-out loss equals ``risk_fraction`` of cash
2. shares whose notional equals ``max_position_fraction`` of cash

Shares are whole and always rounded DOWN. Zero is a valid answer and
means "skip the trade".
"""

import math
from decimal import Decimal


def calculate_position_size(
    account_cash: Decimal,
    entry_price: Decimal,
    stop_loss: Decimal,
    risk_fraction: Decimal = Decimal("0.02"),
    max_position_fraction: Decimal = Decimal("0.1"),
) -> int:
    """Calculate the number of shares to trade.

    Args:
        account_cash: Cash available in the portfolio ledger.
        entry_price: Planned entry price per share.
        stop_loss: Planned stop-loss price per share.
        risk_fraction: Fraction of cash risked if the stop is hit.
        max_position_fraction: Cap on position notional as a fraction of cash.

    Returns:
        Whole share count, never negative. 0 when the stop equals the entry
        (unbounded size) or when cash or price do not allow a single share.
    """
    risk_per_share = abs(entry_price - stop_loss)
    if risk_per_share == 0 or entry_price <= 0 or account_cash <= 0:
        return 0

    risk_amount = account_cash * risk_fraction
    shares_by_risk = math.floor(risk_amount / risk_per_share)
    shares_by_cap = math.floor(account_cash * max_position_fraction / entry_price)

    return max(0, min(shares_by_risk, shares_by_cap))
