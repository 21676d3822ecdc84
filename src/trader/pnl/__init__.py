from trader.pnl.calculator import (
    PortfolioStats,
    compute_portfolio_stats,
    compute_trade_pnl,
    invested_capital,
)

__all__ = [
    "PortfolioStats",
    "compute_portfolio_stats",
    "compute_trade_pnl",
    "invested_capital",
]
