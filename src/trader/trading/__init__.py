"""Trade lifecycle and portfolio ledger."""

from trader.trading.engine import MonitorReport, TradingEngine
from trader.trading.ledger import PortfolioLedger

__all__ = ["MonitorReport", "PortfolioLedger", "TradingEngine"]
