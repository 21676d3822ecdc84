"""Strategy decision module: signals, targets, sizing, exits, screening."""

from trader.strategy.analyzer import StrategyAnalyzer
from trader.strategy.exits import check_exit_conditions, check_price_exit
from trader.strategy.models import (
    AnalysisResult,
    ExitDecision,
    IndicatorSnapshot,
    ScreeningCriteria,
    ScreeningReport,
)
from trader.strategy.planning import (
    build_trade,
    build_trade_from_pick,
    compute_targets,
    generate_exit_criteria,
)
from trader.strategy.signal import classify_signal, get_signal
from trader.strategy.sizing import calculate_position_size

__all__ = [
    "AnalysisResult",
    "ExitDecision",
    "IndicatorSnapshot",
    "ScreeningCriteria",
    "ScreeningReport",
    "StrategyAnalyzer",
    "build_trade",
    "build_trade_from_pick",
    "calculate_position_size",
    "check_exit_conditions",
    "check_price_exit",
    "classify_signal",
    "compute_targets",
    "generate_exit_criteria",
    "get_signal",
]
