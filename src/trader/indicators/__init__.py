"""Technical indicator engine.

Pure functions over most-recent-first PriceBar sequences. Every indicator
raises InsufficientDataError when the sequence is too short.
"""

from trader.indicators.levels import SupportResistance, calculate_support_resistance
from trader.indicators.macd import MACDResult, calculate_macd
from trader.indicators.moving_average import calculate_ema, calculate_sma
from trader.indicators.rsi import calculate_rsi
from trader.indicators.volatility import (
    BollingerBands,
    calculate_atr,
    calculate_bollinger_bands,
)

__all__ = [
    "BollingerBands",
    "MACDResult",
    "SupportResistance",
    "calculate_atr",
    "calculate_bollinger_bands",
    "calculate_ema",
    "calculate_macd",
    "calculate_rsi",
    "calculate_sma",
    "calculate_support_resistance",
]
