"""Strategy data models: indicator snapshots, analysis results, exit decisions.

CRITICAL: All indicator and price values use Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from trader.models import Signal

if TYPE_CHECKING:
    from trader.config import ScreeningSettings


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values for one symbol at analysis time. Never persisted."""

    rsi: Decimal
    ma_short: Decimal
    ma_long: Decimal
    atr: Decimal
    support: Decimal
    resistance: Decimal
    signal: Signal


@dataclass
class AnalysisResult:
    """Outcome of analysing a single symbol.

    stop_loss and take_profit are 0 when the action is HOLD.
    """

    symbol: str
    should_trade: bool
    action: Signal
    indicators: IndicatorSnapshot
    entry_price: Decimal
    stop_loss: Decimal
    take_profit: Decimal
    reason: str


@dataclass
class ScreeningCriteria:
    """Optional filters for screening. A None bound is not enforced."""

    min_price: Decimal | None = None
    max_price: Decimal | None = None
    min_rsi: Decimal | None = None
    max_rsi: Decimal | None = None
    require_ma_crossover: bool = False

    @classmethod
    def from_settings(cls, settings: ScreeningSettings) -> ScreeningCriteria:
        return cls(
            min_price=settings.min_price,
            max_price=settings.max_price,
            min_rsi=settings.min_rsi,
            max_rsi=settings.max_rsi,
            require_ma_crossover=settings.require_ma_crossover,
        )

    def matches(self, analysis: AnalysisResult) -> bool:
        """Check price range, RSI band and the optional MA-crossover requirement."""
        price = analysis.entry_price
        rsi = analysis.indicators.rsi

        if self.min_price is not None and price < self.min_price:
            return False
        if self.max_price is not None and price > self.max_price:
            return False
        if self.min_rsi is not None and rsi < self.min_rsi:
            return False
        if self.max_rsi is not None and rsi > self.max_rsi:
            return False
        if self.require_ma_crossover and not (
            analysis.indicators.ma_short > analysis.indicators.ma_long
        ):
            return False
        return True


@dataclass
class ScreeningReport:
    """Symbols that passed screening plus per-symbol failures."""

    passed: list[AnalysisResult] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    screened: int = 0


@dataclass(frozen=True)
class ExitDecision:
    """Whether an open trade should be closed, and why."""

    should_exit: bool
    reason: str
    current_price: Decimal
