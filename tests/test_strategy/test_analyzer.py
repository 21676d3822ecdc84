"""Tests for StrategyAnalyzer against mocked market data providers."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from conftest import make_bars, make_trade, pullback_closes
from trader.config import StrategySettings
from trader.exceptions import InsufficientDataError, MarketDataError
from trader.market_data.provider import PriceHistoryProvider, QuoteProvider
from trader.models import Quote, Signal, TradeAction
from trader.strategy import ScreeningCriteria, StrategyAnalyzer, calculate_position_size


@pytest.fixture
def history() -> AsyncMock:
    provider = AsyncMock(spec=PriceHistoryProvider)
    provider.get_daily_bars.return_value = make_bars(pullback_closes(), symbol="PULL")
    return provider


@pytest.fixture
def quotes() -> AsyncMock:
    return AsyncMock(spec=QuoteProvider)


@pytest.fixture
def analyzer(history: AsyncMock, quotes: AsyncMock) -> StrategyAnalyzer:
    return StrategyAnalyzer(StrategySettings(), history, quotes)


class TestAnalyzeStock:
    @pytest.mark.asyncio
    async def test_pullback_produces_buy_with_three_to_one_targets(
        self, analyzer: StrategyAnalyzer
    ) -> None:
        result = await analyzer.analyze_stock("PULL")

        assert result.should_trade
        assert result.action == Signal.BUY
        assert result.entry_price == Decimal("119")
        # support 118 * 0.98 = 115.64 beats 119 - 2 * ATR(48/14)
        assert result.stop_loss == Decimal("115.64")
        assert result.take_profit == Decimal("129.08")
        risk = result.entry_price - result.stop_loss
        assert result.take_profit - result.entry_price == 3 * risk
        assert "RSI oversold" in result.reason
        assert "MA20: 138.50 > MA50: 130.10" in result.reason

        qty = calculate_position_size(Decimal("100000"), result.entry_price, result.stop_loss)
        assert qty == 84

    @pytest.mark.asyncio
    async def test_hold_has_zero_targets(
        self, analyzer: StrategyAnalyzer, history: AsyncMock
    ) -> None:
        history.get_daily_bars.return_value = make_bars([100] * 60)
        result = await analyzer.analyze_stock("FLAT")

        assert not result.should_trade
        assert result.action == Signal.HOLD
        assert result.stop_loss == Decimal("0")
        assert result.take_profit == Decimal("0")
        assert result.reason.startswith("No clear signal")

    @pytest.mark.asyncio
    async def test_requires_long_period_plus_padding(
        self, analyzer: StrategyAnalyzer, history: AsyncMock
    ) -> None:
        history.get_daily_bars.return_value = make_bars(pullback_closes()[1:])  # 59 bars
        with pytest.raises(InsufficientDataError):
            await analyzer.analyze_stock("SHORT")

    @pytest.mark.asyncio
    async def test_passes_size_hint(self, history: AsyncMock, quotes: AsyncMock) -> None:
        analyzer = StrategyAnalyzer(StrategySettings(), history, quotes, history_size="full")
        await analyzer.analyze_stock("PULL")
        history.get_daily_bars.assert_awaited_once_with("PULL", "full")


class TestScreenStocks:
    @pytest.fixture
    def mixed_history(self, history: AsyncMock) -> AsyncMock:
        async def bars_for(symbol: str, size_hint: str = "compact"):
            if symbol == "BAD":
                raise MarketDataError("upstream down")
            if symbol == "FLAT":
                return make_bars([100] * 60, symbol=symbol)
            return make_bars(pullback_closes(), symbol=symbol)

        history.get_daily_bars.side_effect = bars_for
        return history

    @pytest.mark.asyncio
    async def test_failures_are_skipped(
        self, analyzer: StrategyAnalyzer, mixed_history: AsyncMock
    ) -> None:
        report = await analyzer.screen_stocks(["GOOD", "BAD", "FLAT"])

        assert report.screened == 3
        assert [a.symbol for a in report.passed] == ["GOOD"]
        assert list(report.failed) == ["BAD"]
        assert "upstream down" in report.failed["BAD"]

    @pytest.mark.asyncio
    async def test_price_filter(
        self, analyzer: StrategyAnalyzer, mixed_history: AsyncMock
    ) -> None:
        report = await analyzer.screen_stocks(["GOOD"], ScreeningCriteria(max_price=Decimal("100")))
        assert report.passed == []

    @pytest.mark.asyncio
    async def test_rsi_band_and_crossover(
        self, analyzer: StrategyAnalyzer, mixed_history: AsyncMock
    ) -> None:
        criteria = ScreeningCriteria(
            min_rsi=Decimal("20"), max_rsi=Decimal("30"), require_ma_crossover=True
        )
        report = await analyzer.screen_stocks(["GOOD"], criteria)
        assert len(report.passed) == 1


class TestEvaluateExit:
    @pytest.mark.asyncio
    async def test_price_rule_skips_history_fetch(
        self, analyzer: StrategyAnalyzer, history: AsyncMock, quotes: AsyncMock
    ) -> None:
        quotes.get_quote.return_value = Quote(symbol="AAPL", price=Decimal("94"))
        trade = make_trade(stop_loss=Decimal("95"), take_profit=Decimal("115"))

        decision = await analyzer.evaluate_exit(trade)

        assert decision.should_exit
        assert decision.reason == "Stop loss hit at $94.00"
        history.get_daily_bars.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reversal_uses_fresh_indicators(
        self, analyzer: StrategyAnalyzer, history: AsyncMock, quotes: AsyncMock
    ) -> None:
        quotes.get_quote.return_value = Quote(symbol="AAPL", price=Decimal("100"))
        history.get_daily_bars.return_value = make_bars(range(100, 160))  # RSI 100
        trade = make_trade(stop_loss=Decimal("95"), take_profit=Decimal("115"))

        decision = await analyzer.evaluate_exit(trade)

        assert decision.should_exit
        assert decision.reason == "Technical reversal signal: RSI 100.00, Signal: HOLD"

    @pytest.mark.asyncio
    async def test_short_holds_in_rally_without_stop(
        self, analyzer: StrategyAnalyzer, history: AsyncMock, quotes: AsyncMock
    ) -> None:
        quotes.get_quote.return_value = Quote(symbol="AAPL", price=Decimal("100"))
        history.get_daily_bars.return_value = make_bars(range(100, 160))
        trade = make_trade(action=TradeAction.SELL)

        decision = await analyzer.evaluate_exit(trade)

        assert not decision.should_exit
        assert decision.current_price == Decimal("100")
