"""Tests for PortfolioLedger cash movements."""

from decimal import Decimal

import pytest

from conftest import INITIAL_CASH, make_trade
from trader.exceptions import InsufficientFundsError
from trader.models import TradeAction
from trader.trading.ledger import PortfolioLedger


class TestInitialize:
    @pytest.mark.asyncio
    async def test_initial_state(self, ledger: PortfolioLedger) -> None:
        portfolio = await ledger.get_portfolio()
        assert portfolio.cash == INITIAL_CASH
        assert portfolio.initial_cash == INITIAL_CASH
        assert portfolio.total_value == INITIAL_CASH

    @pytest.mark.asyncio
    async def test_reinitialize_keeps_existing_cash(self, ledger: PortfolioLedger) -> None:
        await ledger.record_entry(make_trade(quantity=10, entry_price=Decimal("100")))
        portfolio = await ledger.initialize(Decimal("1"))
        assert portfolio.cash == Decimal("99000")


class TestEntries:
    @pytest.mark.asyncio
    async def test_buy_debits_cash(self, ledger: PortfolioLedger) -> None:
        cash = await ledger.record_entry(make_trade(quantity=10, entry_price=Decimal("100")))
        assert cash == Decimal("99000")
        assert (await ledger.get_portfolio()).cash == Decimal("99000")

    @pytest.mark.asyncio
    async def test_sell_leaves_cash(self, ledger: PortfolioLedger) -> None:
        trade = make_trade(action=TradeAction.SELL, quantity=10, entry_price=Decimal("100"))
        assert await ledger.record_entry(trade) == INITIAL_CASH

    @pytest.mark.asyncio
    async def test_unaffordable_buy_rejected(self, ledger: PortfolioLedger) -> None:
        trade = make_trade(quantity=1001, entry_price=Decimal("100"))
        with pytest.raises(InsufficientFundsError):
            await ledger.check_funds(trade)
        with pytest.raises(InsufficientFundsError):
            await ledger.record_entry(trade)
        assert (await ledger.get_portfolio()).cash == INITIAL_CASH

    @pytest.mark.asyncio
    async def test_exact_cash_is_affordable(self, ledger: PortfolioLedger) -> None:
        trade = make_trade(quantity=1000, entry_price=Decimal("100"))
        await ledger.check_funds(trade)
        assert await ledger.record_entry(trade) == Decimal("0")

    @pytest.mark.asyncio
    async def test_sell_never_needs_funds(self, ledger: PortfolioLedger) -> None:
        await ledger.check_funds(
            make_trade(action=TradeAction.SELL, quantity=10_000, entry_price=Decimal("100"))
        )


class TestExits:
    @pytest.mark.asyncio
    async def test_buy_exit_credits(self, ledger: PortfolioLedger) -> None:
        trade = make_trade(quantity=10, entry_price=Decimal("100"))
        await ledger.record_entry(trade)
        assert await ledger.record_exit(trade, Decimal("110")) == Decimal("100100")

    @pytest.mark.asyncio
    async def test_sell_exit_debits(self, ledger: PortfolioLedger) -> None:
        trade = make_trade(action=TradeAction.SELL, quantity=10, entry_price=Decimal("100"))
        await ledger.record_entry(trade)
        assert await ledger.record_exit(trade, Decimal("90")) == Decimal("99100")


class TestTotalValue:
    @pytest.mark.asyncio
    async def test_counts_open_buys_at_entry(self, ledger: PortfolioLedger) -> None:
        buy = make_trade(quantity=10, entry_price=Decimal("100"))
        short = make_trade("TSLA", action=TradeAction.SELL, quantity=5, entry_price=Decimal("200"))
        await ledger.record_entry(buy)
        await ledger.record_entry(short)

        total = await ledger.refresh_total_value([buy, short])

        assert total == INITIAL_CASH
        assert (await ledger.get_portfolio()).total_value == INITIAL_CASH
