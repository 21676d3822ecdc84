"""Tests for the SQLite stores: Decimal round-trip, ordering, partial updates."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from conftest import make_bars, make_trade
from trader.data.database import TradingDatabase
from trader.data.store import (
    SqlitePortfolioStore,
    SqlitePriceCache,
    SqliteScreeningResultStore,
    SqliteTradeStore,
    SqliteWatchlist,
)
from trader.models import ScreeningResult, Signal, TradeAction, TradeStatus


def _pick(symbol: str, signal: Signal = Signal.BUY) -> ScreeningResult:
    return ScreeningResult(
        symbol=symbol,
        signal=signal,
        price=Decimal("119"),
        rsi=Decimal("23.2712"),
        ma_short=Decimal("138.5"),
        ma_long=Decimal("130.1"),
        stop_loss=Decimal("115.64"),
        take_profit=Decimal("129.08"),
        reason="RSI oversold",
    )


class TestTradeStore:
    @pytest.mark.asyncio
    async def test_create_and_get_preserves_decimals(self, trade_store: SqliteTradeStore) -> None:
        trade = make_trade(entry_price=Decimal("123.456789"), stop_loss=Decimal("0.1"))
        trade.rsi = Decimal("28.123456789012345")
        trade_id = await trade_store.create_trade(trade)

        loaded = await trade_store.get_trade(trade_id)

        assert loaded is not None
        assert loaded.id == trade_id
        assert loaded.entry_price == Decimal("123.456789")
        assert loaded.stop_loss == Decimal("0.1")
        assert loaded.rsi == Decimal("28.123456789012345")
        assert loaded.action == TradeAction.BUY
        assert loaded.status == TradeStatus.OPEN
        assert loaded.entry_date == trade.entry_date
        assert loaded.pnl is None

    @pytest.mark.asyncio
    async def test_ids_increase(self, trade_store: SqliteTradeStore) -> None:
        first = await trade_store.create_trade(make_trade("A"))
        second = await trade_store.create_trade(make_trade("B"))
        assert second > first

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, trade_store: SqliteTradeStore) -> None:
        assert await trade_store.get_trade(999) is None

    @pytest.mark.asyncio
    async def test_partial_update(self, trade_store: SqliteTradeStore) -> None:
        trade_id = await trade_store.create_trade(make_trade())
        await trade_store.update_trade(
            trade_id,
            {"status": TradeStatus.CLOSED, "exit_price": Decimal("110"), "pnl": Decimal("100")},
        )

        loaded = await trade_store.get_trade(trade_id)
        assert loaded.status == TradeStatus.CLOSED
        assert loaded.exit_price == Decimal("110")
        assert loaded.pnl == Decimal("100")
        assert loaded.entry_price == Decimal("100")

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, trade_store: SqliteTradeStore) -> None:
        trade_id = await trade_store.create_trade(make_trade())
        with pytest.raises(ValueError):
            await trade_store.update_trade(trade_id, {"id": 5})

    @pytest.mark.asyncio
    async def test_queries(self, trade_store: SqliteTradeStore) -> None:
        base = datetime(2024, 3, 1, tzinfo=timezone.utc)
        old = await trade_store.create_trade(make_trade("AAPL", entry_date=base))
        new = await trade_store.create_trade(
            make_trade("MSFT", entry_date=base + timedelta(days=1))
        )
        closed = await trade_store.create_trade(
            make_trade("AAPL", entry_date=base + timedelta(days=2))
        )
        await trade_store.update_trade(closed, {"status": TradeStatus.CLOSED})

        assert [t.id for t in await trade_store.get_all_trades()] == [closed, new, old]
        assert {t.id for t in await trade_store.get_open_trades()} == {old, new}
        assert [t.id for t in await trade_store.get_closed_trades()] == [closed]
        assert {t.id for t in await trade_store.get_trades_by_symbol("AAPL")} == {old, closed}


class TestPortfolioStore:
    @pytest.mark.asyncio
    async def test_get_before_init_raises(self, portfolio_store: SqlitePortfolioStore) -> None:
        with pytest.raises(RuntimeError):
            await portfolio_store.get_portfolio()

    @pytest.mark.asyncio
    async def test_ensure_is_create_once(self, portfolio_store: SqlitePortfolioStore) -> None:
        first = await portfolio_store.ensure_portfolio(Decimal("100000"))
        await portfolio_store.update_cash(Decimal("95000"))
        second = await portfolio_store.ensure_portfolio(Decimal("5"))

        assert first.cash == first.initial_cash == first.total_value == Decimal("100000")
        assert second.cash == Decimal("95000")
        assert second.initial_cash == Decimal("100000")

    @pytest.mark.asyncio
    async def test_update_total_value(self, portfolio_store: SqlitePortfolioStore) -> None:
        await portfolio_store.ensure_portfolio(Decimal("100000"))
        await portfolio_store.update_total_value(Decimal("101234.56"))
        portfolio = await portfolio_store.get_portfolio()
        assert portfolio.total_value == Decimal("101234.56")
        assert portfolio.updated_at is not None


class TestScreeningResultStore:
    @pytest.mark.asyncio
    async def test_store_and_read(self, screening_store: SqliteScreeningResultStore) -> None:
        await screening_store.store_results([_pick("AAPL"), _pick("TSLA", Signal.SELL)])

        picks = await screening_store.get_unexecuted()
        assert [p.symbol for p in picks] == ["AAPL", "TSLA"]
        assert picks[1].signal == Signal.SELL
        assert picks[0].stop_loss == Decimal("115.64")
        assert picks[0].created_at is not None

    @pytest.mark.asyncio
    async def test_new_scan_clears_only_unexecuted(
        self, screening_store: SqliteScreeningResultStore, database: TradingDatabase
    ) -> None:
        await screening_store.store_results([_pick("AAPL"), _pick("MSFT")])
        first = await screening_store.get_unexecuted()
        await screening_store.mark_executed(first[0].id)

        await screening_store.store_results([_pick("NVDA")])

        assert [p.symbol for p in await screening_store.get_unexecuted()] == ["NVDA"]
        cursor = await database.db.execute(
            "SELECT symbol FROM screening_results WHERE executed = 1"
        )
        assert [row["symbol"] for row in await cursor.fetchall()] == ["AAPL"]


class TestWatchlist:
    @pytest.mark.asyncio
    async def test_add_remove(self, watchlist: SqliteWatchlist) -> None:
        assert await watchlist.add("aapl")
        assert not await watchlist.add("AAPL")
        assert await watchlist.add("msft")
        assert await watchlist.symbols() == ["AAPL", "MSFT"]

        assert await watchlist.remove("AAPL")
        assert not await watchlist.remove("AAPL")
        assert await watchlist.symbols() == ["MSFT"]


class TestPriceCache:
    @pytest.mark.asyncio
    async def test_bars_round_trip_most_recent_first(self, price_cache: SqlitePriceCache) -> None:
        bars = make_bars(["10.5", "11.25", "12"], symbol="AAPL")
        assert await price_cache.store_bars("AAPL", bars) == 3

        cached = await price_cache.get_bars("AAPL")
        assert cached == bars
        assert cached[0].timestamp == date(2024, 1, 3)

    @pytest.mark.asyncio
    async def test_limit_and_fetch_time(self, price_cache: SqlitePriceCache) -> None:
        assert await price_cache.get_last_fetched_at("AAPL") is None

        await price_cache.store_bars("AAPL", make_bars(range(1, 11), symbol="AAPL"))

        assert len(await price_cache.get_bars("AAPL", limit=4)) == 4
        assert await price_cache.get_last_fetched_at("AAPL") is not None

    @pytest.mark.asyncio
    async def test_restore_replaces_existing_dates(self, price_cache: SqlitePriceCache) -> None:
        await price_cache.store_bars("AAPL", make_bars([1, 2], symbol="AAPL"))
        await price_cache.store_bars("AAPL", make_bars([5, 6], symbol="AAPL"))
        assert [b.close for b in await price_cache.get_bars("AAPL")] == [Decimal("6"), Decimal("5")]
