"""Typed SQLite read/write implementations of the persistence contracts.

All SQL is isolated behind these classes. Every store shares one
TradingDatabase connection.

CRITICAL: All monetary/indicator values stored as TEXT in SQLite,
restored as Decimal on read.
"""

import time
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

import aiosqlite

from trader.data.base import PortfolioStore, ScreeningResultStore, TradeStore
from trader.data.database import TradingDatabase
from trader.logging import get_logger
from trader.models import (
    Portfolio,
    PriceBar,
    ScreeningResult,
    Signal,
    Trade,
    TradeAction,
    TradeStatus,
)

logger = get_logger(__name__)

_TRADE_COLUMNS = (
    "symbol",
    "action",
    "quantity",
    "entry_price",
    "entry_date",
    "exit_price",
    "exit_date",
    "stop_loss",
    "take_profit",
    "status",
    "pnl",
    "pnl_percent",
    "strategy",
    "entry_reason",
    "exit_criteria",
    "exit_reason",
    "rsi",
    "ma_short",
    "ma_long",
    "order_id",
)


def _to_db(value: object) -> object:
    """Convert a Python value to its SQLite storage form."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _dec(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _row_to_trade(row: aiosqlite.Row) -> Trade:
    return Trade(
        id=row["id"],
        symbol=row["symbol"],
        action=TradeAction(row["action"]),
        quantity=row["quantity"],
        entry_price=Decimal(row["entry_price"]),
        entry_date=datetime.fromisoformat(row["entry_date"]),
        stop_loss=Decimal(row["stop_loss"]),
        take_profit=Decimal(row["take_profit"]),
        status=TradeStatus(row["status"]),
        strategy=row["strategy"],
        entry_reason=row["entry_reason"],
        exit_criteria=row["exit_criteria"],
        exit_reason=row["exit_reason"],
        exit_price=_dec(row["exit_price"]),
        exit_date=_dt(row["exit_date"]),
        pnl=_dec(row["pnl"]),
        pnl_percent=_dec(row["pnl_percent"]),
        rsi=_dec(row["rsi"]),
        ma_short=_dec(row["ma_short"]),
        ma_long=_dec(row["ma_long"]),
        order_id=row["order_id"],
    )


def _row_to_screening_result(row: aiosqlite.Row) -> ScreeningResult:
    return ScreeningResult(
        id=row["id"],
        symbol=row["symbol"],
        signal=Signal(row["signal"]),
        price=Decimal(row["price"]),
        rsi=Decimal(row["rsi"]),
        ma_short=Decimal(row["ma_short"]),
        ma_long=Decimal(row["ma_long"]),
        stop_loss=Decimal(row["stop_loss"]),
        take_profit=Decimal(row["take_profit"]),
        reason=row["reason"],
        executed=bool(row["executed"]),
        created_at=_dt(row["created_at"]),
    )


class SqliteTradeStore(TradeStore):
    """Trade records backed by the ``trades`` table.

    Ids come from AUTOINCREMENT, so a deleted id is never handed out again.
    """

    def __init__(self, database: TradingDatabase) -> None:
        self._database = database

    async def create_trade(self, trade: Trade) -> int:
        values = [_to_db(getattr(trade, column)) for column in _TRADE_COLUMNS]
        placeholders = ", ".join("?" for _ in _TRADE_COLUMNS)
        cursor = await self._database.db.execute(
            f"INSERT INTO trades ({', '.join(_TRADE_COLUMNS)}) VALUES ({placeholders})",
            values,
        )
        await self._database.db.commit()

        trade_id = cursor.lastrowid
        assert trade_id is not None
        logger.info(
            "trade_created",
            trade_id=trade_id,
            symbol=trade.symbol,
            action=trade.action.value,
            entry_price=str(trade.entry_price),
        )
        return trade_id

    async def get_trade(self, trade_id: int) -> Trade | None:
        cursor = await self._database.db.execute(
            "SELECT * FROM trades WHERE id = ?", (trade_id,)
        )
        row = await cursor.fetchone()
        return _row_to_trade(row) if row is not None else None

    async def update_trade(self, trade_id: int, changes: Mapping[str, object]) -> None:
        """Apply a partial update.

        Raises:
            ValueError: If a key is not a persisted Trade column.
        """
        unknown = set(changes) - set(_TRADE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown trade fields: {sorted(unknown)}")
        if not changes:
            return

        assignments = ", ".join(f"{key} = ?" for key in changes)
        values = [_to_db(value) for value in changes.values()]
        await self._database.db.execute(
            f"UPDATE trades SET {assignments} WHERE id = ?",
            (*values, trade_id),
        )
        await self._database.db.commit()
        logger.debug("trade_updated", trade_id=trade_id, fields=sorted(changes))

    async def _query(self, sql: str, params: tuple = ()) -> list[Trade]:
        cursor = await self._database.db.execute(sql, params)
        rows = await cursor.fetchall()
        return [_row_to_trade(row) for row in rows]

    async def get_open_trades(self) -> list[Trade]:
        return await self._query(
            "SELECT * FROM trades WHERE status = ? ORDER BY entry_date DESC, id DESC",
            (TradeStatus.OPEN.value,),
        )

    async def get_closed_trades(self) -> list[Trade]:
        return await self._query(
            "SELECT * FROM trades WHERE status = ? ORDER BY exit_date DESC, id DESC",
            (TradeStatus.CLOSED.value,),
        )

    async def get_trades_by_symbol(self, symbol: str) -> list[Trade]:
        return await self._query(
            "SELECT * FROM trades WHERE symbol = ? ORDER BY entry_date DESC, id DESC",
            (symbol,),
        )

    async def get_all_trades(self) -> list[Trade]:
        return await self._query("SELECT * FROM trades ORDER BY entry_date DESC, id DESC")


class SqlitePortfolioStore(PortfolioStore):
    """The singleton ``portfolio`` row (id = 1)."""

    def __init__(self, database: TradingDatabase) -> None:
        self._database = database

    async def ensure_portfolio(self, initial_cash: Decimal) -> Portfolio:
        cash = str(initial_cash)
        cursor = await self._database.db.execute(
            "INSERT OR IGNORE INTO portfolio (id, cash, initial_cash, total_value) "
            "VALUES (1, ?, ?, ?)",
            (cash, cash, cash),
        )
        await self._database.db.commit()
        if cursor.rowcount:
            logger.info("portfolio_initialized", initial_cash=cash)
        return await self.get_portfolio()

    async def get_portfolio(self) -> Portfolio:
        """Raises RuntimeError if ensure_portfolio() was never called."""
        cursor = await self._database.db.execute("SELECT * FROM portfolio WHERE id = 1")
        row = await cursor.fetchone()
        if row is None:
            raise RuntimeError("Portfolio not initialized. Call ensure_portfolio() first.")
        return Portfolio(
            cash=Decimal(row["cash"]),
            initial_cash=Decimal(row["initial_cash"]),
            total_value=Decimal(row["total_value"]),
            updated_at=_dt(row["updated_at"]),
        )

    async def update_cash(self, cash: Decimal) -> None:
        await self._database.db.execute(
            "UPDATE portfolio SET cash = ?, updated_at = CURRENT_TIMESTAMP WHERE id = 1",
            (str(cash),),
        )
        await self._database.db.commit()

    async def update_total_value(self, total_value: Decimal) -> None:
        await self._database.db.execute(
            "UPDATE portfolio SET total_value = ?, updated_at = CURRENT_TIMESTAMP WHERE id = 1",
            (str(total_value),),
        )
        await self._database.db.commit()


class SqliteScreeningResultStore(ScreeningResultStore):
    def __init__(self, database: TradingDatabase) -> None:
        self._database = database

    async def store_results(self, results: Sequence[ScreeningResult]) -> int:
        cleared = await self._database.db.execute(
            "DELETE FROM screening_results WHERE executed = 0"
        )
        data = [
            (
                r.symbol,
                r.signal.value,
                str(r.price),
                str(r.rsi),
                str(r.ma_short),
                str(r.ma_long),
                str(r.stop_loss),
                str(r.take_profit),
                r.reason,
            )
            for r in results
        ]
        if data:
            await self._database.db.executemany(
                "INSERT INTO screening_results "
                "(symbol, signal, price, rsi, ma_short, ma_long, stop_loss, take_profit, reason) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                data,
            )
        await self._database.db.commit()

        logger.info(
            "screening_results_stored",
            stored=len(data),
            cleared_unexecuted=cleared.rowcount,
        )
        return len(data)

    async def get_unexecuted(self) -> list[ScreeningResult]:
        cursor = await self._database.db.execute(
            "SELECT * FROM screening_results WHERE executed = 0 ORDER BY id"
        )
        rows = await cursor.fetchall()
        return [_row_to_screening_result(row) for row in rows]

    async def mark_executed(self, result_id: int) -> None:
        await self._database.db.execute(
            "UPDATE screening_results SET executed = 1 WHERE id = ?", (result_id,)
        )
        await self._database.db.commit()


class SqliteWatchlist:
    """Symbols scanned by scheduled cycles."""

    def __init__(self, database: TradingDatabase) -> None:
        self._database = database

    async def add(self, symbol: str) -> bool:
        """Add a symbol. Returns False if it was already present."""
        cursor = await self._database.db.execute(
            "INSERT OR IGNORE INTO watchlist (symbol) VALUES (?)", (symbol.upper(),)
        )
        await self._database.db.commit()
        added = cursor.rowcount > 0
        if added:
            logger.info("watchlist_symbol_added", symbol=symbol.upper())
        return added

    async def remove(self, symbol: str) -> bool:
        cursor = await self._database.db.execute(
            "DELETE FROM watchlist WHERE symbol = ?", (symbol.upper(),)
        )
        await self._database.db.commit()
        return cursor.rowcount > 0

    async def symbols(self) -> list[str]:
        cursor = await self._database.db.execute("SELECT symbol FROM watchlist ORDER BY symbol")
        rows = await cursor.fetchall()
        return [row["symbol"] for row in rows]


class SqlitePriceCache:
    """Daily bar cache backing the market data layer."""

    def __init__(self, database: TradingDatabase) -> None:
        self._database = database

    async def store_bars(self, symbol: str, bars: Sequence[PriceBar]) -> int:
        """Insert or replace bars for a symbol, stamping the fetch time."""
        if not bars:
            return 0

        fetched_at = time.time()
        data = [
            (
                symbol,
                bar.timestamp.isoformat(),
                str(bar.open),
                str(bar.high),
                str(bar.low),
                str(bar.close),
                bar.volume,
                fetched_at,
            )
            for bar in bars
        ]
        await self._database.db.executemany(
            "INSERT OR REPLACE INTO price_cache "
            "(symbol, timestamp, open, high, low, close, volume, fetched_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            data,
        )
        await self._database.db.commit()
        logger.debug("price_bars_cached", symbol=symbol, count=len(data))
        return len(data)

    async def get_bars(self, symbol: str, limit: int = 100) -> list[PriceBar]:
        """Return cached bars most-recent-first."""
        cursor = await self._database.db.execute(
            "SELECT * FROM price_cache WHERE symbol = ? ORDER BY timestamp DESC LIMIT ?",
            (symbol, limit),
        )
        rows = await cursor.fetchall()
        return [
            PriceBar(
                symbol=row["symbol"],
                timestamp=date.fromisoformat(row["timestamp"]),
                open=Decimal(row["open"]),
                high=Decimal(row["high"]),
                low=Decimal(row["low"]),
                close=Decimal(row["close"]),
                volume=row["volume"],
            )
            for row in rows
        ]

    async def get_last_fetched_at(self, symbol: str) -> float | None:
        """Unix time of the most recent fetch for a symbol, or None if never cached."""
        cursor = await self._database.db.execute(
            "SELECT MAX(fetched_at) AS fetched_at FROM price_cache WHERE symbol = ?",
            (symbol,),
        )
        row = await cursor.fetchone()
        return row["fetched_at"] if row is not None else None
