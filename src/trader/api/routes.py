"""JSON API endpoints.

Trades (list, create, close), portfolio, analysis, cycles, screening,
watchlist, runtime config and bot start/stop.
"""

from __future__ import annotations

import dataclasses
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from trader.config import RuntimeConfig, StrategySettings
from trader.models import Trade, TradeAction
from trader.orchestrator import Orchestrator
from trader.strategy.planning import generate_exit_criteria

log = structlog.get_logger(__name__)

router = APIRouter()


def _jsonable(obj: Any) -> Any:
    """Recursively convert dataclasses, Decimals, enums and dates for JSON."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(item) for item in obj]
    return obj


def _orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


async def _json_body(request: Request) -> dict:
    body = await request.body()
    if not body:
        return {}
    data = await request.json()
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    orchestrator = _orchestrator(request)
    return JSONResponse(content={
        "running": orchestrator.is_running,
        "runtime_config": _jsonable(orchestrator.runtime_config),
    })


@router.get("/trades")
async def list_trades(request: Request, status: str | None = None) -> JSONResponse:
    """All trades (newest first), or only ``open`` / ``closed`` ones."""
    store = _orchestrator(request).engine.trade_store
    if status is None:
        trades = await store.get_all_trades()
    elif status.lower() == "open":
        trades = await store.get_open_trades()
    elif status.lower() == "closed":
        trades = await store.get_closed_trades()
    else:
        return JSONResponse(content={"error": f"Unknown status: {status}"}, status_code=400)
    return JSONResponse(content=_jsonable(trades))


def _parse_manual_trade(body: dict, settings: StrategySettings) -> Trade:
    """Build an unsaved trade from a JSON body. Raises KeyError/ValueError on bad input."""
    action = TradeAction(str(body["action"]).upper())
    quantity = int(body["quantity"])
    entry_price = Decimal(str(body["entry_price"]))
    stop_loss = Decimal(str(body["stop_loss"]))
    take_profit = Decimal(str(body["take_profit"]))
    if quantity <= 0:
        raise ValueError("quantity must be positive")
    if entry_price <= 0:
        raise ValueError("entry_price must be positive")
    return Trade(
        symbol=str(body["symbol"]).upper(),
        action=action,
        quantity=quantity,
        entry_price=entry_price,
        entry_date=datetime.now(timezone.utc),
        stop_loss=stop_loss,
        take_profit=take_profit,
        entry_reason=body.get("entry_reason") or "Manual trade",
        exit_criteria=body.get("exit_criteria")
        or generate_exit_criteria(stop_loss, take_profit, action, settings),
        strategy=settings.name,
    )


@router.post("/trades")
async def create_trade(request: Request) -> JSONResponse:
    """Open a manual trade. Insufficient funds surfaces as a 400 from the error handler."""
    orchestrator = _orchestrator(request)
    try:
        body = await _json_body(request)
        trade = _parse_manual_trade(body, orchestrator.analyzer.settings)
    except KeyError as e:
        return JSONResponse(content={"error": f"Missing field: {e.args[0]}"}, status_code=400)
    except (InvalidOperation, ValueError) as e:
        return JSONResponse(content={"error": f"Invalid request: {e}"}, status_code=400)

    trade_id = await orchestrator.engine.execute_trade(trade)
    created = await orchestrator.engine.trade_store.get_trade(trade_id)
    log.info("trade_created_via_api", trade_id=trade_id, symbol=trade.symbol)
    return JSONResponse(content=_jsonable(created), status_code=201)


@router.get("/trades/{trade_id}")
async def get_trade(request: Request, trade_id: int) -> JSONResponse:
    trade = await _orchestrator(request).engine.trade_store.get_trade(trade_id)
    if trade is None:
        return JSONResponse(content={"error": f"Trade {trade_id} not found"}, status_code=404)
    return JSONResponse(content=_jsonable(trade))


@router.post("/trades/{trade_id}/close")
async def close_trade(request: Request, trade_id: int) -> JSONResponse:
    """Close a trade at an optional explicit ``exit_price`` with an optional ``reason``."""
    try:
        body = await _json_body(request)
        exit_price = Decimal(str(body["exit_price"])) if body.get("exit_price") else None
    except (InvalidOperation, ValueError) as e:
        return JSONResponse(content={"error": f"Invalid request: {e}"}, status_code=400)

    trade = await _orchestrator(request).engine.close_trade(
        trade_id, exit_price=exit_price, reason=body.get("reason")
    )
    log.info("trade_closed_via_api", trade_id=trade_id)
    return JSONResponse(content=_jsonable(trade))


@router.get("/portfolio")
async def get_portfolio(request: Request) -> JSONResponse:
    stats = await _orchestrator(request).engine.get_portfolio_stats()
    return JSONResponse(content=_jsonable(stats))


@router.get("/analyze/{symbol}")
async def analyze_symbol(request: Request, symbol: str) -> JSONResponse:
    analysis = await _orchestrator(request).analyzer.analyze_stock(symbol.upper())
    return JSONResponse(content=_jsonable(analysis))


@router.post("/cycle")
async def run_cycle(request: Request) -> JSONResponse:
    """Run one monitor + screen + trade cycle over ``symbols`` or the watchlist."""
    try:
        body = await _json_body(request)
    except ValueError as e:
        return JSONResponse(content={"error": str(e)}, status_code=400)

    symbols = body.get("symbols")
    if symbols is not None:
        symbols = [str(s).upper() for s in symbols]
    result = await _orchestrator(request).run_cycle(symbols)
    return JSONResponse(content=_jsonable(result))


@router.get("/screening")
async def get_screening_results(request: Request) -> JSONResponse:
    picks = await _orchestrator(request).screening_store.get_unexecuted()
    return JSONResponse(content=_jsonable(picks))


@router.post("/screening/run")
async def run_screening(request: Request) -> JSONResponse:
    run = await _orchestrator(request).screen_and_store()
    return JSONResponse(content=_jsonable(run))


@router.post("/screening/execute")
async def execute_screening(request: Request) -> JSONResponse:
    result = await _orchestrator(request).execute_stored_picks()
    return JSONResponse(content=_jsonable(result))


@router.get("/watchlist")
async def get_watchlist(request: Request) -> JSONResponse:
    return JSONResponse(content=await _orchestrator(request).watchlist.symbols())


@router.post("/watchlist/{symbol}")
async def add_to_watchlist(request: Request, symbol: str) -> JSONResponse:
    added = await _orchestrator(request).watchlist.add(symbol)
    return JSONResponse(content={"symbol": symbol.upper(), "added": added})


@router.delete("/watchlist/{symbol}")
async def remove_from_watchlist(request: Request, symbol: str) -> JSONResponse:
    removed = await _orchestrator(request).watchlist.remove(symbol)
    if not removed:
        return JSONResponse(
            content={"error": f"{symbol.upper()} not in watchlist"}, status_code=404
        )
    return JSONResponse(content={"symbol": symbol.upper(), "removed": True})


_DECIMAL_FIELDS = ("risk_per_trade", "max_position_size", "rsi_oversold", "rsi_overbought")
_INT_FIELDS = ("scan_interval", "max_symbols_per_cycle")


@router.post("/config")
async def update_config(request: Request) -> JSONResponse:
    """Set the runtime config overlay; applied at the start of the next cycle."""
    orchestrator = _orchestrator(request)
    try:
        body = await _json_body(request)
        rc = RuntimeConfig()
        for name in _DECIMAL_FIELDS:
            val = body.get(name)
            if val is not None and str(val).strip():
                setattr(rc, name, Decimal(str(val).strip()))
        for name in _INT_FIELDS:
            val = body.get(name)
            if val is not None and str(val).strip():
                setattr(rc, name, int(str(val).strip()))
    except (InvalidOperation, ValueError) as e:
        log.error("config_update_validation_error", error=str(e))
        return JSONResponse(content={"error": f"Invalid value: {e}"}, status_code=400)

    orchestrator.runtime_config = rc
    return JSONResponse(content=_jsonable(rc))


@router.post("/bot/start")
async def start_bot(request: Request) -> JSONResponse:
    orchestrator = _orchestrator(request)
    await orchestrator.start()
    log.info("bot_started_via_api")
    return JSONResponse(content={"running": orchestrator.is_running})


@router.post("/bot/stop")
async def stop_bot(request: Request) -> JSONResponse:
    orchestrator = _orchestrator(request)
    await orchestrator.stop()
    log.info("bot_stopped_via_api")
    return JSONResponse(content={"running": orchestrator.is_running})
