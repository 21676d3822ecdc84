"""FastAPI application factory and error mapping."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from trader.api import routes
from trader.exceptions import (
    InsufficientDataError,
    InsufficientFundsError,
    MarketDataError,
    TradeNotFoundError,
)

_STATUS_CODES: dict[type[Exception], int] = {
    TradeNotFoundError: 404,
    InsufficientFundsError: 400,
    InsufficientDataError: 422,
    MarketDataError: 502,
}


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(content={"error": str(exc)}, status_code=status_code)

    return handler


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        Configured FastAPI application. Route handlers read the orchestrator
        from ``app.state.orchestrator``.
    """
    app = FastAPI(title="RSI + MA Swing Trader", lifespan=lifespan)

    for exc_type, status_code in _STATUS_CODES.items():
        app.add_exception_handler(exc_type, _error_handler(status_code))

    app.include_router(routes.router, prefix="/api")
    return app
