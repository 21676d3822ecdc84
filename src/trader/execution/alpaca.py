"""Alpaca v2 REST client over httpx.

Only the endpoints the trading engine needs: bracket orders, positions,
account, and order cancellation. Prices are sent as strings rounded to
cents; responses are parsed through Decimal(str(value)).
"""

from decimal import Decimal

import httpx

from trader.config import BrokerSettings
from trader.exceptions import OrderPlacementError
from trader.execution.broker import (
    BrokerAccount,
    BrokerageOrderPlacer,
    BrokerPosition,
    OrderOutcome,
)
from trader.logging import get_logger
from trader.models import TradeAction

logger = get_logger(__name__)

PAPER_BASE_URL = "https://paper-api.alpaca.markets"
LIVE_BASE_URL = "https://api.alpaca.markets"

_CENT = Decimal("0.01")


def _dec(value: object) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


class AlpacaBroker(BrokerageOrderPlacer):
    """Brokerage client for Alpaca (paper or live).

    Args:
        settings: Credentials, paper flag and request timeout.
        transport: Optional httpx transport (tests inject a MockTransport).
    """

    def __init__(
        self,
        settings: BrokerSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=PAPER_BASE_URL if settings.paper else LIVE_BASE_URL,
            headers={
                "APCA-API-KEY-ID": settings.api_key.get_secret_value(),
                "APCA-API-SECRET-KEY": settings.secret_key.get_secret_value(),
            },
            timeout=settings.request_timeout,
            transport=transport,
        )
        logger.info("alpaca_broker_initialized", paper=settings.paper)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise OrderPlacementError(
                f"Alpaca {method} {path} failed with {e.response.status_code}: "
                f"{e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise OrderPlacementError(f"Alpaca {method} {path} failed: {e}") from e
        return response

    async def place_bracket_order(
        self,
        symbol: str,
        quantity: int,
        action: TradeAction,
        stop_loss: Decimal,
        take_profit: Decimal,
    ) -> OrderOutcome:
        payload = {
            "symbol": symbol,
            "qty": str(quantity),
            "side": action.value.lower(),
            "type": "market",
            "time_in_force": "day",
            "order_class": "bracket",
            "stop_loss": {"stop_price": str(stop_loss.quantize(_CENT))},
            "take_profit": {"limit_price": str(take_profit.quantize(_CENT))},
        }
        try:
            response = await self._request("POST", "/v2/orders", json=payload)
            order = response.json()
        except Exception as e:
            logger.error("bracket_order_failed", symbol=symbol, error=str(e))
            return OrderOutcome.failure(str(e))

        order_id = order.get("id")
        if not order_id:
            logger.error("bracket_order_missing_id", symbol=symbol)
            return OrderOutcome.failure("Order response carried no id")

        logger.info(
            "bracket_order_placed",
            order_id=order_id,
            symbol=symbol,
            side=payload["side"],
            quantity=quantity,
            stop_loss=payload["stop_loss"]["stop_price"],
            take_profit=payload["take_profit"]["limit_price"],
        )
        return OrderOutcome.success(str(order_id), order.get("status"))

    async def get_positions(self) -> list[BrokerPosition]:
        response = await self._request("GET", "/v2/positions")
        return [
            BrokerPosition(
                symbol=p["symbol"],
                quantity=_dec(p.get("qty")),
                side=p.get("side", "long"),
                avg_entry_price=_dec(p.get("avg_entry_price")),
                current_price=_dec(p.get("current_price")),
                market_value=_dec(p.get("market_value")),
                unrealized_pl=_dec(p.get("unrealized_pl")),
            )
            for p in response.json()
        ]

    async def get_account(self) -> BrokerAccount:
        response = await self._request("GET", "/v2/account")
        account = response.json()
        return BrokerAccount(
            cash=_dec(account.get("cash")),
            portfolio_value=_dec(account.get("portfolio_value")),
            buying_power=_dec(account.get("buying_power")),
            equity=_dec(account.get("equity")),
        )

    async def cancel_order(self, order_id: str) -> bool:
        try:
            await self._request("DELETE", f"/v2/orders/{order_id}")
        except OrderPlacementError as e:
            logger.warning("cancel_order_failed", order_id=order_id, error=str(e))
            return False
        logger.info("order_cancelled", order_id=order_id)
        return True

    async def close(self) -> None:
        await self._client.aclose()
