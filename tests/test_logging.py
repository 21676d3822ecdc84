"""Tests for the structlog processor chain."""

from decimal import Decimal

from structlog.contextvars import bound_contextvars, merge_contextvars

from trader.logging import stringify_decimals


def test_decimals_rendered_as_plain_strings() -> None:
    event = stringify_decimals(
        None, "info", {"event": "trade_opened", "price": Decimal("119.00"), "quantity": 84}
    )

    assert event == {"event": "trade_opened", "price": "119.00", "quantity": 84}


def test_bound_symbol_merged_into_events() -> None:
    with bound_contextvars(symbol="GOOD", pick_id=3):
        event = merge_contextvars(None, "info", {"event": "position_size_zero"})

    assert event == {"event": "position_size_zero", "symbol": "GOOD", "pick_id": 3}
    assert merge_contextvars(None, "info", {"event": "idle"}) == {"event": "idle"}
