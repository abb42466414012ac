"""Order entry, account endpoints and the connection self-test."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from signaldesk.dashboard.routes.api import error_response
from signaldesk.exceptions import DeskError
from signaldesk.exchange.types import OrderSide, OrderType, TradeMode, TradeOrder

log = structlog.get_logger(__name__)

router = APIRouter()

DEFAULT_INST_ID = "BTC-USDT"


class OrderBody(BaseModel):
    """Manual order ticket.

    ``sz`` and ``px`` are venue strings. With ``use_signal`` the size comes
    from the current signal's quantity and, for priced order types, a missing
    ``px`` is filled from the signal price.
    """

    side: OrderSide
    inst_id: str | None = None
    td_mode: TradeMode = TradeMode.CASH
    ord_type: OrderType = OrderType.MARKET
    sz: str | None = None
    px: str | None = None
    use_signal: bool = False


def _venue_number(value: float) -> str:
    text = f"{value:.8f}".rstrip("0").rstrip(".")
    return text or "0"


def _default_inst_id(request: Request) -> str:
    poller = request.app.state.poller
    return poller.inst_id if poller is not None else DEFAULT_INST_ID


@router.post("/orders")
async def place_order(body: OrderBody, request: Request) -> JSONResponse:
    """Build a TradeOrder from the ticket and submit it through the client."""
    client = request.app.state.client
    engine = request.app.state.engine

    sz, px = body.sz, body.px
    if body.use_signal:
        if len(engine) == 0:
            return JSONResponse(status_code=404, content={"error": "no price history yet"})
        signal = engine.generate_signal()
        if signal.quantity <= 0:
            return JSONResponse(
                status_code=422,
                content={"error": "signal suggests no position", "category": "order_validation"},
            )
        sz = _venue_number(signal.quantity)
        if body.ord_type.requires_price and px is None:
            px = _venue_number(signal.price)

    if not sz:
        return JSONResponse(
            status_code=422,
            content={"error": "order size is required", "category": "order_validation"},
        )

    order = TradeOrder(
        inst_id=body.inst_id or _default_inst_id(request),
        td_mode=body.td_mode,
        side=body.side,
        ord_type=body.ord_type,
        sz=sz,
        px=px,
    )
    try:
        result = await client.place_order(order)
    except DeskError as exc:
        log.info("order_via_dashboard_failed", category=exc.category.value)
        return error_response(exc)
    return JSONResponse(content=result)


@router.get("/orders/history")
async def get_order_history(request: Request, inst_id: str | None = None) -> JSONResponse:
    try:
        orders = await request.app.state.client.get_order_history(inst_id)
    except DeskError as exc:
        return error_response(exc)
    return JSONResponse(content={"orders": orders})


@router.get("/account/config")
async def get_account_config(request: Request) -> JSONResponse:
    try:
        config = await request.app.state.client.get_trading_account_config()
    except DeskError as exc:
        return error_response(exc)
    return JSONResponse(content=config)


def _step(name: str, ok: bool, detail: str | None = None) -> dict[str, Any]:
    return {"step": name, "ok": ok, "detail": detail}


@router.post("/diagnostics")
async def run_diagnostics(request: Request) -> JSONResponse:
    """Connection self-test over the client's loaded credentials.

    Runs credentials -> format -> verify and stops at the first failure.
    After a successful verify the balance, market data and trading account
    checks all run, each reporting independently.
    """
    client = request.app.state.client
    steps: list[dict[str, Any]] = []

    def report() -> JSONResponse:
        return JSONResponse(content={
            "ok": all(step["ok"] for step in steps),
            "credential_status": client.status.value,
            "steps": steps,
        })

    credentials = client.credentials
    if credentials is None:
        steps.append(_step("credentials", False, "API credentials not set"))
        return report()
    steps.append(_step("credentials", True, "sandbox" if credentials.sandbox else "live"))

    try:
        client.validate_format(credentials)
    except DeskError as exc:
        steps.append(_step("format", False, exc.reason))
        return report()
    steps.append(_step("format", True))

    result = await client.verify_credentials()
    steps.append(_step("connection", result.is_valid, result.reason))
    if not result.is_valid:
        return report()

    try:
        balance = await client.get_account_balance()
        steps.append(_step("balance", True, f"totalEq {balance.get('totalEq', 'n/a')}"))
    except DeskError as exc:
        steps.append(_step("balance", False, exc.reason))

    inst_id = _default_inst_id(request)
    try:
        tick = await client.get_market_data(inst_id)
        steps.append(_step("market_data", True, f"{inst_id} last {tick.get('last', 'n/a')}"))
    except DeskError as exc:
        steps.append(_step("market_data", False, exc.reason))

    try:
        account = await client.get_trading_account_config()
        steps.append(_step("trading_account", True, f"acctLv {account.get('acctLv', 'n/a')}"))
    except DeskError as exc:
        steps.append(_step("trading_account", False, exc.reason))

    log.info("diagnostics_complete", ok=all(step["ok"] for step in steps))
    return report()
