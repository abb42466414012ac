"""JSON API endpoints: market data, indicators, signal, config and credentials."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from signaldesk.config import ModelTag, RiskTolerance
from signaldesk.exceptions import CredentialFormatError, DeskError
from signaldesk.exchange.types import Credentials

log = structlog.get_logger(__name__)

router = APIRouter()

#: HTTP status returned for each client failure category.
_ERROR_STATUS: dict[str, int] = {
    "format": 422,
    "order_validation": 422,
    "credentials": 409,
    "auth": 401,
    "permission": 403,
    "venue": 502,
    "network": 504,
}


class CredentialsBody(BaseModel):
    api_key: str
    secret_key: str
    passphrase: str
    sandbox: bool = False

    def to_credentials(self) -> Credentials:
        return Credentials(
            api_key=self.api_key,
            secret_key=self.secret_key,
            passphrase=self.passphrase,
            sandbox=self.sandbox,
        )


class ConfigUpdateBody(BaseModel):
    """Partial ModelConfig update. Omitted fields keep their current value."""

    model: ModelTag | None = None
    lookback: int | None = Field(default=None, ge=1)
    prediction_horizon: int | None = Field(default=None, ge=1)
    risk_tolerance: RiskTolerance | None = None
    max_position_size: float | None = Field(default=None, ge=0)
    stop_loss: float | None = Field(default=None, ge=0)
    take_profit: float | None = Field(default=None, ge=0)


def error_response(exc: DeskError) -> JSONResponse:
    return JSONResponse(
        status_code=_ERROR_STATUS.get(exc.category.value, 500),
        content={"error": exc.reason, "category": exc.category.value},
    )


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Credential state, poller state and history depth."""
    client = request.app.state.client
    poller = request.app.state.poller
    engine = request.app.state.engine

    latest = poller.latest if poller is not None else None
    return JSONResponse(content={
        "credential_status": client.status.value,
        "poller_running": poller.is_running if poller is not None else False,
        "inst_id": poller.inst_id if poller is not None else None,
        "last_poll_at": latest.polled_at if latest is not None else None,
        "last_error": poller.last_error if poller is not None else None,
        "samples": len(engine),
    })


@router.get("/market")
async def get_market(request: Request) -> JSONResponse:
    """Latest ticker seen by the poller, with the venue's string values."""
    poller = request.app.state.poller
    latest = poller.latest if poller is not None else None
    if latest is None:
        return JSONResponse(status_code=404, content={"error": "no market data yet"})
    return JSONResponse(content=dict(latest.tick))


@router.get("/indicators")
async def get_indicators(request: Request) -> JSONResponse:
    """Indicator snapshot recomputed from the current history."""
    engine = request.app.state.engine
    return JSONResponse(content=engine.snapshot().to_dict())


@router.get("/signal")
async def get_signal(request: Request) -> JSONResponse:
    engine = request.app.state.engine
    if len(engine) == 0:
        return JSONResponse(status_code=404, content={"error": "no price history yet"})
    return JSONResponse(content=engine.generate_signal().to_dict())


@router.get("/config")
async def get_config(request: Request) -> JSONResponse:
    return JSONResponse(content=request.app.state.engine.config.to_dict())


@router.put("/config")
async def update_config(body: ConfigUpdateBody, request: Request) -> JSONResponse:
    """Merge the supplied fields into the engine's ModelConfig."""
    engine = request.app.state.engine
    changes: dict[str, Any] = body.model_dump(exclude_none=True)
    try:
        config = engine.update_config(**changes)
    except ValueError as e:
        log.info("config_update_rejected", error=str(e))
        return JSONResponse(status_code=422, content={"error": str(e)})
    log.info("config_updated_via_dashboard", fields=sorted(changes))
    return JSONResponse(content=config.to_dict())


@router.post("/credentials/validate")
async def validate_credentials(body: CredentialsBody, request: Request) -> JSONResponse:
    """Local format check only. Never touches the network."""
    try:
        request.app.state.client.validate_format(body.to_credentials())
    except CredentialFormatError as exc:
        return JSONResponse(content={
            "is_valid": False,
            "reason": exc.reason,
            "issue": exc.issue.value,
        })
    return JSONResponse(content={"is_valid": True, "reason": None, "issue": None})


@router.post("/credentials/verify")
async def verify_credentials(body: CredentialsBody, request: Request) -> JSONResponse:
    """Load the credentials into the client and verify them against the venue."""
    client = request.app.state.client
    client.set_credentials(body.to_credentials())
    result = await client.verify_credentials()
    return JSONResponse(content={
        "is_valid": result.is_valid,
        "reason": result.reason,
        "category": result.category.value if result.category is not None else None,
        "credential_status": client.status.value,
    })


@router.post("/credentials")
async def save_credentials(body: CredentialsBody, request: Request) -> JSONResponse:
    """Persist the credentials (after a format check) and load them into the client."""
    client = request.app.state.client
    store = request.app.state.credential_store
    credentials = body.to_credentials()

    try:
        client.validate_format(credentials)
    except CredentialFormatError as exc:
        return error_response(exc)

    if store is None:
        return JSONResponse(status_code=503, content={"error": "credential store unavailable"})

    record = await store.save(credentials)
    client.set_credentials(credentials)
    return JSONResponse(content={
        "id": record.id,
        "created_at": record.created_at,
        "credential_status": client.status.value,
    })


@router.delete("/credentials")
async def delete_credentials(request: Request) -> JSONResponse:
    client = request.app.state.client
    store = request.app.state.credential_store
    if store is not None:
        await store.delete()
    client.clear_credentials()
    return JSONResponse(content={"credential_status": client.status.value})


@router.get("/balance")
async def get_balance(request: Request) -> JSONResponse:
    """Account balance with the venue's string values untouched."""
    try:
        balance = await request.app.state.client.get_account_balance()
    except DeskError as exc:
        log.info("balance_fetch_failed", category=exc.category.value)
        return error_response(exc)
    return JSONResponse(content=dict(balance))
