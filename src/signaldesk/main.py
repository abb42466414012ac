"""Entry point for signaldesk.

Wires settings, logging, the OKX client, the indicator engine, the signal
poller and the credential store, then either serves the JSON dashboard
(default) or runs the poller headless until interrupted.

Credentials are loaded from the credential store's active record when one
exists, otherwise from OKX_* environment variables.
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from signaldesk.config import AppSettings, ModelConfig
from signaldesk.exchange.okx_client import OkxClient
from signaldesk.exchange.types import Credentials
from signaldesk.indicators.engine import IndicatorEngine
from signaldesk.logging import get_logger, setup_logging
from signaldesk.poller import SignalPoller
from signaldesk.store.credentials import SqliteCredentialStore
from signaldesk.store.database import CredentialDatabase


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Create the component graph. Nothing here touches the network or disk."""
    client = OkxClient(settings.exchange)
    engine = IndicatorEngine(ModelConfig.from_settings(settings.model))
    poller = SignalPoller(
        client,
        engine,
        inst_id=settings.poller.inst_id,
        poll_interval=settings.poller.poll_interval,
    )
    database = CredentialDatabase(settings.store.db_path)
    credential_store = SqliteCredentialStore(database)

    return {
        "client": client,
        "engine": engine,
        "poller": poller,
        "database": database,
        "credential_store": credential_store,
    }


def _credentials_from_settings(settings: AppSettings) -> Credentials | None:
    exchange = settings.exchange
    api_key = exchange.api_key.get_secret_value()
    if not api_key:
        return None
    return Credentials(
        api_key=api_key,
        secret_key=exchange.secret_key.get_secret_value(),
        passphrase=exchange.passphrase.get_secret_value(),
        sandbox=exchange.sandbox,
    )


async def _start(settings: AppSettings, components: dict[str, Any]) -> None:
    """Open the store, load credentials and start polling."""
    logger = get_logger("signaldesk.main")

    await components["database"].connect()
    stored = await components["credential_store"].get()
    credentials = stored.credentials if stored is not None else _credentials_from_settings(settings)

    if credentials is not None:
        components["client"].set_credentials(credentials)
    else:
        logger.warning(
            "no_api_credentials_configured",
            note="Market data polling works without keys. "
            "Balance and order endpoints will fail until credentials are set.",
        )

    if settings.poller.enabled:
        await components["poller"].start()


async def _shutdown(components: dict[str, Any]) -> None:
    await components["poller"].stop()
    await components["client"].close()
    await components["database"].close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start components with the dashboard and stop them on shutdown."""
    logger = get_logger("signaldesk.main")
    settings: AppSettings = app.state.settings
    components: dict[str, Any] = app.state.components

    app.state.client = components["client"]
    app.state.engine = components["engine"]
    app.state.poller = components["poller"]
    app.state.credential_store = components["credential_store"]

    await _start(settings, components)
    logger.info("lifespan_started", inst_id=settings.poller.inst_id)

    yield

    await _shutdown(components)
    logger.info("signaldesk_stopped")


async def run() -> None:
    """Run signaldesk with or without the dashboard (DASHBOARD_ENABLED)."""
    settings = AppSettings()
    setup_logging(settings.log_level)
    logger = get_logger("signaldesk.main")

    components = _build_components(settings)

    if settings.dashboard.enabled:
        from signaldesk.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
        )
        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",
        )
        await uvicorn.Server(config).serve()
        return

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info("starting_without_dashboard", inst_id=settings.poller.inst_id)
    try:
        await _start(settings, components)
        await stop_event.wait()
    finally:
        await _shutdown(components)
        logger.info("signaldesk_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
