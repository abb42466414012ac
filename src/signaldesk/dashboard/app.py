"""FastAPI dashboard application factory.

The dashboard is a thin JSON layer over the core. Route handlers read the
components main.py places on ``app.state``: ``client`` (OkxClient),
``engine`` (IndicatorEngine), ``poller`` (SignalPoller) and
``credential_store`` (CredentialStore, optional).
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from signaldesk.dashboard.routes import api, trading


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create the dashboard application.

    Args:
        lifespan: Optional async context manager for startup/shutdown,
                  injected by main.py.
    """
    app = FastAPI(title="signaldesk", lifespan=lifespan)

    app.state.client = None
    app.state.engine = None
    app.state.poller = None
    app.state.credential_store = None

    app.include_router(api.router, prefix="/api")
    app.include_router(trading.router, prefix="/api")
    return app
