"""JSON dashboard API over the client, engine and poller."""

from signaldesk.dashboard.app import create_dashboard_app

__all__ = ["create_dashboard_app"]
