"""signaldesk: OKX signed REST client and technical-indicator signal engine."""

__version__ = "0.1.0"
