"""JSON HTTP surface for quotes, chart history, market stats and trading."""

from curvetrade.dashboard.app import create_dashboard_app

__all__ = ["create_dashboard_app"]
