"""FastAPI application factory for the curvetrade JSON API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from curvetrade.dashboard.routes import actions, api


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        Configured FastAPI application with the API and action routers.
    """
    app = FastAPI(
        title="Curve Trade",
        lifespan=lifespan,
    )

    # Wired by main.py lifespan (or directly by tests)
    app.state.scheduler = None
    app.state.executor = None
    app.state.quote_engine = None
    app.state.stats_service = None
    app.state.history_aggregator = None

    app.include_router(api.router, prefix="/api")
    app.include_router(actions.router, prefix="/actions")

    return app
