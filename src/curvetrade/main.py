"""Entry point for curvetrade.

Wires all components together, optionally embeds the FastAPI JSON API, and
starts the refresh scheduler. When the API is enabled (default), the
scheduler and the API share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. Web3ChainReader (chain access and signing)
4. QuoteEngine (primary/fallback quoting)
5. HistoryAggregator (price series from trade events)
6. MarketStatsService (curve state, market stats, balances)
7. RefreshScheduler (last-trigger-wins quoting, periodic polling)
8. TradeExecutor (staged trade execution, refreshes the scheduler on settle)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from curvetrade.chain.web3_reader import Web3ChainReader
from curvetrade.config import AppSettings
from curvetrade.execution.executor import TradeExecutor
from curvetrade.history.aggregator import HistoryAggregator
from curvetrade.logging import get_logger, setup_logging
from curvetrade.market.stats import MarketStatsService
from curvetrade.models import ChainContext
from curvetrade.quote.engine import QuoteEngine
from curvetrade.scheduler.refresh import RefreshScheduler


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Note: Does NOT start the scheduler -- that happens in the lifespan
    (API mode) or run() (headless mode).

    Returns:
        Mapping of component name to instance, plus the initial ChainContext.
    """
    reader = Web3ChainReader(settings.chain)
    quote_engine = QuoteEngine(reader, settings.quote)
    history_aggregator = HistoryAggregator(reader, settings.history)
    stats_service = MarketStatsService(reader, settings.market)
    scheduler = RefreshScheduler(
        quote_engine, history_aggregator, stats_service, settings.history
    )
    executor = TradeExecutor(
        reader,
        settings.execution,
        on_settled=scheduler.refresh_after_trade,
        stats=stats_service,
    )
    ctx = ChainContext(
        chain_id=settings.chain.chain_id,
        market=settings.chain.market_address,
        account=reader.account_address,
    )

    return {
        "reader": reader,
        "quote_engine": quote_engine,
        "history_aggregator": history_aggregator,
        "stats_service": stats_service,
        "scheduler": scheduler,
        "executor": executor,
        "ctx": ctx,
    }


def _setup_signal_handlers(shutdown: asyncio.Event) -> None:
    """Register SIGINT/SIGTERM to set ``shutdown``.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("curvetrade.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        shutdown.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: stores components on app.state and starts the scheduler.
    On shutdown: stops the scheduler and closes the chain reader.
    """
    logger = get_logger("curvetrade.main")
    components = app.state.components

    # Store components on app.state for route handler access
    app.state.scheduler = components["scheduler"]
    app.state.executor = components["executor"]
    app.state.quote_engine = components["quote_engine"]
    app.state.stats_service = components["stats_service"]
    app.state.history_aggregator = components["history_aggregator"]

    await components["scheduler"].start(components["ctx"])
    logger.info(
        "lifespan_started",
        market=components["ctx"].market,
        account=components["ctx"].account,
    )

    yield

    await components["scheduler"].stop()
    await components["reader"].close()
    logger.info("curvetrade_stopped")


async def run() -> None:
    """Run curvetrade.

    When the API is enabled (DASHBOARD_ENABLED=true, the default) uvicorn
    serves the FastAPI app and the lifespan manages component startup and
    shutdown. Otherwise the scheduler runs headless until SIGINT/SIGTERM.
    """
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level)
    logger = get_logger("curvetrade.main")

    if not settings.chain.market_address:
        logger.error("market_address_not_configured", hint="set CHAIN_MARKET_ADDRESS")
        return

    # 3-8. Build all components
    components = _build_components(settings)

    if settings.dashboard.enabled:
        from curvetrade.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_api",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            chain_id=settings.chain.chain_id,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        shutdown = asyncio.Event()
        _setup_signal_handlers(shutdown)

        logger.info(
            "starting_headless",
            chain_id=settings.chain.chain_id,
            market=settings.chain.market_address,
        )

        scheduler: RefreshScheduler = components["scheduler"]
        try:
            await scheduler.start(components["ctx"])
            await shutdown.wait()
        finally:
            await scheduler.stop()
            await components["reader"].close()
            logger.info("curvetrade_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
