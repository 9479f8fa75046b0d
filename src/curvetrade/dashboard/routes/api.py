"""JSON read endpoints: quotes, chart history, volume, market stats and status."""

from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from curvetrade.exceptions import ChainUnavailable
from curvetrade.models import (
    BalanceSnapshot,
    Candle,
    MarketStats,
    PricePoint,
    Timeframe,
    TradeDirection,
    TradeQuote,
    VolumeSummary,
)
from curvetrade.units import format_units, from_wei, parse_units, to_wei

log = structlog.get_logger(__name__)

router = APIRouter()


def _decimal_to_str(obj: Any) -> Any:
    """Recursively convert Decimal values to strings for JSON serialization."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {k: _decimal_to_str(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_decimal_to_str(item) for item in obj]
    return obj


def quote_to_dict(quote: TradeQuote | None) -> dict[str, Any] | None:
    if quote is None:
        return None
    return {
        "direction": quote.direction.value,
        "amount": str(quote.amount_in),
        "cost_or_proceeds_wei": str(quote.cost_or_proceeds),
        "cost_or_proceeds": format_units(quote.cost_or_proceeds),
        "price_impact_percent": quote.price_impact_percent,
        "source": quote.source.value,
        "created_at": quote.created_at,
    }


def series_to_list(series: list[PricePoint] | list[Candle]) -> list[dict[str, Any]]:
    return [_decimal_to_str(asdict(item)) for item in series]


def stats_to_dict(stats: MarketStats | None) -> dict[str, Any] | None:
    if stats is None:
        return None
    return {
        "current_price": str(stats.curve.current_price),
        "total_supply": format_units(stats.curve.total_supply),
        "total_sold": format_units(stats.curve.total_sold),
        "contract_balance": format_units(stats.curve.contract_native_balance),
        "market_cap": str(stats.market_cap),
        "holder_count": stats.holder_count,
        "ready_for_graduation": stats.ready_for_graduation,
        "updated_at": stats.updated_at,
    }


def balances_to_dict(balances: BalanceSnapshot | None) -> dict[str, Any] | None:
    if balances is None:
        return None
    return {
        "native": format_units(balances.native),
        "token": format_units(balances.token),
        "updated_at": balances.updated_at,
    }


def parse_amount(raw: Any) -> Decimal | None:
    """Parse a user-entered amount, truncated to wei precision.

    None if it is empty or not a plain non-negative decimal number.
    """
    text = str(raw).strip()
    if not text:
        return None
    try:
        return from_wei(parse_units(text))
    except ValueError:
        return None


@router.get("/quote")
async def get_quote(
    request: Request, direction: str | None = None, amount: str | None = None
) -> JSONResponse:
    """Current quote; with ``direction`` and ``amount`` a new quote is triggered first."""
    scheduler = request.app.state.scheduler

    if direction is not None and amount is not None:
        try:
            trade_direction = TradeDirection(direction.lower())
        except ValueError:
            return JSONResponse(status_code=400, content={"error": f"Unknown direction: {direction}"})
        parsed = parse_amount(amount)
        if parsed is None:
            return JSONResponse(status_code=400, content={"error": f"Invalid amount: {amount}"})
        await scheduler.refresh_quote(trade_direction, parsed)

    return JSONResponse(content={"quote": quote_to_dict(scheduler.quote)})


@router.get("/quote/budget")
async def get_budget_quote(request: Request, native: str) -> JSONResponse:
    """Largest buy whose cost fits within ``native`` units of the native currency."""
    scheduler = request.app.state.scheduler
    quote_engine = request.app.state.quote_engine

    budget = parse_amount(native)
    if budget is None or budget <= 0:
        return JSONResponse(status_code=400, content={"error": f"Invalid budget: {native}"})

    quote = await quote_engine.size_for_budget(scheduler.subject, to_wei(budget))
    log.debug("budget_quote", budget=str(budget), found=quote is not None)
    return JSONResponse(content={"quote": quote_to_dict(quote)})


@router.get("/history")
async def get_history(request: Request) -> JSONResponse:
    """Visible chart series for the selected timeframe and mode."""
    scheduler = request.app.state.scheduler
    return JSONResponse(content={
        "timeframe": scheduler.timeframe.value,
        "mode": scheduler.mode.value,
        "points": series_to_list(scheduler.history),
    })


@router.get("/stats")
async def get_stats(request: Request) -> JSONResponse:
    """Latest market stats and account balances."""
    scheduler = request.app.state.scheduler
    return JSONResponse(content={
        "stats": stats_to_dict(scheduler.stats),
        "balances": balances_to_dict(scheduler.balances),
    })


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Subject, selectors, scheduler and executor state."""
    scheduler = request.app.state.scheduler
    executor = request.app.state.executor
    subject = scheduler.subject
    return JSONResponse(content={
        "chain_id": subject.chain_id if subject else None,
        "market": subject.market if subject else None,
        "account": subject.account if subject else None,
        "running": scheduler.is_running,
        "timeframe": scheduler.timeframe.value,
        "mode": scheduler.mode.value,
        "trade_state": executor.state.value,
    })


def volume_to_dict(volume: VolumeSummary) -> dict[str, Any]:
    return {
        "buy_volume": format_units(volume.buy_volume),
        "sell_volume": format_units(volume.sell_volume),
        "total_volume": format_units(volume.total_volume),
    }


@router.get("/volume")
async def get_volume(request: Request, timeframe: str = Timeframe.DAY.value) -> JSONResponse:
    """Native-currency volume bought and sold over ``timeframe``."""
    scheduler = request.app.state.scheduler
    aggregator = request.app.state.history_aggregator

    try:
        tf = Timeframe(timeframe.upper())
    except ValueError:
        return JSONResponse(status_code=400, content={"error": f"Unknown timeframe: {timeframe}"})

    try:
        from_block, to_block = await aggregator.block_window(tf)
        volume = await aggregator.trading_volume(scheduler.subject, from_block, to_block)
    except ChainUnavailable as exc:
        log.warning("volume_unavailable", timeframe=tf.value, error=str(exc))
        return JSONResponse(status_code=503, content={"error": "Chain unavailable"})

    return JSONResponse(content={
        "timeframe": tf.value,
        "from_block": from_block,
        "to_block": to_block,
        **volume_to_dict(volume),
    })
