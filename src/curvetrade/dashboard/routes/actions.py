"""POST endpoints for trading and chart selector changes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from curvetrade.dashboard.routes.api import parse_amount, quote_to_dict, series_to_list
from curvetrade.models import ChartMode, Timeframe, TradeDirection, TradeRequest

log = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/trade")
async def submit_trade(request: Request) -> JSONResponse:
    """Execute a trade against the currently visible quote.

    Body: ``{"direction": "buy" | "sell", "amount": "<tokens>"}``. The trade
    is rejected as stale unless the visible quote matches direction and amount.
    """
    scheduler = request.app.state.scheduler
    executor = request.app.state.executor
    body = await request.json()

    try:
        direction = TradeDirection(str(body.get("direction", "")).lower())
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "direction must be buy or sell"})
    amount = parse_amount(body.get("amount", ""))
    if amount is None:
        return JSONResponse(status_code=400, content={"error": "amount must be a number"})

    trade_request = TradeRequest(direction=direction, token_amount=amount)
    outcome = await executor.execute(scheduler.subject, trade_request, scheduler.quote)
    log.info(
        "trade_via_api",
        direction=direction.value,
        amount=str(amount),
        state=outcome.state.value,
        reason=outcome.failure_reason.value if outcome.failure_reason else None,
    )

    return JSONResponse(
        status_code=200 if outcome.succeeded else 422,
        content={
            "state": outcome.state.value,
            "tx_hash": outcome.tx_hash,
            "verified": outcome.verified,
            "failure_reason": outcome.failure_reason.value if outcome.failure_reason else None,
            "message": outcome.message,
            "warning": outcome.warning,
            "quote": quote_to_dict(scheduler.quote),
        },
    )


@router.post("/timeframe")
async def update_timeframe(request: Request) -> JSONResponse:
    """Change the chart timeframe (and optionally the mode), then return the rebuilt series.

    Body: ``{"timeframe": "1H" | "4H" | "1D" | "1W" | "ALL", "mode": "line" | "candle"}``.
    """
    scheduler = request.app.state.scheduler
    body = await request.json()

    try:
        timeframe = Timeframe(str(body.get("timeframe", "")).upper())
        mode = ChartMode(body["mode"]) if body.get("mode") else None
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    await scheduler.set_timeframe(timeframe, mode)
    log.info("timeframe_changed_via_api", timeframe=timeframe.value, mode=scheduler.mode.value)

    return JSONResponse(content={
        "timeframe": scheduler.timeframe.value,
        "mode": scheduler.mode.value,
        "points": series_to_list(scheduler.history),
    })
