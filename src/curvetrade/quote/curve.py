"""Local linear bonding-curve approximation used when the contract quote fails.

This is an explicitly bounded approximation, not a replica of the on-chain
pricing formula. Each unit traded moves the price by ``price * slope``; the
average execution price over the trade is the midpoint of that move.
Sells are floored at ``price * sell_floor_ratio`` so large sells cannot run
the average price toward zero.
"""

from dataclasses import dataclass
from decimal import Decimal

from curvetrade.config import QuoteSettings
from curvetrade.models import TradeDirection

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CurveApproximation:
    """Fallback pricing result in native units."""

    total: Decimal
    average_price: Decimal
    price_impact_percent: float


def clamp_impact(impact: Decimal) -> float:
    """Clamp a price impact percentage into [0, 100]."""
    return float(min(max(impact, _ZERO), _HUNDRED))


def clamp_total(total: Decimal, ceiling: Decimal) -> Decimal:
    """Clamp a native total into [0, ceiling]."""
    return min(max(total, _ZERO), ceiling)


def approximate_trade(
    direction: TradeDirection,
    token_amount: Decimal,
    current_price: Decimal,
    settings: QuoteSettings,
) -> CurveApproximation:
    """Approximate cost (buy) or proceeds (sell) of ``token_amount`` tokens.

    Args:
        direction: Buy or sell.
        token_amount: Tokens traded, in whole units (> 0).
        current_price: Current per-token price in native units.
        settings: Fallback curve policy.

    Returns:
        CurveApproximation with total clamped into the sanity range.
    """
    if current_price <= 0:
        # Unseeded curve: a buy still has to pay something, a sell gets nothing.
        if direction == TradeDirection.BUY:
            return CurveApproximation(
                total=settings.seed_buy_cost,
                average_price=settings.seed_buy_cost / token_amount,
                price_impact_percent=0.0,
            )
        return CurveApproximation(total=_ZERO, average_price=_ZERO, price_impact_percent=0.0)

    if current_price < settings.micro_price_threshold:
        total = clamp_total(token_amount * current_price, settings.max_total_native)
        return CurveApproximation(
            total=total,
            average_price=current_price,
            price_impact_percent=clamp_impact(Decimal(str(settings.micro_price_impact_percent))),
        )

    delta = current_price * settings.price_slope
    half_move = token_amount * delta / 2

    if direction == TradeDirection.BUY:
        average_price = current_price + half_move
        impact = (average_price - current_price) / current_price * _HUNDRED
    else:
        floor = current_price * settings.sell_floor_ratio
        average_price = max(current_price - half_move, floor)
        impact = (current_price - average_price) / current_price * _HUNDRED

    total = clamp_total(token_amount * average_price, settings.max_total_native)
    return CurveApproximation(
        total=total,
        average_price=average_price,
        price_impact_percent=clamp_impact(impact),
    )
