"""Trade quoting against the bonding curve with a local fallback.

Quote flow:
1. Primary: read the contract's buy-cost / sell-proceeds and current price
   concurrently, derive price impact from the average execution price.
2. Sanity gate: totals that are negative or above the ceiling are rejected
   as ImplausibleResult.
3. Fallback: on ChainUnavailable or ImplausibleResult, read only the current
   price and approximate a linear curve locally (quote/curve.py).
4. If the fallback cannot read the price either, no quote is produced.
"""

import asyncio
from decimal import Decimal

from curvetrade.chain.reader import ChainReader
from curvetrade.config import QuoteSettings
from curvetrade.exceptions import ChainUnavailable, ImplausibleResult
from curvetrade.logging import get_logger
from curvetrade.models import ChainContext, QuoteSource, TradeDirection, TradeQuote
from curvetrade.quote.curve import approximate_trade, clamp_impact
from curvetrade.units import from_wei, to_wei

logger = get_logger(__name__)

_HUNDRED = Decimal("100")


def compute_price_impact(
    direction: TradeDirection,
    token_amount: Decimal,
    total: Decimal,
    current_price: Decimal,
) -> float:
    """Relative deviation of the average execution price from the current price.

    Buys are penalized when the average price is above the current price,
    sells when it is below. The result is clamped into [0, 100]; a zero
    current price yields 0.
    """
    if current_price <= 0 or token_amount <= 0:
        return 0.0
    average_price = total / token_amount
    if direction == TradeDirection.BUY:
        impact = (average_price - current_price) / current_price * _HUNDRED
    else:
        impact = (current_price - average_price) / current_price * _HUNDRED
    return clamp_impact(impact)


class QuoteEngine:
    """Produces TradeQuotes for candidate trade sizes.

    Stateless apart from its collaborators: every call reads fresh chain
    state and returns a new immutable quote.

    Args:
        reader: Chain reader for contract calls.
        settings: Sanity ceiling and fallback curve policy.
    """

    def __init__(self, reader: ChainReader, settings: QuoteSettings | None = None) -> None:
        self._reader = reader
        self._settings = settings or QuoteSettings()

    async def quote(
        self,
        ctx: ChainContext,
        direction: TradeDirection,
        token_amount: Decimal,
    ) -> TradeQuote | None:
        """Quote a trade of ``token_amount`` tokens.

        Returns:
            The quote, or None when the amount is not positive (or below one
            wei), no market is set, or neither strategy could reach the chain.
        """
        if token_amount <= 0 or not ctx.market or to_wei(token_amount) == 0:
            return None

        try:
            return await self._primary_quote(ctx, direction, token_amount)
        except (ChainUnavailable, ImplausibleResult) as exc:
            logger.info(
                "quote_primary_failed",
                market=ctx.market,
                direction=direction.value,
                amount=str(token_amount),
                reason=type(exc).__name__,
                error=str(exc),
            )

        try:
            return await self._fallback_quote(ctx, direction, token_amount)
        except ChainUnavailable:
            logger.warning(
                "quote_unavailable",
                market=ctx.market,
                direction=direction.value,
                amount=str(token_amount),
                exc_info=True,
            )
            return None

    async def _primary_quote(
        self,
        ctx: ChainContext,
        direction: TradeDirection,
        token_amount: Decimal,
    ) -> TradeQuote:
        amount_wei = to_wei(token_amount)
        if direction == TradeDirection.BUY:
            total_call = self._reader.read_buy_cost(ctx.market, amount_wei)
        else:
            total_call = self._reader.read_sell_proceeds(ctx.market, amount_wei)

        total_wei, price_wei = await asyncio.gather(
            total_call, self._reader.read_current_price(ctx.market)
        )

        total = from_wei(total_wei)
        if total < 0 or total > self._settings.max_total_native:
            raise ImplausibleResult(
                f"{direction.value} total {total} outside [0, {self._settings.max_total_native}]"
            )

        impact = compute_price_impact(direction, token_amount, total, from_wei(price_wei))
        return TradeQuote(
            direction=direction,
            amount_in=token_amount,
            cost_or_proceeds=int(total_wei),
            price_impact_percent=impact,
            source=QuoteSource.PRIMARY,
        )

    async def _fallback_quote(
        self,
        ctx: ChainContext,
        direction: TradeDirection,
        token_amount: Decimal,
    ) -> TradeQuote:
        current_price = from_wei(await self._reader.read_current_price(ctx.market))
        approx = approximate_trade(direction, token_amount, current_price, self._settings)

        logger.info(
            "quote_fallback_used",
            market=ctx.market,
            direction=direction.value,
            amount=str(token_amount),
            current_price=str(current_price),
            total=str(approx.total),
            impact=approx.price_impact_percent,
        )
        return TradeQuote(
            direction=direction,
            amount_in=token_amount,
            cost_or_proceeds=to_wei(approx.total, round_up=direction == TradeDirection.BUY),
            price_impact_percent=approx.price_impact_percent,
            source=QuoteSource.FALLBACK,
        )

    async def size_for_budget(self, ctx: ChainContext, budget_wei: int) -> TradeQuote | None:
        """Find the largest buy whose on-chain cost fits ``budget_wei``.

        Starts from ``budget / current_price`` and bisects over
        [estimate / 2, estimate * 2] using the contract's buy cost, stopping
        early once a cost lands within the configured tolerance of the budget.

        Returns:
            A primary-source buy quote, or None if nothing affordable was found.
        """
        if budget_wei <= 0 or not ctx.market:
            return None

        try:
            price_wei = await self._reader.read_current_price(ctx.market)
        except ChainUnavailable:
            logger.warning("budget_sizing_price_unavailable", market=ctx.market, exc_info=True)
            return None
        if price_wei <= 0:
            return None

        estimate = budget_wei * 10**18 // price_wei
        low, high = estimate // 2, estimate * 2
        tolerance = int(Decimal(budget_wei) * self._settings.budget_search_tolerance)
        best: tuple[int, int] | None = None

        for _ in range(self._settings.budget_search_iterations):
            mid = (low + high) // 2
            if mid <= 0:
                break
            try:
                cost = await self._reader.read_buy_cost(ctx.market, mid)
            except ChainUnavailable:
                logger.warning("budget_sizing_cost_unavailable", market=ctx.market, amount=mid)
                break
            if cost <= budget_wei:
                best = (mid, cost)
                low = mid
                if budget_wei - cost <= tolerance:
                    break
            else:
                high = mid

        if best is None:
            return None

        amount_wei, cost_wei = best
        token_amount = from_wei(amount_wei)
        logger.debug(
            "budget_sized",
            market=ctx.market,
            budget=budget_wei,
            amount=str(token_amount),
            cost=cost_wei,
        )
        return TradeQuote(
            direction=TradeDirection.BUY,
            amount_in=token_amount,
            cost_or_proceeds=cost_wei,
            price_impact_percent=compute_price_impact(
                TradeDirection.BUY, token_amount, from_wei(cost_wei), from_wei(price_wei)
            ),
            source=QuoteSource.PRIMARY,
        )
