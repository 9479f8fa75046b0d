"""Live curve state, market statistics and account balances.

Nothing here is cached: each call is a fresh set of concurrent reads, so
callers always price and validate against the current curve.
"""

import asyncio
from decimal import Decimal

from curvetrade.chain.reader import ChainReader
from curvetrade.config import MarketSettings
from curvetrade.exceptions import WalletNotConnected
from curvetrade.logging import get_logger
from curvetrade.models import (
    BalanceSnapshot,
    ChainContext,
    CurveState,
    MarketStats,
    TokenStats,
)
from curvetrade.units import from_wei

logger = get_logger(__name__)


class MarketStatsService:
    """Reads CurveState, MarketStats and balances for the active market.

    Args:
        reader: Chain reader.
        settings: Graduation threshold.
    """

    def __init__(self, reader: ChainReader, settings: MarketSettings | None = None) -> None:
        self._reader = reader
        self._settings = settings or MarketSettings()

    async def curve_state(self, ctx: ChainContext) -> CurveState:
        """Read current price, supply figures and the contract's native balance.

        Raises:
            ChainUnavailable: If any of the reads fails.
        """
        state, _ = await self._read(ctx)
        return state

    async def snapshot(self, ctx: ChainContext) -> MarketStats:
        """Read the curve state plus market cap, holders and graduation readiness.

        Raises:
            ChainUnavailable: If any of the reads fails.
        """
        state, stats = await self._read(ctx)
        market_cap = from_wei(stats.market_cap)
        result = MarketStats(
            curve=state,
            market_cap=market_cap,
            holder_count=stats.holder_count,
            ready_for_graduation=self.is_ready_for_graduation(market_cap),
        )
        logger.debug(
            "market_stats_read",
            market=ctx.market,
            price=str(state.current_price),
            market_cap=str(market_cap),
            holders=stats.holder_count,
        )
        return result

    async def balances(self, ctx: ChainContext) -> BalanceSnapshot:
        """Read the account's native and token balances.

        Raises:
            WalletNotConnected: If the context has no account.
            ChainUnavailable: If either read fails.
        """
        if ctx.account is None:
            raise WalletNotConnected("No account connected")
        native, token = await asyncio.gather(
            self._reader.read_balance(ctx.account),
            self._reader.read_token_balance(ctx.market, ctx.account),
        )
        return BalanceSnapshot(native=native, token=token)

    def is_ready_for_graduation(self, market_cap: Decimal) -> bool:
        """True once market cap reaches the configured graduation threshold."""
        return market_cap >= self._settings.graduation_market_cap

    async def _read(self, ctx: ChainContext) -> tuple[CurveState, TokenStats]:
        price, stats, contract_balance = await asyncio.gather(
            self._reader.read_current_price(ctx.market),
            self._reader.read_token_stats(ctx.market),
            self._reader.read_balance(ctx.market),
        )
        state = CurveState(
            current_price=from_wei(price),
            total_supply=stats.total_supply,
            total_sold=stats.total_sold,
            contract_native_balance=contract_balance,
        )
        return state, stats
