"""Price history built from on-chain TokenPurchased / TokenSold logs.

Pipeline per request (rebuilt wholesale every time, no incremental patching):
1. Map the timeframe to a block lookback ending at the current block.
2. Fetch purchase and sale logs concurrently, merge by block number.
3. Line mode: downsample to the bucket count (head block -> timestamp,
   tail event -> price). Candle mode: bucket by interpolated time.
4. Resolve only the first and last anchor block timestamps and interpolate
   the rest.
5. Empty window or any chain failure: flat two-point series at the current
   price over the last hour.
"""

import asyncio
import time
from collections.abc import Callable
from decimal import Decimal

from curvetrade.chain.reader import ChainReader
from curvetrade.config import HistorySettings
from curvetrade.exceptions import ChainUnavailable
from curvetrade.history.series import (
    build_candles,
    build_line_series,
    group_events,
    merge_events,
    points_to_candles,
    synthetic_series,
)
from curvetrade.logging import get_logger
from curvetrade.models import (
    Candle,
    ChainContext,
    ChartMode,
    EventKind,
    PricePoint,
    Timeframe,
    TradeEvent,
    VolumeSummary,
)
from curvetrade.units import from_wei

logger = get_logger(__name__)


class HistoryAggregator:
    """Builds line or candle price series for a timeframe.

    Args:
        reader: Chain reader for logs, block timestamps and current price.
        settings: Bucket count, lookbacks and synthetic span.
        clock: Returns the current Unix time in seconds (injectable for tests).
    """

    def __init__(
        self,
        reader: ChainReader,
        settings: HistorySettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._reader = reader
        self._settings = settings or HistorySettings()
        self._clock = clock

    async def history(
        self,
        ctx: ChainContext,
        timeframe: Timeframe,
        mode: ChartMode = ChartMode.LINE,
    ) -> list[PricePoint] | list[Candle]:
        """Return the price series for ``timeframe``.

        Never raises for chain failures: they are logged and answered with
        the synthetic flat series.
        """
        try:
            events = await self.fetch_events(ctx, timeframe)
            if events:
                if mode == ChartMode.CANDLE:
                    return await self._candles(events)
                return await self._line(events)
        except ChainUnavailable:
            logger.warning(
                "history_fetch_failed",
                market=ctx.market,
                timeframe=timeframe.value,
                exc_info=True,
            )
        return await self._synthetic(ctx, mode)

    async def fetch_events(self, ctx: ChainContext, timeframe: Timeframe) -> list[TradeEvent]:
        """Fetch and merge the timeframe's purchase and sale events."""
        from_block, head = await self.block_window(timeframe)
        events = await self._fetch_range(ctx, from_block, head)
        logger.debug(
            "history_events_fetched",
            market=ctx.market,
            timeframe=timeframe.value,
            from_block=from_block,
            to_block=head,
            count=len(events),
        )
        return events

    async def block_window(self, timeframe: Timeframe) -> tuple[int, int]:
        """Return the (from_block, to_block) range covering ``timeframe``.

        Raises:
            ChainUnavailable: If the current block cannot be read.
        """
        head = await self._reader.current_block_number()
        return max(0, head - self._settings.lookback_blocks(timeframe)), head

    async def trading_volume(
        self, ctx: ChainContext, from_block: int, to_block: int
    ) -> VolumeSummary:
        """Sum native volume paid by buyers and received by sellers in a block range.

        Raises:
            ChainUnavailable: If the logs cannot be fetched.
        """
        purchases, sales = await asyncio.gather(
            self._reader.get_logs(ctx.market, EventKind.PURCHASE, from_block, to_block),
            self._reader.get_logs(ctx.market, EventKind.SALE, from_block, to_block),
        )
        return VolumeSummary(
            buy_volume=sum(e.total for e in purchases),
            sell_volume=sum(e.total for e in sales),
        )

    async def _fetch_range(
        self, ctx: ChainContext, from_block: int, to_block: int
    ) -> list[TradeEvent]:
        purchases, sales = await asyncio.gather(
            self._reader.get_logs(ctx.market, EventKind.PURCHASE, from_block, to_block),
            self._reader.get_logs(ctx.market, EventKind.SALE, from_block, to_block),
        )
        return merge_events(purchases, sales)

    async def _anchor_timestamps(self, first_block: int, last_block: int) -> tuple[int, int]:
        """Resolve the two anchor block timestamps, in milliseconds."""
        if first_block == last_block:
            ts = await self._reader.get_block_timestamp(first_block)
            return ts * 1000, ts * 1000
        first_ts, last_ts = await asyncio.gather(
            self._reader.get_block_timestamp(first_block),
            self._reader.get_block_timestamp(last_block),
        )
        return first_ts * 1000, last_ts * 1000

    async def _line(self, events: list[TradeEvent]) -> list[PricePoint]:
        groups = group_events(events, self._settings.bucket_count)
        first_ts, last_ts = await self._anchor_timestamps(
            groups[0][0].block_number, groups[-1][0].block_number
        )
        return build_line_series(groups, first_ts, last_ts)

    async def _candles(self, events: list[TradeEvent]) -> list[Candle]:
        first_ts, last_ts = await self._anchor_timestamps(
            events[0].block_number, events[-1].block_number
        )
        return build_candles(events, first_ts, last_ts, self._settings.bucket_count)

    async def _synthetic(
        self, ctx: ChainContext, mode: ChartMode
    ) -> list[PricePoint] | list[Candle]:
        try:
            price = from_wei(await self._reader.read_current_price(ctx.market))
        except ChainUnavailable:
            logger.warning("history_price_unavailable", market=ctx.market, exc_info=True)
            price = Decimal("0")

        now_ms = int(self._clock() * 1000)
        points = synthetic_series(price, now_ms, self._settings.synthetic_span_ms)
        if mode == ChartMode.CANDLE:
            return points_to_candles(points)
        return points
