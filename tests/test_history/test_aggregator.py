"""Tests for HistoryAggregator window fetching and fallback series."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from curvetrade.chain.reader import ChainReader
from curvetrade.config import HistorySettings
from curvetrade.exceptions import ChainUnavailable
from curvetrade.history.aggregator import HistoryAggregator
from curvetrade.models import Candle, ChainContext, ChartMode, EventKind, PricePoint, Timeframe, TradeEvent

WEI = 10**18
MARKET = "0x1111111111111111111111111111111111111111"
NOW = 1_700_000_000.0


def _event(kind: EventKind, block: int, price_wei: int, total: int = 0) -> TradeEvent:
    return TradeEvent(kind=kind, block_number=block, price=price_wei, total=total)


@pytest.fixture
def reader() -> AsyncMock:
    reader = AsyncMock(spec=ChainReader)
    reader.current_block_number.return_value = 10_000
    reader.read_current_price.return_value = WEI // 2
    reader.get_logs.return_value = []
    reader.get_block_timestamp.side_effect = lambda block: 1_600_000_000 + block
    return reader


@pytest.fixture
def aggregator(reader) -> HistoryAggregator:
    return HistoryAggregator(reader, HistorySettings(), clock=lambda: NOW)


@pytest.fixture
def ctx() -> ChainContext:
    return ChainContext(chain_id=16602, market=MARKET)


def _logs_by_kind(purchases: list[TradeEvent], sales: list[TradeEvent]):
    def get_logs(market, kind, from_block, to_block):
        return purchases if kind == EventKind.PURCHASE else sales

    return get_logs


# ---------------------------------------------------------------------------
# Empty window and failures
# ---------------------------------------------------------------------------


class TestSyntheticFallback:
    @pytest.mark.asyncio
    async def test_empty_window_gives_flat_hour(self, aggregator, ctx):
        points = await aggregator.history(ctx, Timeframe.HOUR)

        assert len(points) == 2
        assert all(isinstance(p, PricePoint) for p in points)
        assert points[1].timestamp_ms == int(NOW * 1000)
        assert points[1].timestamp_ms - points[0].timestamp_ms == 3_600_000
        assert points[0].price == points[1].price == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_empty_window_candle_mode(self, aggregator, ctx):
        candles = await aggregator.history(ctx, Timeframe.DAY, ChartMode.CANDLE)

        assert len(candles) == 2
        assert all(isinstance(c, Candle) for c in candles)
        assert all(c.open == c.close == Decimal("0.5") for c in candles)

    @pytest.mark.asyncio
    async def test_log_failure_gives_flat_series(self, aggregator, reader, ctx):
        reader.get_logs.side_effect = ChainUnavailable("range too large")

        points = await aggregator.history(ctx, Timeframe.WEEK)

        assert len(points) == 2
        assert points[0].price == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_price_failure_too_gives_zero_series(self, aggregator, reader, ctx):
        reader.current_block_number.side_effect = ChainUnavailable("rpc down")
        reader.read_current_price.side_effect = ChainUnavailable("rpc down")

        points = await aggregator.history(ctx, Timeframe.HOUR)

        assert [p.price for p in points] == [Decimal("0"), Decimal("0")]


# ---------------------------------------------------------------------------
# Window fetching
# ---------------------------------------------------------------------------


class TestFetchEvents:
    @pytest.mark.asyncio
    async def test_lookback_for_timeframe(self, aggregator, reader, ctx):
        await aggregator.fetch_events(ctx, Timeframe.HOUR)

        reader.get_logs.assert_any_await(MARKET, EventKind.PURCHASE, 10_000 - 1_200, 10_000)
        reader.get_logs.assert_any_await(MARKET, EventKind.SALE, 10_000 - 1_200, 10_000)

    @pytest.mark.asyncio
    async def test_lookback_clamped_at_genesis(self, aggregator, reader, ctx):
        await aggregator.fetch_events(ctx, Timeframe.ALL)

        reader.get_logs.assert_any_await(MARKET, EventKind.PURCHASE, 0, 10_000)

    @pytest.mark.asyncio
    async def test_block_window_ends_at_head(self, aggregator):
        assert await aggregator.block_window(Timeframe.HOUR) == (10_000 - 1_200, 10_000)
        assert await aggregator.block_window(Timeframe.DAY) == (0, 10_000)

    @pytest.mark.asyncio
    async def test_merges_both_kinds_by_block(self, aggregator, reader, ctx):
        purchases = [_event(EventKind.PURCHASE, 9_500, WEI), _event(EventKind.PURCHASE, 9_900, 3 * WEI)]
        sales = [_event(EventKind.SALE, 9_700, 2 * WEI)]
        reader.get_logs.side_effect = _logs_by_kind(purchases, sales)

        events = await aggregator.fetch_events(ctx, Timeframe.HOUR)

        assert [e.block_number for e in events] == [9_500, 9_700, 9_900]


# ---------------------------------------------------------------------------
# Series building
# ---------------------------------------------------------------------------


class TestHistorySeries:
    @pytest.mark.asyncio
    async def test_line_points_interpolated_between_anchors(self, aggregator, reader, ctx):
        purchases = [_event(EventKind.PURCHASE, b, WEI) for b in (9_000, 9_500, 10_000)]
        reader.get_logs.side_effect = _logs_by_kind(purchases, [])

        points = await aggregator.history(ctx, Timeframe.HOUR)

        assert [p.timestamp_ms for p in points] == [
            (1_600_000_000 + 9_000) * 1000,
            (1_600_000_000 + 9_500) * 1000,
            (1_600_000_000 + 10_000) * 1000,
        ]
        # Only the two anchor blocks are resolved
        assert reader.get_block_timestamp.await_count == 2

    @pytest.mark.asyncio
    async def test_single_event_resolves_one_timestamp(self, aggregator, reader, ctx):
        reader.get_logs.side_effect = _logs_by_kind([_event(EventKind.PURCHASE, 9_999, WEI)], [])

        points = await aggregator.history(ctx, Timeframe.HOUR)

        assert len(points) == 1
        assert reader.get_block_timestamp.await_count == 1

    @pytest.mark.asyncio
    async def test_line_downsampled_to_bucket_count(self, aggregator, reader, ctx):
        purchases = [_event(EventKind.PURCHASE, 8_800 + i, WEI + i) for i in range(600)]
        reader.get_logs.side_effect = _logs_by_kind(purchases, [])

        points = await aggregator.history(ctx, Timeframe.HOUR)

        assert len(points) == 60
        # Each group of ten reports its last trade's price
        assert points[0].price == Decimal(WEI + 9) / WEI

    @pytest.mark.asyncio
    async def test_candle_mode(self, aggregator, reader, ctx):
        purchases = [_event(EventKind.PURCHASE, 9_000 + i * 10, (i + 1) * WEI) for i in range(100)]
        reader.get_logs.side_effect = _logs_by_kind(purchases, [])

        candles = await aggregator.history(ctx, Timeframe.HOUR, ChartMode.CANDLE)

        assert 0 < len(candles) <= 60
        for c in candles:
            assert c.low <= min(c.open, c.close)
            assert c.high >= max(c.open, c.close)
        starts = [c.bucket_start for c in candles]
        assert starts == sorted(starts)


class TestTradingVolume:
    @pytest.mark.asyncio
    async def test_sums_buy_and_sell_totals(self, aggregator, reader, ctx):
        purchases = [
            _event(EventKind.PURCHASE, 1, WEI, total=2 * WEI),
            _event(EventKind.PURCHASE, 2, WEI, total=3 * WEI),
        ]
        sales = [_event(EventKind.SALE, 3, WEI, total=WEI)]
        reader.get_logs.side_effect = _logs_by_kind(purchases, sales)

        volume = await aggregator.trading_volume(ctx, 0, 100)

        assert volume.buy_volume == 5 * WEI
        assert volume.sell_volume == WEI
        assert volume.total_volume == 6 * WEI

    @pytest.mark.asyncio
    async def test_propagates_chain_failure(self, aggregator, reader, ctx):
        reader.get_logs.side_effect = ChainUnavailable("rpc down")

        with pytest.raises(ChainUnavailable):
            await aggregator.trading_volume(ctx, 0, 100)
