"""Pure transformations from trade events to chart series.

The chain has no timestamp index, so events are ordered and bucketed by
block number, and only the outermost block timestamps are ever resolved.
Everything in between is linearly interpolated.
"""

from decimal import Decimal

from curvetrade.models import Candle, PricePoint, TradeEvent
from curvetrade.units import from_wei


def merge_events(purchases: list[TradeEvent], sales: list[TradeEvent]) -> list[TradeEvent]:
    """Merge purchase and sale events into one stream ordered by block number.

    The sort is stable and keyed on block number only, so events sharing a
    block keep the order the node returned them in.
    """
    return sorted([*purchases, *sales], key=lambda e: e.block_number)


def group_events(events: list[TradeEvent], bucket_count: int) -> list[list[TradeEvent]]:
    """Partition events into at most ``bucket_count`` consecutive groups.

    Streams no longer than ``bucket_count`` yield one group per event.
    Longer streams are split into exactly ``bucket_count`` groups whose
    sizes differ by at most one, so a stream of ``k * bucket_count`` events
    is cut every ``k`` events.
    """
    n = len(events)
    if n <= bucket_count:
        return [[e] for e in events]
    bounds = [i * n // bucket_count for i in range(bucket_count + 1)]
    return [events[bounds[i] : bounds[i + 1]] for i in range(bucket_count)]


def interpolate_timestamp(
    block_number: int,
    first_block: int,
    last_block: int,
    first_ts_ms: int,
    last_ts_ms: int,
) -> int:
    """Linearly place ``block_number`` between two resolved block timestamps."""
    if last_block == first_block:
        return first_ts_ms
    return first_ts_ms + (block_number - first_block) * (last_ts_ms - first_ts_ms) // (
        last_block - first_block
    )


def build_line_series(
    groups: list[list[TradeEvent]],
    first_ts_ms: int,
    last_ts_ms: int,
) -> list[PricePoint]:
    """Turn event groups into price points.

    Each group's head block anchors its timestamp; its tail event supplies
    the price (last trade in the bucket). ``first_ts_ms`` / ``last_ts_ms``
    are the timestamps of the first and last group heads.
    """
    if not groups:
        return []
    first_block = groups[0][0].block_number
    last_block = groups[-1][0].block_number
    points = [
        PricePoint(
            timestamp_ms=interpolate_timestamp(
                group[0].block_number, first_block, last_block, first_ts_ms, last_ts_ms
            ),
            price=from_wei(group[-1].price),
        )
        for group in groups
    ]
    points.sort(key=lambda p: p.timestamp_ms)
    return points


def build_candles(
    events: list[TradeEvent],
    first_ts_ms: int,
    last_ts_ms: int,
    bucket_count: int,
) -> list[Candle]:
    """Group events into equal-width time buckets and summarize each as OHLC.

    Event timestamps are interpolated from the first and last event blocks.
    Buckets span [min_ts, max_ts]; buckets without events are omitted.
    """
    if not events:
        return []
    first_block = events[0].block_number
    last_block = events[-1].block_number
    stamped = [
        (
            interpolate_timestamp(e.block_number, first_block, last_block, first_ts_ms, last_ts_ms),
            from_wei(e.price),
        )
        for e in events
    ]
    min_ts = min(ts for ts, _ in stamped)
    span = max(ts for ts, _ in stamped) - min_ts

    buckets: dict[int, list[Decimal]] = {}
    for ts, price in stamped:
        index = 0 if span == 0 else min((ts - min_ts) * bucket_count // span, bucket_count - 1)
        buckets.setdefault(index, []).append(price)

    candles = []
    for index in sorted(buckets):
        prices = buckets[index]
        candles.append(
            Candle(
                bucket_start=min_ts + index * span // bucket_count,
                open=prices[0],
                high=max(prices),
                low=min(prices),
                close=prices[-1],
            )
        )
    return candles


def synthetic_series(price: Decimal, now_ms: int, span_ms: int) -> list[PricePoint]:
    """Flat two-point series ending at ``now_ms`` for an empty window."""
    return [
        PricePoint(timestamp_ms=now_ms - span_ms, price=price),
        PricePoint(timestamp_ms=now_ms, price=price),
    ]


def points_to_candles(points: list[PricePoint]) -> list[Candle]:
    """Represent each point as a flat candle (used for the synthetic series)."""
    return [
        Candle(bucket_start=p.timestamp_ms, open=p.price, high=p.price, low=p.price, close=p.price)
        for p in points
    ]
