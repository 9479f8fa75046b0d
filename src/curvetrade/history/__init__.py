"""Price history layer -- event-log aggregation into line and candle series."""

from curvetrade.history.aggregator import HistoryAggregator
from curvetrade.history.series import (
    build_candles,
    build_line_series,
    group_events,
    interpolate_timestamp,
    merge_events,
    synthetic_series,
)

__all__ = [
    "HistoryAggregator",
    "build_candles",
    "build_line_series",
    "group_events",
    "interpolate_timestamp",
    "merge_events",
    "synthetic_series",
]
