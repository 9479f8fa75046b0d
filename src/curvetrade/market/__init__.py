"""Market data layer -- curve state, market statistics and balances."""

from curvetrade.market.stats import MarketStatsService

__all__ = ["MarketStatsService"]
