"""Quoting layer -- contract-backed trade quotes with a local curve fallback."""

from curvetrade.quote.curve import CurveApproximation, approximate_trade
from curvetrade.quote.engine import QuoteEngine, compute_price_impact

__all__ = ["CurveApproximation", "QuoteEngine", "approximate_trade", "compute_price_impact"]
