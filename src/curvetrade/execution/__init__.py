"""Trade execution layer -- staged buy/sell submission with receipt tolerance."""

from curvetrade.execution.diagnostics import classify_failure, is_receipt_unverifiable
from curvetrade.execution.executor import TradeExecutor

__all__ = ["TradeExecutor", "classify_failure", "is_receipt_unverifiable"]
