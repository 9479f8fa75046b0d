"""Custom exceptions for curvetrade.

Chain-level failures (ChainUnavailable, ImplausibleResult) are absorbed by
the quote engine and history aggregator, which fall back to local
approximations. The execution-time errors are translated by the trade
executor into a TradeFailureReason before they reach a caller.
"""


class CurveTradeError(Exception):
    """Base exception for all curvetrade errors."""


class ChainUnavailable(CurveTradeError):
    """Raised when a chain read or write cannot be completed (network/RPC failure)."""


class ImplausibleResult(CurveTradeError):
    """Raised when a computed amount fails the sanity gate (negative or above ceiling)."""


class InsufficientBalance(CurveTradeError):
    """Raised when the account cannot cover the trade (tokens to sell or native cost)."""


class UserRejected(CurveTradeError):
    """Raised when the signer declines to sign the transaction."""


class SimulationFailed(CurveTradeError):
    """Raised when the dry-run of a write call reverts or the contract cannot pay out."""


class ReceiptUnverifiable(CurveTradeError):
    """Raised when a submitted transaction's receipt cannot be retrieved.

    Not a failure of the transaction itself: the executor downgrades it to a
    warning and reports a qualified success.
    """


class TradeTimeout(CurveTradeError):
    """Raised when waiting for a transaction receipt exceeds the timeout."""


class StaleQuote(CurveTradeError):
    """Raised when a trade is submitted with a missing, expired or mismatched quote."""


class WalletNotConnected(CurveTradeError):
    """Raised when a write is attempted without a signing account."""


class InvalidAmount(CurveTradeError):
    """Raised when a trade amount is zero or negative."""
