"""Translate raw trade errors into the caller-visible failure taxonomy.

Callers only ever see a TradeFailureReason and a fixed message for it. The
original exception is logged, never returned.
"""

from curvetrade.exceptions import (
    InsufficientBalance,
    InvalidAmount,
    ReceiptUnverifiable,
    SimulationFailed,
    StaleQuote,
    TradeTimeout,
    UserRejected,
    WalletNotConnected,
)
from curvetrade.models import TradeFailureReason

FAILURE_MESSAGES: dict[TradeFailureReason, str] = {
    TradeFailureReason.INSUFFICIENT_FUNDS: "Insufficient balance for this trade.",
    TradeFailureReason.USER_REJECTED: "Transaction was rejected by the signer.",
    TradeFailureReason.SIMULATION_FAILED: "The trade would fail on chain. Try a smaller amount.",
    TradeFailureReason.TIMEOUT: "Timed out waiting for the transaction to confirm.",
    TradeFailureReason.NOT_CONNECTED: "Connect an account to trade.",
    TradeFailureReason.STALE_QUOTE: "The quote is out of date. Refresh and try again.",
    TradeFailureReason.INVALID_AMOUNT: "Enter an amount greater than zero.",
    TradeFailureReason.GENERIC: "The trade failed. Please try again.",
}

RECEIPT_UNVERIFIED_WARNING = "Transaction submitted, confirmation unverified."

_TYPE_REASONS: list[tuple[type[BaseException], TradeFailureReason]] = [
    (InsufficientBalance, TradeFailureReason.INSUFFICIENT_FUNDS),
    (UserRejected, TradeFailureReason.USER_REJECTED),
    (SimulationFailed, TradeFailureReason.SIMULATION_FAILED),
    (TradeTimeout, TradeFailureReason.TIMEOUT),
    (WalletNotConnected, TradeFailureReason.NOT_CONNECTED),
    (StaleQuote, TradeFailureReason.STALE_QUOTE),
    (InvalidAmount, TradeFailureReason.INVALID_AMOUNT),
]

# Message fragments seen from wallets and RPC nodes, checked in order.
_MESSAGE_REASONS: list[tuple[tuple[str, ...], TradeFailureReason]] = [
    (("insufficient funds", "insufficient balance"), TradeFailureReason.INSUFFICIENT_FUNDS),
    (("user rejected", "user denied", "rejected the request"), TradeFailureReason.USER_REJECTED),
    (("timed out", "timeout"), TradeFailureReason.TIMEOUT),
    (("execution reverted", "revert"), TradeFailureReason.SIMULATION_FAILED),
]

_RECEIPT_MISSING_FRAGMENTS = (
    "no matching receipt",
    "could not be found",
    "not found",
    "corrupt",
)


def _chain(exc: BaseException):
    seen = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify_failure(exc: BaseException) -> TradeFailureReason:
    """Map an exception (or anything in its cause chain) to a failure reason."""
    for err in _chain(exc):
        for exc_type, reason in _TYPE_REASONS:
            if isinstance(err, exc_type):
                return reason
    for err in _chain(exc):
        message = str(err).lower()
        for fragments, reason in _MESSAGE_REASONS:
            if any(fragment in message for fragment in fragments):
                return reason
    return TradeFailureReason.GENERIC


def is_receipt_unverifiable(exc: BaseException) -> bool:
    """True if a receipt lookup failed because the receipt is missing or corrupt."""
    for err in _chain(exc):
        if isinstance(err, ReceiptUnverifiable):
            return True
        if isinstance(err, TradeTimeout):
            return False
        message = str(err).lower()
        if any(fragment in message for fragment in _RECEIPT_MISSING_FRAGMENTS):
            return True
    return False
