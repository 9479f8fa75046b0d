"""Tests for failure classification and receipt tolerance."""

import pytest

from curvetrade.exceptions import (
    ChainUnavailable,
    InsufficientBalance,
    ReceiptUnverifiable,
    SimulationFailed,
    TradeTimeout,
    UserRejected,
)
from curvetrade.execution.diagnostics import (
    FAILURE_MESSAGES,
    classify_failure,
    is_receipt_unverifiable,
)
from curvetrade.models import TradeFailureReason


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "exc, reason",
        [
            (InsufficientBalance("x"), TradeFailureReason.INSUFFICIENT_FUNDS),
            (UserRejected("x"), TradeFailureReason.USER_REJECTED),
            (SimulationFailed("x"), TradeFailureReason.SIMULATION_FAILED),
            (TradeTimeout("x"), TradeFailureReason.TIMEOUT),
        ],
    )
    def test_by_type(self, exc, reason):
        assert classify_failure(exc) == reason

    @pytest.mark.parametrize(
        "message, reason",
        [
            ("insufficient funds for gas", TradeFailureReason.INSUFFICIENT_FUNDS),
            ("MetaMask: User denied transaction signature", TradeFailureReason.USER_REJECTED),
            ("request timed out", TradeFailureReason.TIMEOUT),
            ("execution reverted: slippage", TradeFailureReason.SIMULATION_FAILED),
            ("something odd", TradeFailureReason.GENERIC),
        ],
    )
    def test_by_message(self, message, reason):
        assert classify_failure(ChainUnavailable(message)) == reason

    def test_follows_cause_chain(self):
        try:
            try:
                raise UserRejected("declined")
            except UserRejected as inner:
                raise ChainUnavailable("wrapped") from inner
        except ChainUnavailable as outer:
            assert classify_failure(outer) == TradeFailureReason.USER_REJECTED

    def test_every_reason_has_a_message(self):
        assert set(FAILURE_MESSAGES) == set(TradeFailureReason)


class TestReceiptUnverifiable:
    def test_explicit_type(self):
        assert is_receipt_unverifiable(ReceiptUnverifiable("gone"))

    @pytest.mark.parametrize(
        "message",
        [
            "No matching receipt for transaction",
            "Transaction receipt could not be found",
            "Transaction with hash 0xabc not found",
            "receipt is corrupt",
        ],
    )
    def test_by_message(self, message):
        assert is_receipt_unverifiable(ChainUnavailable(message))

    def test_timeout_is_not_tolerated(self):
        assert not is_receipt_unverifiable(TradeTimeout("not found within 180s"))

    def test_unrelated_error(self):
        assert not is_receipt_unverifiable(ChainUnavailable("connection refused"))
