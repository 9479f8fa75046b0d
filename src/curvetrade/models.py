"""Shared data models for curvetrade.

Amounts that cross the chain boundary are ints at 18-decimal scale (wei).
Prices and token amounts handled by the engine are Decimal. Never use float
for money; price impact is the only float, and it is a percentage.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class TradeDirection(str, Enum):
    """Trade direction against the curve."""

    BUY = "buy"
    SELL = "sell"


class QuoteSource(str, Enum):
    """Which strategy produced a quote."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


class EventKind(str, Enum):
    """Curve trade event type, mapped to the contract's event names."""

    PURCHASE = "TokenPurchased"
    SALE = "TokenSold"


class Timeframe(str, Enum):
    """Chart timeframe selector."""

    HOUR = "1H"
    FOUR_HOURS = "4H"
    DAY = "1D"
    WEEK = "1W"
    ALL = "ALL"


class ChartMode(str, Enum):
    """History rendering mode."""

    LINE = "line"
    CANDLE = "candle"


class TradeState(str, Enum):
    """Trade executor state machine."""

    IDLE = "idle"
    VALIDATING = "validating"
    SIMULATING = "simulating"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TradeFailureReason(str, Enum):
    """Caller-visible failure causes."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    USER_REJECTED = "user_rejected"
    SIMULATION_FAILED = "simulation_failed"
    TIMEOUT = "timeout"
    NOT_CONNECTED = "not_connected"
    STALE_QUOTE = "stale_quote"
    INVALID_AMOUNT = "invalid_amount"
    GENERIC = "generic"


@dataclass(frozen=True)
class ChainContext:
    """The active chain, market and account, passed into every core call."""

    chain_id: int
    market: str
    account: str | None = None


@dataclass(frozen=True)
class TradeQuote:
    """Priced trade for a candidate amount. Replaced, never mutated."""

    direction: TradeDirection
    amount_in: Decimal
    cost_or_proceeds: int  # wei
    price_impact_percent: float
    source: QuoteSource = QuoteSource.PRIMARY
    created_at: float = field(default_factory=time.time)

    def is_expired(self, ttl_seconds: float, now: float | None = None) -> bool:
        """Return True once the quote is older than ``ttl_seconds``."""
        current = time.time() if now is None else now
        return current - self.created_at > ttl_seconds


@dataclass(frozen=True)
class TradeRequest:
    """User intent to trade ``token_amount`` tokens."""

    direction: TradeDirection
    token_amount: Decimal


@dataclass(frozen=True)
class TradeEvent:
    """A decoded TokenPurchased / TokenSold log."""

    kind: EventKind
    block_number: int
    price: int  # wei per token after the trade
    amount: int = 0  # token wei
    total: int = 0  # native wei paid or received
    trader: str = ""
    log_index: int = 0
    tx_hash: str = ""


@dataclass
class PricePoint:
    """A single point of the line chart."""

    timestamp_ms: int
    price: Decimal


@dataclass
class Candle:
    """OHLC summary of one time bucket."""

    bucket_start: int  # Unix milliseconds
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal


@dataclass
class TokenStats:
    """Raw aggregate values reported by the token contract (wei / counts)."""

    total_supply: int
    total_sold: int
    current_price: int
    market_cap: int
    holder_count: int
    creator_fees: int


@dataclass
class CurveState:
    """Live curve snapshot. Read fresh before each quote or trade."""

    current_price: Decimal
    total_supply: int
    total_sold: int
    contract_native_balance: int


@dataclass
class MarketStats:
    """Curve state plus the headline market figures shown next to the chart."""

    curve: CurveState
    market_cap: Decimal
    holder_count: int
    ready_for_graduation: bool
    updated_at: float = field(default_factory=time.time)


@dataclass
class BalanceSnapshot:
    """Account balances relevant to trading one market (wei)."""

    native: int
    token: int
    updated_at: float = field(default_factory=time.time)


@dataclass
class VolumeSummary:
    """Native-currency volume traded over a block range (wei)."""

    buy_volume: int
    sell_volume: int

    @property
    def total_volume(self) -> int:
        return self.buy_volume + self.sell_volume


@dataclass(frozen=True)
class WriteCall:
    """A state-changing contract call."""

    market: str
    function: str
    args: tuple = ()
    value: int = 0
    gas: int | None = None


@dataclass
class TransactionReceipt:
    """Outcome of a mined transaction."""

    tx_hash: str
    status: bool
    block_number: int | None = None
    gas_used: int | None = None


@dataclass
class TradeOutcome:
    """Terminal result of one trade execution."""

    state: TradeState
    request: TradeRequest
    tx_hash: str | None = None
    verified: bool = True
    failure_reason: TradeFailureReason | None = None
    message: str = ""
    warning: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == TradeState.SUCCEEDED
