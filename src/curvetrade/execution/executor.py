"""Staged trade execution against the bonding curve.

State machine:
    IDLE -> VALIDATING -> SIMULATING (sells only) -> SUBMITTING -> CONFIRMING
         -> SUCCEEDED | FAILED

Receipt retrieval on some chains is unreliable. When the transaction was
broadcast but its receipt cannot be found, the executor waits a grace
period, refreshes balances and reports an unverified success instead of
failing.
"""

import asyncio
from collections.abc import Awaitable, Callable
from decimal import Decimal

from curvetrade.chain.reader import ChainReader
from curvetrade.config import ExecutionSettings
from curvetrade.exceptions import (
    CurveTradeError,
    InsufficientBalance,
    InvalidAmount,
    SimulationFailed,
    StaleQuote,
    WalletNotConnected,
)
from curvetrade.execution.diagnostics import (
    FAILURE_MESSAGES,
    RECEIPT_UNVERIFIED_WARNING,
    classify_failure,
    is_receipt_unverifiable,
)
from curvetrade.logging import get_logger, trade_context
from curvetrade.market.stats import MarketStatsService
from curvetrade.models import (
    ChainContext,
    TradeDirection,
    TradeFailureReason,
    TradeOutcome,
    TradeQuote,
    TradeRequest,
    TradeState,
    WriteCall,
)
from curvetrade.units import format_units, to_wei

logger = get_logger(__name__)

BUY_FUNCTION = "buyTokens"
SELL_FUNCTION = "sellTokens"


class TradeExecutor:
    """Validates, simulates, submits and confirms one trade at a time.

    Args:
        reader: Chain reader used for balance checks and writes.
        settings: Fee reserve, quote TTL, receipt timeout and delays.
        on_settled: Awaited after a successful (or unverified) trade to
            refresh balances and the chart.
        sleep: Injectable sleep for the post-simulation delay and receipt grace.
        stats: Curve-state reader for the sell payout check. Defaults to one
            built over ``reader``.
    """

    def __init__(
        self,
        reader: ChainReader,
        settings: ExecutionSettings | None = None,
        on_settled: Callable[[], Awaitable[None]] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        stats: MarketStatsService | None = None,
    ) -> None:
        self._reader = reader
        self._stats = stats or MarketStatsService(reader)
        self._settings = settings or ExecutionSettings()
        self._on_settled = on_settled
        self._sleep = sleep
        self._state = TradeState.IDLE
        self._lock = asyncio.Lock()

    @property
    def state(self) -> TradeState:
        """Current (or last terminal) state."""
        return self._state

    async def execute(
        self,
        ctx: ChainContext,
        request: TradeRequest,
        quote: TradeQuote | None,
    ) -> TradeOutcome:
        """Run a trade through every stage and return its terminal outcome.

        Never raises for chain or validation errors; they are reported as a
        FAILED outcome with a TradeFailureReason.
        """
        async with self._lock:
            with trade_context(market=ctx.market, direction=request.direction.value):
                return await self._run(ctx, request, quote)

    async def _run(
        self, ctx: ChainContext, request: TradeRequest, quote: TradeQuote | None
    ) -> TradeOutcome:
        tx_hash: str | None = None
        try:
            self._transition(TradeState.VALIDATING, request)
            account, quote = await self._validate(ctx, request, quote)

            amount_wei = to_wei(request.token_amount)
            if request.direction == TradeDirection.SELL:
                self._transition(TradeState.SIMULATING, request)
                call = await self._simulate_sell(ctx, account, amount_wei, quote)
            else:
                call = WriteCall(
                    market=ctx.market,
                    function=BUY_FUNCTION,
                    args=(amount_wei,),
                    value=quote.cost_or_proceeds,
                )

            self._transition(TradeState.SUBMITTING, request)
            tx_hash = await self._reader.write_contract(account, call)

            self._transition(TradeState.CONFIRMING, request)
            with trade_context(tx_hash=tx_hash):
                return await self._confirm(request, tx_hash)
        except CurveTradeError as exc:
            return self._fail(request, classify_failure(exc), exc, tx_hash)
        except Exception as exc:
            logger.error("trade_unexpected_error", exc_info=True)
            return self._fail(request, classify_failure(exc), exc, tx_hash)

    # ──────────────────────────────────────────────
    # Stages
    # ──────────────────────────────────────────────

    async def _validate(
        self, ctx: ChainContext, request: TradeRequest, quote: TradeQuote | None
    ) -> tuple[str, TradeQuote]:
        if ctx.account is None:
            raise WalletNotConnected("No account connected")
        if request.token_amount <= 0 or to_wei(request.token_amount) == 0:
            raise InvalidAmount(f"Amount must be at least one wei: {request.token_amount}")
        if quote is None:
            raise StaleQuote("No quote available")
        if quote.direction != request.direction or quote.amount_in != request.token_amount:
            raise StaleQuote("Quote does not match the requested trade")
        if quote.is_expired(self._settings.quote_ttl_seconds):
            raise StaleQuote("Quote expired")

        if request.direction == TradeDirection.SELL:
            token_balance = await self._reader.read_token_balance(ctx.market, ctx.account)
            if to_wei(request.token_amount) > token_balance:
                raise InsufficientBalance(
                    f"Selling {request.token_amount} but holding {format_units(token_balance)}"
                )
        else:
            native_balance = await self._reader.read_balance(ctx.account)
            spendable = Decimal(native_balance) * self._settings.fee_reserve_ratio
            if quote.cost_or_proceeds > spendable:
                raise InsufficientBalance(
                    f"Cost {format_units(quote.cost_or_proceeds)} exceeds spendable "
                    f"{format_units(int(spendable))}"
                )
        return ctx.account, quote

    async def _simulate_sell(
        self, ctx: ChainContext, account: str, amount_wei: int, quote: TradeQuote
    ) -> WriteCall:
        token_balance, state = await asyncio.gather(
            self._reader.read_token_balance(ctx.market, account),
            self._stats.curve_state(ctx),
        )
        if state.contract_native_balance < quote.cost_or_proceeds:
            raise SimulationFailed(
                f"Contract holds {format_units(state.contract_native_balance)} but sale pays "
                f"{format_units(quote.cost_or_proceeds)}"
            )
        if token_balance < amount_wei:
            raise InsufficientBalance(
                f"Token balance {format_units(token_balance)} below sell amount "
                f"{format_units(amount_wei)}"
            )

        call = WriteCall(market=ctx.market, function=SELL_FUNCTION, args=(amount_wei,))
        await self._reader.simulate_write(account, call)
        gas = await self._reader.estimate_gas(account, call)
        await self._sleep(self._settings.post_simulation_delay)

        gas_limit = int(Decimal(gas) * self._settings.gas_buffer_ratio)
        logger.debug("sell_simulated", market=ctx.market, gas=gas, gas_limit=gas_limit)
        return WriteCall(
            market=ctx.market, function=SELL_FUNCTION, args=(amount_wei,), gas=gas_limit
        )

    async def _confirm(self, request: TradeRequest, tx_hash: str) -> TradeOutcome:
        try:
            receipt = await self._reader.wait_for_receipt(tx_hash, self._settings.receipt_timeout)
        except CurveTradeError as exc:
            if not is_receipt_unverifiable(exc):
                raise
            logger.warning("trade_receipt_unverifiable", tx_hash=tx_hash, error=str(exc))
            await self._sleep(self._settings.receipt_grace_seconds)
            await self._settle()
            self._transition(TradeState.SUCCEEDED, request)
            return TradeOutcome(
                state=TradeState.SUCCEEDED,
                request=request,
                tx_hash=tx_hash,
                verified=False,
                message=RECEIPT_UNVERIFIED_WARNING,
                warning=RECEIPT_UNVERIFIED_WARNING,
            )

        if not receipt.status:
            logger.warning("trade_reverted", tx_hash=tx_hash, block=receipt.block_number)
            self._transition(TradeState.FAILED, request)
            return TradeOutcome(
                state=TradeState.FAILED,
                request=request,
                tx_hash=tx_hash,
                failure_reason=TradeFailureReason.SIMULATION_FAILED,
                message="The transaction was reverted.",
            )

        await self._settle()
        self._transition(TradeState.SUCCEEDED, request)
        logger.info(
            "trade_confirmed",
            tx_hash=tx_hash,
            direction=request.direction.value,
            amount=str(request.token_amount),
            block=receipt.block_number,
        )
        return TradeOutcome(
            state=TradeState.SUCCEEDED,
            request=request,
            tx_hash=tx_hash,
            message="Trade confirmed.",
        )

    # ──────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────

    async def _settle(self) -> None:
        if self._on_settled is None:
            return
        try:
            await self._on_settled()
        except Exception:
            logger.warning("post_trade_refresh_failed", exc_info=True)

    def _transition(self, state: TradeState, request: TradeRequest) -> None:
        logger.debug(
            "trade_state",
            previous=self._state.value,
            state=state.value,
            direction=request.direction.value,
        )
        self._state = state

    def _fail(
        self,
        request: TradeRequest,
        reason: TradeFailureReason,
        exc: BaseException,
        tx_hash: str | None,
    ) -> TradeOutcome:
        logger.warning(
            "trade_failed",
            stage=self._state.value,
            reason=reason.value,
            error=str(exc),
            tx_hash=tx_hash,
        )
        self._transition(TradeState.FAILED, request)
        return TradeOutcome(
            state=TradeState.FAILED,
            request=request,
            tx_hash=tx_hash,
            failure_reason=reason,
            message=FAILURE_MESSAGES[reason],
        )
