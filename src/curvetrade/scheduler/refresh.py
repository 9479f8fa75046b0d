"""Refresh scheduling for quotes, price history, market stats and balances.

Two mechanisms:
- SingleFlight: last-trigger-wins publication. Every trigger runs its work,
  but only the result of the most recent trigger is published; results of
  superseded triggers are dropped when they resolve. In-flight network
  calls are never cancelled.
- Periodic loops: history, market stats and balances are polled on fixed
  intervals for the active subject. The loops are asyncio tasks owned by the
  scheduler and are cancelled on subject change or shutdown.
"""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from decimal import Decimal
from typing import Any, Generic, TypeVar

from curvetrade.config import HistorySettings
from curvetrade.history.aggregator import HistoryAggregator
from curvetrade.logging import get_logger
from curvetrade.market.stats import MarketStatsService
from curvetrade.models import (
    BalanceSnapshot,
    Candle,
    ChainContext,
    ChartMode,
    MarketStats,
    PricePoint,
    Timeframe,
    TradeDirection,
    TradeQuote,
)
from curvetrade.quote.engine import QuoteEngine

logger = get_logger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Publishes only the result of the latest trigger.

    Args:
        name: Concern name used in log events.
        publish: Called with the winning result.
    """

    def __init__(self, name: str, publish: Callable[[T], None]) -> None:
        self._name = name
        self._publish = publish
        self._generation = 0

    def invalidate(self) -> None:
        """Mark every in-flight trigger as superseded."""
        self._generation += 1

    async def run(self, work: Callable[[], Awaitable[T]]) -> bool:
        """Run ``work`` as a new trigger; publish its result if still current.

        Returns:
            True if the result was published, False if it was discarded.
        """
        self._generation += 1
        generation = self._generation
        result = await work()
        if generation != self._generation:
            logger.debug(
                "stale_result_discarded",
                concern=self._name,
                generation=generation,
                latest=self._generation,
            )
            return False
        self._publish(result)
        return True


class RefreshScheduler:
    """Keeps quote, history, stats and balances current for one subject.

    The subject is a ChainContext (chain, market, account). Selectors
    (timeframe, chart mode) are written only through explicit calls.

    Args:
        quote_engine: Produces trade quotes.
        history: Builds price series.
        stats: Reads market stats and balances.
        settings: Polling intervals.
    """

    def __init__(
        self,
        quote_engine: QuoteEngine,
        history: HistoryAggregator,
        stats: MarketStatsService,
        settings: HistorySettings | None = None,
    ) -> None:
        self._quote_engine = quote_engine
        self._history = history
        self._stats = stats
        self._settings = settings or HistorySettings()

        self._ctx: ChainContext | None = None
        self._timeframe = Timeframe.HOUR
        self._mode = ChartMode.LINE
        self._running = False
        self._loops: list[asyncio.Task[None]] = []
        self._triggers: set[asyncio.Task[Any]] = set()

        self.quote: TradeQuote | None = None
        self.history: list[PricePoint] | list[Candle] = []
        self.stats: MarketStats | None = None
        self.balances: BalanceSnapshot | None = None

        self._quote_flight: SingleFlight[TradeQuote | None] = SingleFlight(
            "quote", self._set_quote
        )
        self._history_flight: SingleFlight[list[PricePoint] | list[Candle]] = SingleFlight(
            "history", self._set_history
        )
        self._stats_flight: SingleFlight[MarketStats] = SingleFlight("stats", self._set_stats)
        self._balance_flight: SingleFlight[BalanceSnapshot] = SingleFlight(
            "balances", self._set_balances
        )

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    @property
    def subject(self) -> ChainContext | None:
        return self._ctx

    @property
    def timeframe(self) -> Timeframe:
        return self._timeframe

    @property
    def mode(self) -> ChartMode:
        return self._mode

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, ctx: ChainContext) -> None:
        """Begin periodic refreshes for ``ctx``."""
        if self._running:
            logger.warning("refresh_scheduler_already_running", market=ctx.market)
            return
        self._ctx = ctx
        self._running = True
        self._loops = [
            asyncio.create_task(
                self._periodic("history", self._settings.refresh_interval, self.refresh_history)
            ),
            asyncio.create_task(
                self._periodic("stats", self._settings.stats_interval, self.refresh_stats)
            ),
        ]
        if ctx.account is not None:
            self._loops.append(
                asyncio.create_task(
                    self._periodic(
                        "balances", self._settings.balance_interval, self.refresh_balances
                    )
                )
            )
        logger.info(
            "refresh_scheduler_started",
            market=ctx.market,
            chain_id=ctx.chain_id,
            loops=len(self._loops),
        )

    async def stop(self) -> None:
        """Cancel all timers and discard every in-flight result."""
        self._running = False
        for task in self._loops:
            task.cancel()
        for task in self._loops:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loops = []
        self._invalidate_all()
        logger.info("refresh_scheduler_stopped")

    async def set_subject(self, ctx: ChainContext) -> None:
        """Switch to a new subject: stop timers, clear state, restart."""
        await self.stop()
        self.quote = None
        self.history = []
        self.stats = None
        self.balances = None
        await self.start(ctx)

    # ──────────────────────────────────────────────
    # Triggers
    # ──────────────────────────────────────────────

    def request_quote(
        self, direction: TradeDirection, amount: Decimal
    ) -> asyncio.Task[TradeQuote | None]:
        """Trigger a quote for a new amount/direction without awaiting it."""
        return self._spawn(self.refresh_quote(direction, amount))

    async def refresh_quote(self, direction: TradeDirection, amount: Decimal) -> TradeQuote | None:
        """Quote ``amount`` and publish it if no newer quote trigger arrived.

        Returns:
            The currently visible quote after this trigger settles.
        """
        ctx = self._require_subject()
        await self._quote_flight.run(lambda: self._quote_engine.quote(ctx, direction, amount))
        return self.quote

    def set_timeframe(
        self, timeframe: Timeframe, mode: ChartMode | None = None
    ) -> asyncio.Task[None]:
        """Change the chart selectors and trigger a history rebuild."""
        self._timeframe = timeframe
        if mode is not None:
            self._mode = mode
        return self._spawn(self.refresh_history())

    async def refresh_history(self) -> None:
        ctx = self._require_subject()
        timeframe, mode = self._timeframe, self._mode
        await self._history_flight.run(lambda: self._history.history(ctx, timeframe, mode))

    async def refresh_stats(self) -> None:
        ctx = self._require_subject()
        await self._stats_flight.run(lambda: self._stats.snapshot(ctx))

    async def refresh_balances(self) -> None:
        ctx = self._require_subject()
        if ctx.account is None:
            return
        await self._balance_flight.run(lambda: self._stats.balances(ctx))

    async def refresh_after_trade(self) -> None:
        """Refresh balances and the chart once a trade settles."""
        await asyncio.gather(self.refresh_balances(), self.refresh_history())

    # ──────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────

    def _require_subject(self) -> ChainContext:
        if self._ctx is None:
            raise RuntimeError("RefreshScheduler has no subject; call start() first")
        return self._ctx

    def _spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        task = asyncio.create_task(coro)
        self._triggers.add(task)
        task.add_done_callback(self._triggers.discard)
        return task

    def _invalidate_all(self) -> None:
        for flight in (
            self._quote_flight,
            self._history_flight,
            self._stats_flight,
            self._balance_flight,
        ):
            flight.invalidate()

    async def _periodic(
        self, name: str, interval: float, refresh: Callable[[], Awaitable[None]]
    ) -> None:
        while self._running:
            try:
                await refresh()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("periodic_refresh_error", concern=name, exc_info=True)
            if self._running:
                await asyncio.sleep(interval)

    def _set_quote(self, quote: TradeQuote | None) -> None:
        self.quote = quote

    def _set_history(self, series: list[PricePoint] | list[Candle]) -> None:
        self.history = series

    def _set_stats(self, stats: MarketStats) -> None:
        self.stats = stats

    def _set_balances(self, balances: BalanceSnapshot) -> None:
        self.balances = balances
