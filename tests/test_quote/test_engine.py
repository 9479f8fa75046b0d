"""Tests for QuoteEngine primary/fallback quoting and budget sizing."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from curvetrade.chain.reader import ChainReader
from curvetrade.config import QuoteSettings
from curvetrade.exceptions import ChainUnavailable
from curvetrade.models import ChainContext, QuoteSource, TradeDirection
from curvetrade.quote.engine import QuoteEngine, compute_price_impact
from curvetrade.units import to_wei

WEI = 10**18
MARKET = "0x1111111111111111111111111111111111111111"


@pytest.fixture
def reader() -> AsyncMock:
    reader = AsyncMock(spec=ChainReader)
    reader.read_current_price.return_value = WEI  # 1 native per token
    return reader


@pytest.fixture
def engine(reader) -> QuoteEngine:
    return QuoteEngine(reader, QuoteSettings())


@pytest.fixture
def ctx() -> ChainContext:
    return ChainContext(chain_id=16602, market=MARKET)


# ---------------------------------------------------------------------------
# Primary path
# ---------------------------------------------------------------------------


class TestPrimaryQuote:
    @pytest.mark.asyncio
    async def test_buy_uses_contract_cost(self, engine, reader, ctx):
        reader.read_buy_cost.return_value = 10 * WEI + WEI // 2

        quote = await engine.quote(ctx, TradeDirection.BUY, Decimal("10"))

        assert quote is not None
        assert quote.source == QuoteSource.PRIMARY
        assert quote.cost_or_proceeds == 10 * WEI + WEI // 2
        assert quote.price_impact_percent == pytest.approx(5.0)
        reader.read_buy_cost.assert_awaited_once_with(MARKET, 10 * WEI)

    @pytest.mark.asyncio
    async def test_sell_uses_contract_proceeds(self, engine, reader, ctx):
        reader.read_sell_proceeds.return_value = 9 * WEI + WEI // 2

        quote = await engine.quote(ctx, TradeDirection.SELL, Decimal("10"))

        assert quote.source == QuoteSource.PRIMARY
        assert quote.direction == TradeDirection.SELL
        assert quote.price_impact_percent == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_zero_current_price_gives_zero_impact(self, engine, reader, ctx):
        reader.read_current_price.return_value = 0
        reader.read_buy_cost.return_value = WEI

        quote = await engine.quote(ctx, TradeDirection.BUY, Decimal("1"))

        assert quote.source == QuoteSource.PRIMARY
        assert quote.price_impact_percent == 0.0

    @pytest.mark.asyncio
    async def test_non_positive_amount_produces_no_quote(self, engine, reader, ctx):
        assert await engine.quote(ctx, TradeDirection.BUY, Decimal("0")) is None
        assert await engine.quote(ctx, TradeDirection.SELL, Decimal("-1")) is None
        reader.read_current_price.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_amount_below_one_wei_produces_no_quote(self, engine, reader, ctx):
        quote = await engine.quote(ctx, TradeDirection.BUY, Decimal("0.0000000000000000001"))

        assert quote is None
        reader.read_buy_cost.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_market_produces_no_quote(self, engine, reader):
        quote = await engine.quote(ChainContext(chain_id=1, market=""), TradeDirection.BUY, Decimal("1"))
        assert quote is None
        reader.read_buy_cost.assert_not_awaited()


# ---------------------------------------------------------------------------
# Fallback path
# ---------------------------------------------------------------------------


class TestFallbackQuote:
    @pytest.mark.asyncio
    async def test_contract_failure_falls_back(self, engine, reader, ctx):
        reader.read_buy_cost.side_effect = ChainUnavailable("rpc down")

        quote = await engine.quote(ctx, TradeDirection.BUY, Decimal("10"))

        assert quote.source == QuoteSource.FALLBACK
        assert quote.cost_or_proceeds == 10 * WEI + WEI // 2
        assert quote.price_impact_percent == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_implausible_total_falls_back(self, engine, reader, ctx):
        reader.read_buy_cost.return_value = 10**30  # far above the ceiling

        quote = await engine.quote(ctx, TradeDirection.BUY, Decimal("10"))

        assert quote.source == QuoteSource.FALLBACK
        assert quote.cost_or_proceeds <= to_wei(QuoteSettings().max_total_native)

    @pytest.mark.asyncio
    async def test_micro_price_buy(self, engine, reader, ctx):
        """Price 0.00001 with a failing cost read: impact 10 and cost = amount * price."""
        reader.read_current_price.return_value = 10**13
        reader.read_buy_cost.side_effect = ChainUnavailable("execution reverted")

        quote = await engine.quote(ctx, TradeDirection.BUY, Decimal("1"))

        assert quote.source == QuoteSource.FALLBACK
        assert quote.price_impact_percent == 10.0
        assert quote.cost_or_proceeds == 10**13

    @pytest.mark.asyncio
    async def test_unseeded_buy_cost_is_positive(self, engine, reader, ctx):
        reader.read_current_price.return_value = 0
        reader.read_buy_cost.side_effect = ChainUnavailable("rpc down")

        quote = await engine.quote(ctx, TradeDirection.BUY, Decimal("100"))

        assert quote.cost_or_proceeds > 0
        assert quote.cost_or_proceeds == to_wei(QuoteSettings().seed_buy_cost)

    @pytest.mark.asyncio
    async def test_sell_floor_applies(self, engine, reader, ctx):
        reader.read_sell_proceeds.side_effect = ChainUnavailable("rpc down")

        quote = await engine.quote(ctx, TradeDirection.SELL, Decimal("100"))

        assert quote.cost_or_proceeds == 70 * WEI
        assert quote.price_impact_percent == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_both_paths_down_returns_none(self, engine, reader, ctx):
        reader.read_current_price.side_effect = ChainUnavailable("rpc down")
        reader.read_buy_cost.side_effect = ChainUnavailable("rpc down")

        assert await engine.quote(ctx, TradeDirection.BUY, Decimal("1")) is None


class TestComputePriceImpact:
    def test_buy_above_price(self):
        impact = compute_price_impact(TradeDirection.BUY, Decimal("2"), Decimal("2.2"), Decimal("1"))
        assert impact == pytest.approx(10.0)

    def test_buy_below_price_clamped_to_zero(self):
        impact = compute_price_impact(TradeDirection.BUY, Decimal("2"), Decimal("1"), Decimal("1"))
        assert impact == 0.0

    def test_sell_total_loss_is_hundred(self):
        impact = compute_price_impact(TradeDirection.SELL, Decimal("2"), Decimal("0"), Decimal("1"))
        assert impact == 100.0


# ---------------------------------------------------------------------------
# Budget sizing
# ---------------------------------------------------------------------------


class TestSizeForBudget:
    @pytest.mark.asyncio
    async def test_finds_amount_within_tolerance(self, engine, reader, ctx):
        reader.read_current_price.return_value = WEI // 1000
        reader.read_buy_cost.side_effect = lambda market, amount: amount // 1000

        quote = await engine.size_for_budget(ctx, WEI)

        assert quote is not None
        assert quote.direction == TradeDirection.BUY
        assert quote.source == QuoteSource.PRIMARY
        assert WEI * 99 // 100 <= quote.cost_or_proceeds <= WEI
        assert reader.read_buy_cost.await_count <= QuoteSettings().budget_search_iterations

    @pytest.mark.asyncio
    async def test_unaffordable_returns_none(self, engine, reader, ctx):
        reader.read_current_price.return_value = WEI
        reader.read_buy_cost.return_value = 10**30

        assert await engine.size_for_budget(ctx, WEI) is None

    @pytest.mark.asyncio
    async def test_unseeded_curve_returns_none(self, engine, reader, ctx):
        reader.read_current_price.return_value = 0

        assert await engine.size_for_budget(ctx, WEI) is None
        reader.read_buy_cost.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_budget_below_one_token_wei_returns_none(self, engine, reader, ctx):
        """A budget too small to buy a single wei of token never yields a zero-amount quote."""
        reader.read_current_price.return_value = 10**30

        assert await engine.size_for_budget(ctx, 1) is None
        reader.read_buy_cost.assert_not_awaited()
