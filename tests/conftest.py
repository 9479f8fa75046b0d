"""Shared test fixtures for curvetrade."""

from unittest.mock import AsyncMock

import pytest

from curvetrade.chain.reader import ChainReader
from curvetrade.config import (
    AppSettings,
    ChainSettings,
    ExecutionSettings,
    HistorySettings,
    QuoteSettings,
)
from curvetrade.models import ChainContext, TokenStats

MARKET = "0x1111111111111111111111111111111111111111"
ACCOUNT = "0x2222222222222222222222222222222222222222"
WEI = 10**18


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (no delays, dummy market)."""
    return AppSettings(
        log_level="DEBUG",
        chain=ChainSettings(
            rpc_url="http://localhost:8545",
            market_address=MARKET,
        ),
        quote=QuoteSettings(),
        history=HistorySettings(),
        execution=ExecutionSettings(
            post_simulation_delay=0.0,
            receipt_grace_seconds=0.0,
        ),
    )


@pytest.fixture
def ctx() -> ChainContext:
    """Context with a connected account."""
    return ChainContext(chain_id=16602, market=MARKET, account=ACCOUNT)


@pytest.fixture
def mock_reader() -> AsyncMock:
    """ChainReader fake: price 0.001 native, 1000 tokens held, 10 native balance."""
    reader = AsyncMock(spec=ChainReader)
    reader.read_current_price.return_value = WEI // 1000
    reader.read_buy_cost.return_value = WEI // 1000
    reader.read_sell_proceeds.return_value = WEI // 1000
    reader.read_balance.return_value = 10 * WEI
    reader.read_token_balance.return_value = 1000 * WEI
    reader.read_token_stats.return_value = TokenStats(
        total_supply=1_000_000 * WEI,
        total_sold=1000 * WEI,
        current_price=WEI // 1000,
        market_cap=1000 * WEI,
        holder_count=12,
        creator_fees=WEI // 100,
    )
    reader.get_logs.return_value = []
    reader.current_block_number.return_value = 10_000
    reader.get_block_timestamp.return_value = 1_700_000_000
    reader.estimate_gas.return_value = 100_000
    reader.write_contract.return_value = "0xabc"
    return reader
