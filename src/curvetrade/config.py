"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from curvetrade.models import Timeframe


class ChainSettings(BaseSettings):
    """RPC connection, market and signing account."""

    model_config = SettingsConfigDict(env_prefix="CHAIN_")

    rpc_url: str = "https://evmrpc-testnet.0g.ai"
    chain_id: int = 16602
    market_address: str = ""
    private_key: SecretStr = SecretStr("")
    request_timeout: float = 15.0


class QuoteSettings(BaseSettings):
    """Sanity gate and local fallback curve policy.

    The fallback constants approximate a linear curve. They are not derived
    from the contract's pricing formula.
    """

    model_config = SettingsConfigDict(env_prefix="QUOTE_")

    max_total_native: Decimal = Decimal("1000000")  # sanity ceiling, native units
    seed_buy_cost: Decimal = Decimal("0.0001")  # buy cost when the curve is unseeded
    micro_price_threshold: Decimal = Decimal("0.0001")
    micro_price_impact_percent: float = 10.0
    price_slope: Decimal = Decimal("0.01")  # per-unit price delta as fraction of price
    sell_floor_ratio: Decimal = Decimal("0.7")  # min sell avg price vs current price
    budget_search_iterations: int = 10
    budget_search_tolerance: Decimal = Decimal("0.01")


class HistorySettings(BaseSettings):
    """Price history window, resolution and polling cadence."""

    model_config = SettingsConfigDict(env_prefix="HISTORY_")

    bucket_count: int = 60
    lookback_1h: int = 1_200
    lookback_4h: int = 4_800
    lookback_1d: int = 28_800
    lookback_1w: int = 201_600
    lookback_all: int = 1_000_000
    synthetic_span_ms: int = 3_600_000  # flat series when the window is empty
    refresh_interval: float = 30.0
    stats_interval: float = 30.0
    balance_interval: float = 30.0

    def lookback_blocks(self, timeframe: Timeframe) -> int:
        """Return the block-count lookback used as a proxy for ``timeframe``."""
        return {
            Timeframe.HOUR: self.lookback_1h,
            Timeframe.FOUR_HOURS: self.lookback_4h,
            Timeframe.DAY: self.lookback_1d,
            Timeframe.WEEK: self.lookback_1w,
            Timeframe.ALL: self.lookback_all,
        }[timeframe]


class ExecutionSettings(BaseSettings):
    """Trade submission and confirmation behaviour."""

    model_config = SettingsConfigDict(env_prefix="EXECUTION_")

    fee_reserve_ratio: Decimal = Decimal("0.98")  # usable share of native balance for buys
    quote_ttl_seconds: float = 30.0
    receipt_timeout: float = 180.0
    receipt_grace_seconds: float = 5.0
    post_simulation_delay: float = 1.0
    gas_buffer_ratio: Decimal = Decimal("1.2")


class MarketSettings(BaseSettings):
    """Aggregate market statistics."""

    model_config = SettingsConfigDict(env_prefix="MARKET_")

    graduation_market_cap: Decimal = Decimal("69000")  # native units


class DashboardSettings(BaseSettings):
    """HTTP surface configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    chain: ChainSettings = ChainSettings()
    quote: QuoteSettings = QuoteSettings()
    history: HistorySettings = HistorySettings()
    execution: ExecutionSettings = ExecutionSettings()
    market: MarketSettings = MarketSettings()
    dashboard: DashboardSettings = DashboardSettings()
