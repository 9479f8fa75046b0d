"""Tests for settings defaults and environment overrides."""

from decimal import Decimal

from curvetrade.config import ChainSettings, ExecutionSettings, HistorySettings, QuoteSettings
from curvetrade.models import Timeframe


class TestDefaults:
    def test_chain_defaults(self):
        settings = ChainSettings(_env_file=None)
        assert settings.chain_id == 16602
        assert settings.private_key.get_secret_value() == ""

    def test_fallback_policy(self):
        settings = QuoteSettings()
        assert settings.sell_floor_ratio == Decimal("0.7")
        assert settings.micro_price_impact_percent == 10.0
        assert settings.seed_buy_cost > 0

    def test_fee_reserve(self):
        assert ExecutionSettings().fee_reserve_ratio == Decimal("0.98")


class TestLookback:
    def test_each_timeframe_mapped(self):
        settings = HistorySettings()
        lookbacks = [settings.lookback_blocks(tf) for tf in Timeframe]
        assert lookbacks == sorted(lookbacks)
        assert settings.lookback_blocks(Timeframe.HOUR) == 1_200


class TestEnvOverrides:
    def test_chain_env(self, monkeypatch):
        monkeypatch.setenv("CHAIN_CHAIN_ID", "1")
        monkeypatch.setenv("CHAIN_MARKET_ADDRESS", "0xabc")
        monkeypatch.setenv("CHAIN_PRIVATE_KEY", "0xsecret")

        settings = ChainSettings()

        assert settings.chain_id == 1
        assert settings.market_address == "0xabc"
        assert "0xsecret" not in repr(settings)

    def test_history_env(self, monkeypatch):
        monkeypatch.setenv("HISTORY_BUCKET_COUNT", "30")
        assert HistorySettings().bucket_count == 30
