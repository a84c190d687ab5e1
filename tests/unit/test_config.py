"""Tests for MarketConfig — env-driven settings."""

from __future__ import annotations

from pathlib import Path

from closelake.config import DEFAULT_MARKETPLACE_ACCOUNT, MarketConfig


class TestMarketConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CLOSELAKE_ENVIRONMENT", raising=False)
        config = MarketConfig(_env_file=None)
        assert config.environment == "development"
        assert config.log_level == "INFO"
        assert config.debug is False
        assert config.marketplace_account == DEFAULT_MARKETPLACE_ACCOUNT

    def test_default_paths(self):
        config = MarketConfig(_env_file=None, journal_path=Path(".closelake/journal.db"))
        assert config.journal_path == Path(".closelake/journal.db")
        assert config.state_path == Path(".closelake/state.json")

    def test_is_production(self):
        assert MarketConfig(environment="production").is_production is True
        assert MarketConfig(environment="staging").is_production is False

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CLOSELAKE_MARKETPLACE_ACCOUNT", "0xmarket")
        monkeypatch.setenv("CLOSELAKE_CURRENCY_DECIMALS", "2")
        config = MarketConfig(_env_file=None)
        assert config.marketplace_account == "0xmarket"
        assert config.currency_decimals == 2


class TestFormatAmount:
    def test_fractional(self):
        config = MarketConfig(currency_decimals=2, currency_symbol="USD")
        assert config.format_amount(12345) == "123.45 USD"

    def test_trailing_zeros_trimmed(self):
        config = MarketConfig(currency_decimals=2, currency_symbol="USD")
        assert config.format_amount(12300) == "123 USD"
        assert config.format_amount(12310) == "123.1 USD"

    def test_wei(self):
        config = MarketConfig(currency_decimals=18, currency_symbol="ETH")
        assert config.format_amount(10**17) == "0.1 ETH"
        assert config.format_amount(1) == "0.000000000000000001 ETH"

    def test_no_decimals(self):
        config = MarketConfig(currency_decimals=0, currency_symbol="WEI")
        assert config.format_amount(100) == "100 WEI"

    def test_negative(self):
        config = MarketConfig(currency_decimals=2, currency_symbol="USD")
        assert config.format_amount(-150) == "-1.5 USD"
