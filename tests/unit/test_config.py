"""Unit tests for configuration models and loading."""

from decimal import Decimal
from pathlib import Path

import pytest
from pydantic import ValidationError

from coinledger.core.config import (
    get_settings,
    load_app_config,
    load_price_table,
    load_toml,
    reset_settings,
)
from coinledger.models.config import AppConfig, CoinGeckoConfig


class TestCoinGeckoConfig:
    """Tests for CoinGeckoConfig."""

    def test_default_config(self) -> None:
        """Test default CoinGecko configuration."""
        config = CoinGeckoConfig()
        assert config.base_url == "https://api.coingecko.com/api/v3"
        assert config.api_key_env == "COINAPI_KEY"
        assert config.timeout == 10.0

    def test_get_api_key_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test getting API key from environment."""
        monkeypatch.setenv("COINAPI_KEY", "demo_key_123")
        assert CoinGeckoConfig().get_api_key() == "demo_key_123"

    def test_get_api_key_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test getting API key when not set."""
        monkeypatch.delenv("COINAPI_KEY", raising=False)
        assert CoinGeckoConfig().get_api_key() is None


class TestAppConfig:
    """Tests for AppConfig."""

    def test_default_config(self) -> None:
        """Test default application configuration."""
        config = AppConfig()
        assert config.data_dir == Path.home() / ".coinledger"
        assert config.database_path == Path.home() / ".coinledger" / "coinledger.db"
        assert config.fee_rate == Decimal("0.01")
        assert config.history_retention_days == 365
        assert config.price_poll_interval == 30

    def test_custom_db_path(self) -> None:
        """Test custom database path."""
        config = AppConfig(db_path=Path("/custom/path/db.sqlite"))
        assert config.database_path == Path("/custom/path/db.sqlite")

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that COINLEDGER_ env prefix works."""
        monkeypatch.setenv("COINLEDGER_DATA_DIR", "/tmp/coinledger_test")
        monkeypatch.setenv("COINLEDGER_FEE_RATE", "0.0025")
        config = AppConfig()
        assert config.data_dir == Path("/tmp/coinledger_test")
        assert config.fee_rate == Decimal("0.0025")

    def test_nested_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested settings use a double underscore."""
        monkeypatch.setenv("COINLEDGER_COINGECKO__TIMEOUT", "3.5")
        assert AppConfig().coingecko.timeout == 3.5

    def test_invalid_values(self) -> None:
        """Out-of-range settings are rejected."""
        with pytest.raises(ValidationError):
            AppConfig(fee_rate=Decimal("1.5"))
        with pytest.raises(ValidationError):
            AppConfig(history_retention_days=0)

    def test_ensure_data_dir(self, tmp_path: Path) -> None:
        config = AppConfig(data_dir=tmp_path / "data")
        assert config.ensure_data_dir().is_dir()


class TestLoaders:
    """Tests for TOML loading and the settings singleton."""

    def test_load_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "x.toml"
        path.write_text('key = "value"\n')
        assert load_toml(path) == {"key": "value"}

    def test_load_toml_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_toml(tmp_path / "missing.toml")

    def test_load_price_table(self, tmp_path: Path) -> None:
        """Entries become Decimal quotes keyed by uppercase symbol."""
        path = tmp_path / "prices.toml"
        path.write_text(
            "[btc]\n"
            'name = "Bitcoin"\n'
            'price = "43250.75"\n'
            "change_24h_pct = 4.47\n"
            "market_cap = 845123456789\n"
            "\n"
            "[ETH]\n"
            "price = 2678.45\n"
        )

        table = load_price_table(path)

        assert set(table) == {"BTC", "ETH"}
        assert table["BTC"].price == Decimal("43250.75")
        assert table["BTC"].market_cap == Decimal("845123456789")
        assert table["ETH"].price == Decimal("2678.45")
        assert table["ETH"].name == ""

    def test_load_app_config(self) -> None:
        assert isinstance(load_app_config(), AppConfig)

    def test_settings_singleton(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Settings are cached until reset."""
        reset_settings()
        monkeypatch.setenv("COINLEDGER_PRICE_POLL_INTERVAL", "5")
        try:
            first = get_settings()
            assert first.price_poll_interval == 5
            assert get_settings() is first

            reset_settings()
            assert get_settings() is not first
        finally:
            reset_settings()
