"""Configuration models for coinledger."""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoinGeckoConfig(BaseModel):
    """CoinGecko market data API configuration.

    Attributes:
        base_url: API root URL
        api_key_env: Environment variable name for the demo API key
        timeout: Request timeout in seconds
    """

    base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="CoinGecko API root",
    )
    api_key_env: str = Field(default="COINAPI_KEY", description="Env var for API key")
    timeout: float = Field(default=10.0, description="Request timeout (seconds)", gt=0)

    def get_api_key(self) -> Optional[str]:
        """Get API key from environment."""
        return os.environ.get(self.api_key_env)


class AppConfig(BaseSettings):
    """Main application configuration.

    Loads configuration from environment variables with COINLEDGER_ prefix.

    Attributes:
        coingecko: Market data API configuration
        data_dir: Directory for data storage
        db_path: Path to SQLite database (defaults to data_dir/coinledger.db)
        fee_rate: Flat fee charged on each order's fiat notional
        history_retention_days: Trailing window of portfolio snapshots to keep
        price_poll_interval: Seconds between price refreshes
        fiat_currency: Default currency for new wallets
        price_table_path: Optional TOML file overriding the static price table
    """

    coingecko: CoinGeckoConfig = Field(default_factory=CoinGeckoConfig)
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".coinledger",
        description="Data directory"
    )
    db_path: Optional[Path] = Field(default=None, description="Database path")
    fee_rate: Decimal = Field(default=Decimal("0.01"), description="Order fee rate", ge=0, lt=1)
    history_retention_days: int = Field(default=365, description="Snapshot retention (days)", ge=1)
    price_poll_interval: int = Field(default=30, description="Price refresh interval (seconds)", ge=1)
    fiat_currency: str = Field(default="USD", description="Default wallet currency")
    price_table_path: Optional[Path] = Field(default=None, description="Static price table TOML")

    model_config = SettingsConfigDict(
        env_prefix="COINLEDGER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @property
    def database_path(self) -> Path:
        """Get the database path, defaulting to data_dir/coinledger.db."""
        return self.db_path or (self.data_dir / "coinledger.db")

    def ensure_data_dir(self) -> Path:
        """Ensure data directory exists and return its path."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return self.data_dir
