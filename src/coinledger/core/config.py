"""Configuration loading utilities."""

from __future__ import annotations

import tomllib
from decimal import Decimal
from pathlib import Path
from typing import Any

from coinledger.market.models import PriceQuote
from coinledger.models.config import AppConfig
from coinledger.models.position import normalize_symbol


def load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents as a dictionary.

    Args:
        path: Path to the TOML file

    Returns:
        Dictionary with TOML contents

    Raises:
        FileNotFoundError: If file doesn't exist
        tomllib.TOMLDecodeError: If file is invalid TOML
    """
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_price_table(path: Path) -> dict[str, PriceQuote]:
    """Load a static price table from a TOML file.

    Prices are read as strings or numbers and stored as Decimal.

    Example TOML format:
        [BTC]
        name = "Bitcoin"
        price = "43250.75"
        change_24h_pct = 4.47

        [ETH]
        price = 2678.45
    """
    data = load_toml(path)
    table: dict[str, PriceQuote] = {}
    for symbol, entry in data.items():
        sym = normalize_symbol(symbol)
        table[sym] = PriceQuote(
            symbol=sym,
            name=entry.get("name", ""),
            price=Decimal(str(entry["price"])),
            change_24h_pct=entry.get("change_24h_pct"),
            market_cap=Decimal(str(entry["market_cap"])) if "market_cap" in entry else None,
            volume_24h=Decimal(str(entry["volume_24h"])) if "volume_24h" in entry else None,
        )
    return table


def load_app_config() -> AppConfig:
    """Load application configuration from environment variables.

    Returns:
        AppConfig object with settings from environment
    """
    return AppConfig()


# Singleton settings instance
_settings: AppConfig | None = None


def get_settings() -> AppConfig:
    """Get or create the settings singleton.

    This ensures we only load settings once and reuse them.
    """
    global _settings
    if _settings is None:
        from dotenv import load_dotenv
        load_dotenv()  # Ensure .env is loaded
        _settings = AppConfig()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
