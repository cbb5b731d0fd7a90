"""Core utilities and configuration."""

from coinledger.core.config import (
    get_settings,
    load_app_config,
    load_price_table,
    load_toml,
)
from coinledger.core.logging import setup_logging

__all__ = [
    "get_settings",
    "load_app_config",
    "load_price_table",
    "load_toml",
    "setup_logging",
]
