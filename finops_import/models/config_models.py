from __future__ import annotations

from dataclasses import dataclass, field

from .enums import Currency, ImportType

"""Config dataclasses for the import tool.

These are the typed form of config/import.yml after schema validation and
defaulting by ``finops_import.config.loader``.
"""

DEFAULT_RATES_URL = "https://api.exchangerate-api.com/v4/latest/USD"

# 1 unit of currency -> USD (API 不通時のフォールバック)
DEFAULT_FALLBACK_RATES: dict[str, float] = {
    "USD": 1.0,
    "INR": 0.012,
    "EUR": 1.08,
    "GBP": 1.27,
    "CAD": 0.74,
    "AUD": 0.65,
    "SGD": 0.74,
}


@dataclass(frozen=True)
class CurrencyConfig:
    """Exchange rate cache settings."""
    base: Currency = Currency.USD
    ttl_seconds: float = 3600.0
    refresh_url: str = DEFAULT_RATES_URL
    timeout_seconds: float = 5.0
    live_refresh: bool = True
    fallback_rates: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_FALLBACK_RATES))


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for a directory import run."""
    source_directory: str
    user_id: str
    file_types: dict[str, ImportType]  # glob pattern -> import type (評価は定義順)
    output_directory: str = "./out"
    assignments_file: str | None = None
    currency: CurrencyConfig = field(default_factory=CurrencyConfig)
    strict_duplicates: bool = False
    default_subscription_category: str = "General"
