from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.assignment import Assignment
from ..models.config_models import DEFAULT_FALLBACK_RATES, DEFAULT_RATES_URL, CurrencyConfig, ImportConfig
from ..models.enums import Currency, ImportType

"""Config loader.

Responsibilities:
- Load YAML config (default config/import.yml)
- Validate against the packaged JSON schema (config_schema.json)
- Apply defaults and environment overrides
- Load the assignments list referenced by ``assignments_file``

Environment overrides (usually set through .env by the CLI):
- FINOPS_USER_ID     -> user_id
- FINOPS_RATES_URL   -> currency.refresh_url
- FINOPS_LIVE_RATES  -> currency.live_refresh ("0" disables)
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "load_config",
    "load_assignments",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema missing/unreadable, or the data violates it.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _currency_config(raw: dict[str, Any]) -> CurrencyConfig:
    fallback = dict(DEFAULT_FALLBACK_RATES)
    fallback.update({k: float(v) for k, v in (raw.get("fallback_rates") or {}).items()})
    live = raw.get("live_refresh", True)
    env_live = os.getenv("FINOPS_LIVE_RATES")
    if env_live is not None:
        live = env_live.strip() not in ("0", "false", "no")
    return CurrencyConfig(
        base=Currency.parse(raw.get("base", "USD")),
        ttl_seconds=float(raw.get("ttl_seconds", 3600)),
        refresh_url=os.getenv("FINOPS_RATES_URL") or raw.get("refresh_url", DEFAULT_RATES_URL),
        timeout_seconds=float(raw.get("timeout_seconds", 5)),
        live_refresh=bool(live),
        fallback_rates=fallback,
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    matching = data.get("matching") or {}
    parsing = data.get("parsing") or {}
    return ImportConfig(
        source_directory=data["source_directory"],
        user_id=os.getenv("FINOPS_USER_ID") or data["user_id"],
        file_types={pattern: ImportType.parse(kind) for pattern, kind in data["file_types"].items()},
        output_directory=data.get("output_directory", "./out"),
        assignments_file=data.get("assignments_file"),
        currency=_currency_config(data.get("currency") or {}),
        strict_duplicates=bool(matching.get("strict_duplicates", False)),
        default_subscription_category=parsing.get("default_subscription_category", "General"),
    )


def load_assignments(path: Path) -> list[Assignment]:
    """Read a YAML list of assignment mappings."""
    if not path.exists():
        raise ConfigError(f"assignments file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or []
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml in {path.name}: {e}") from e
    if isinstance(data, dict):
        data = data.get("assignments") or []
    if not isinstance(data, list):
        raise ConfigError(f"{path.name}: expected a list of assignments")

    assignments: list[Assignment] = []
    for index, item in enumerate(data):
        try:
            assignments.append(Assignment.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"{path.name}: invalid assignment #{index + 1}: {e}") from e
    return assignments
