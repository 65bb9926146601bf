"""
Configuration loading and management for the IBKR to Ghostfolio converter.

This module handles loading converter settings from an optional YAML file,
a .env file and the environment, and validation of configuration parameters.
"""

import os
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import dotenv_values

from ibkr_ghostfolio.models import ConverterConfig


DEFAULT_ENV_FILE = Path(".env")

ACCOUNT_ID_ENV = "GHOSTFOLIO_ACCOUNT_ID"
OVERRIDES_FILE_ENV = "ISIN_OVERRIDES_FILE"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


def load_config(
    config_path: str | Path | None = None,
    env_file: str | Path | None = None,
) -> ConverterConfig:
    """
    Load converter settings from multiple sources with priority.

    Sources are checked in this order (later sources override earlier):
    1. Built-in defaults
    2. YAML config file (if given)
    3. .env file in the working directory
    4. Environment variables

    Args:
        config_path: Path to a YAML config file
        env_file: Path to .env file (defaults to .env in the working directory)

    Returns:
        ConverterConfig with validated settings

    Raises:
        ConfigurationError: If the YAML file cannot be loaded or is invalid

    Example:
        >>> config = load_config("ibkr.yaml")
        >>> config.account_id
    """
    raw: dict[str, Any] = {}

    # 1. YAML config file
    if config_path is not None:
        raw.update(_load_yaml(Path(config_path)))

    # 2. .env file
    env_path = Path(env_file) if env_file else DEFAULT_ENV_FILE
    if env_path.exists():
        env_values = dotenv_values(env_path)
        raw.update(_from_env(env_values))

    # 3. Environment variables (highest priority)
    raw.update(_from_env(os.environ))

    return _parse_config(raw)


def _load_yaml(config_path: Path) -> dict[str, Any]:
    """Read the YAML config file."""
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if not isinstance(raw_config, dict):
        raise ConfigurationError("Configuration file must contain a mapping")

    return raw_config


def _from_env(values: Any) -> dict[str, Any]:
    """Pick converter settings out of environment-style key/value pairs."""
    result: dict[str, Any] = {}
    if values.get(ACCOUNT_ID_ENV):
        result["account_id"] = values[ACCOUNT_ID_ENV]
    if values.get(OVERRIDES_FILE_ENV):
        result["overrides_file"] = values[OVERRIDES_FILE_ENV]
    return result


def _parse_config(raw: dict[str, Any]) -> ConverterConfig:
    """
    Parse and validate a raw configuration dictionary into ConverterConfig.

    Args:
        raw: Merged settings

    Returns:
        Validated ConverterConfig

    Raises:
        ConfigurationError: If a value is invalid
    """
    defaults = ConverterConfig()

    account_id = raw.get("account_id")
    if account_id is not None:
        account_id = str(account_id).strip() or None

    default_currency = str(raw.get("default_currency", defaults.default_currency)).strip()
    if not default_currency:
        raise ConfigurationError("default_currency cannot be empty")

    delimiter = str(raw.get("delimiter", defaults.delimiter))
    if len(delimiter) != 1:
        raise ConfigurationError(f"delimiter must be a single character, got {delimiter!r}")

    cache_dir = raw.get("cache_dir")

    return ConverterConfig(
        account_id=account_id,
        overrides_path=str(raw.get("overrides_file", defaults.overrides_path)),
        default_currency=default_currency,
        strict_dividend_prices=_parse_bool(
            raw.get("strict_dividend_prices", defaults.strict_dividend_prices),
            "strict_dividend_prices",
        ),
        delimiter=delimiter,
        cache_dir=str(cache_dir) if cache_dir else None,
        timezone=parse_timezone(raw.get("timezone")),
    )


def _parse_bool(value: Any, field_name: str) -> bool:
    """
    Parse a boolean value.

    Raises:
        ConfigurationError: If the value is not a recognizable boolean
    """
    if isinstance(value, bool):
        return value

    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False

    raise ConfigurationError(f"Invalid boolean value for {field_name}: {value}")


def parse_timezone(value: Optional[str]) -> Optional[ZoneInfo]:
    """
    Parse an IANA timezone name.

    Args:
        value: Timezone name (e.g. "Europe/London"), or None for local time

    Raises:
        ConfigurationError: If the timezone is unknown
    """
    if value is None or str(value).strip() == "":
        return None

    try:
        return ZoneInfo(str(value).strip())
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError(f"Unknown timezone: {value}")


def write_config(config: ConverterConfig, output_path: str | Path) -> None:
    """
    Write a ConverterConfig to a YAML file.

    Args:
        config: The configuration to write
        output_path: Path to write the YAML file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = {
        "account_id": config.account_id,
        "overrides_file": config.overrides_path,
        "default_currency": config.default_currency,
        "strict_dividend_prices": config.strict_dividend_prices,
        "delimiter": config.delimiter,
        "cache_dir": config.cache_dir,
        "timezone": str(config.timezone) if config.timezone else None,
    }

    with open(output_path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
