"""
Configuration system for PlanDelta.

Implements 12-factor config principles:
- Environment variables as primary config source
- Optional JSON or YAML config file for local development
- Risk rule thresholds and parser settings
- Per-environment profiles

Usage:
    from plandelta.config import get_config

    config = get_config()
    tags = assess_risks(node, config.risk)
    root = parse_plan(text, config.parser)
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from plandelta.diff.risk import RiskThresholds
from plandelta.exceptions import ConfigurationError
from plandelta.parser.config import ParserConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "PLANDELTA_"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Environment(str, Enum):
    """Environment profiles with different default behaviors."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """Parse environment from string, defaulting to development."""
        try:
            return cls(value.lower())
        except ValueError:
            return cls.DEVELOPMENT


class Config(BaseModel):
    """
    PlanDelta configuration.

    Loaded from environment variables and optional config file.
    """

    model_config = ConfigDict(frozen=True)

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Current environment (development/staging/production)",
    )

    risk: RiskThresholds = Field(
        default_factory=RiskThresholds,
        description="Risk rule thresholds",
    )

    parser: ParserConfig = Field(
        default_factory=ParserConfig,
        description="Plan text parser settings",
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level used by the CLI",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return level

    def config_hash(self) -> str:
        """
        Generate a short hash of the configuration.

        Two comparisons run with the same hash used the same thresholds.
        """
        config_json = json.dumps(self.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(config_json.encode()).hexdigest()[:16]


def _parse_env_int(value: str | None, default: int) -> int:
    """Parse integer from environment variable."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Could not parse integer %r, using %d", value, default)
        return default


def _parse_env_float(value: str | None, default: float) -> float:
    """Parse float from environment variable."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Could not parse number %r, using %s", value, default)
        return default


def _env(name: str) -> str | None:
    return os.environ.get(f"{ENV_PREFIX}{name}")


def load_config_from_env() -> Config:
    """
    Load configuration from environment variables.

    Variables:
    - PLANDELTA_ENVIRONMENT=production
    - PLANDELTA_LARGE_SCAN_ROWS=50000
    - PLANDELTA_NESTED_LOOP_ROWS=50000
    - PLANDELTA_HIGH_COST=25000
    - PLANDELTA_BAD_ESTIMATE_RATIO=20
    - PLANDELTA_TAB_WIDTH=8
    - PLANDELTA_MAX_NODES=10000
    - PLANDELTA_LOG_LEVEL=DEBUG

    Invalid values are logged and replaced with defaults.
    """
    defaults_risk = RiskThresholds()
    defaults_parser = ParserConfig()

    risk_kwargs: dict[str, Any] = {
        "large_scan_rows": _parse_env_int(_env("LARGE_SCAN_ROWS"), defaults_risk.large_scan_rows),
        "nested_loop_rows": _parse_env_int(_env("NESTED_LOOP_ROWS"), defaults_risk.nested_loop_rows),
        "high_cost": _parse_env_float(_env("HIGH_COST"), defaults_risk.high_cost),
        "bad_estimate_ratio": _parse_env_float(
            _env("BAD_ESTIMATE_RATIO"), defaults_risk.bad_estimate_ratio
        ),
    }
    parser_kwargs: dict[str, Any] = {
        "tab_width": _parse_env_int(_env("TAB_WIDTH"), defaults_parser.tab_width),
        "max_nodes": _parse_env_int(_env("MAX_NODES"), defaults_parser.max_nodes),
    }

    try:
        risk = RiskThresholds(**risk_kwargs)
    except ValidationError as e:
        logger.warning("Invalid risk thresholds in environment, using defaults: %s", e)
        risk = defaults_risk

    try:
        parser = ParserConfig(**parser_kwargs)
    except ValidationError as e:
        logger.warning("Invalid parser settings in environment, using defaults: %s", e)
        parser = defaults_parser

    log_level = (_env("LOG_LEVEL") or "WARNING").upper()
    if log_level not in _LOG_LEVELS:
        logger.warning("Unknown log level %r, using WARNING", log_level)
        log_level = "WARNING"

    return Config(
        environment=Environment.from_string(_env("ENVIRONMENT") or "development"),
        risk=risk,
        parser=parser,
        log_level=log_level,
    )


def _read_config_data(path: Path) -> Any:
    """Read a JSON or YAML (``.yaml``/``.yml``) config file."""
    with open(path, encoding="utf-8") as f:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(f)
        return json.load(f)


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Falls back to environment variables when the file is missing or invalid.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        data = _read_config_data(path)
        return Config(**data)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError, TypeError, ValidationError) as e:
        logger.error("Failed to load config from %s: %s", path, e)
        return load_config_from_env()


def load_config_strict(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file, raising on any problem.

    Used by the CLI ``--config`` option, where silently falling back would
    hide a typo in the file the user pointed at.

    Raises:
        ConfigurationError: If the file is missing, unreadable, or invalid.
    """
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        data = _read_config_data(path)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping (JSON object)")

    try:
        return Config(**data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"])
        raise ConfigurationError(f"Invalid config value for '{key}': {first['msg']}", config_key=key) from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. PLANDELTA_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = _env("CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
