"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from stockfeed.core.exceptions import ConfigError
from stockfeed.core.models import Exchange

InterpolationMethod = Literal["flat", "linear"]


class FeedConfig(BaseModel):
    """Settings shared by the remote HTTP feeds."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    base_url: str | None = None
    timeout_seconds: float = 15.0
    rate_limit: float = 2.0
    failure_threshold: int = 3
    cooldown_seconds: float = 300.0

    @field_validator("timeout_seconds", "rate_limit")
    @classmethod
    def positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("failure_threshold")
    @classmethod
    def threshold_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("failure_threshold must be >= 1")
        return v


class FeedsConfig(BaseModel):
    """Per-feed configuration."""

    model_config = ConfigDict(frozen=True)

    yahoo: FeedConfig = FeedConfig()
    stooq: FeedConfig = FeedConfig()


class StorageConfig(BaseModel):
    """Series cache configuration."""

    model_config = ConfigDict(frozen=True)

    sqlite_path: str = "./data/stockfeed.db"


class CleaningConfig(BaseModel):
    """Plausibility bounds applied by the cleaner."""

    model_config = ConfigDict(frozen=True)

    min_year: int = 1800
    max_year_ahead: int = 1

    @field_validator("max_year_ahead")
    @classmethod
    def ahead_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_year_ahead must be >= 0")
        return v


class AcquisitionConfig(BaseModel):
    """Orchestrator behaviour.

    ``refresh`` is the process-wide switch for remote fetching. When off,
    acquisitions are served from the cache only.
    """

    model_config = ConfigDict(frozen=True)

    refresh: bool = True
    clean: bool = True
    interpolation: InterpolationMethod = "flat"
    providers: list[str] = ["yahoo", "stooq"]

    @field_validator("providers", mode="before")
    @classmethod
    def split_providers(cls, v: object) -> object:
        if isinstance(v, str):
            return [p for p in v.split(",") if p.strip()]
        return v

    @field_validator("providers")
    @classmethod
    def providers_unique(cls, v: list[str]) -> list[str]:
        names = [p.strip().lower() for p in v]
        if len(set(names)) != len(names):
            raise ValueError(f"providers must not repeat: {v}")
        return names


class RegistryConfig(BaseModel):
    """Instrument registry configuration."""

    model_config = ConfigDict(frozen=True)

    instruments_path: str | None = None
    default_exchange: Exchange = Exchange.NA
    default_source: str = "yahoo"


class StockfeedConfig(BaseModel):
    """Root configuration for stockfeed."""

    model_config = ConfigDict(frozen=True)

    acquisition: AcquisitionConfig = AcquisitionConfig()
    cleaning: CleaningConfig = CleaningConfig()
    storage: StorageConfig = StorageConfig()
    feeds: FeedsConfig = FeedsConfig()
    registry: RegistryConfig = RegistryConfig()


def load_config(
    config_path: str | None = None,
    env_prefix: str = "STOCKFEED_",
) -> StockfeedConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (STOCKFEED_ACQUISITION__REFRESH, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        STOCKFEED_FEEDS__YAHOO__TIMEOUT_SECONDS=5  ->  feeds.yahoo.timeout_seconds = 5
    """
    try:
        yaml_path = _resolve_config_path(config_path)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        return StockfeedConfig.model_validate(merged)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    """Determine config file path."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_path = os.environ.get("STOCKFEED_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from STOCKFEED_CONFIG not found: {env_path}",
                context={"field": "STOCKFEED_CONFIG", "value": env_path},
            )
        return p

    default = Path("stockfeed.yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    """Load and parse YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                context={"field": "config_file", "value": str(path)},
            )
        return data
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels. Comma-separated values
    become lists; "true"/"false" become bools; numeric strings become numbers.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        # STOCKFEED_CONFIG names the file, not a setting
        if parts == ["config"]:
            continue

        target = result
        for part in parts[:-1]:
            existing = target.get(part)
            if not isinstance(existing, dict):
                existing = {}
                target[part] = existing
            target = existing
        target[parts[-1]] = _auto_cast(value)

    return result


def _auto_cast(value: str) -> str | int | float | bool | list[str]:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    if "," in value:
        return [v.strip() for v in value.split(",") if v.strip()]
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
