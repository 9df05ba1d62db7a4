"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from coffee_sentinel.core.exceptions import ConfigError
from coffee_sentinel.core.models import Environment, StorageBackend

DEFAULT_SOURCE_URL = (
    "https://federaciondecafeteros.org/app/uploads/2025/01/"
    "Precios-area-y-produccion-de-cafe-2025.xlsx"
)


class SourceConfig(BaseModel):
    """Where the price workbook lives and how to read it."""

    model_config = ConfigDict(frozen=True)

    url: str = DEFAULT_SOURCE_URL
    request_timeout: int = 30
    user_agent: str = "coffee-sentinel/0.1"
    sheet_markers: list[str] = ["Precio Interno Diario", "Diario"]
    fallback_sheet_index: int = 1
    header_scan_rows: int = 20
    max_future_days: int = 7

    @field_validator("url")
    @classmethod
    def url_must_be_http(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must use http or https")
        return v

    @field_validator("sheet_markers")
    @classmethod
    def markers_not_empty(cls, v: list[str]) -> list[str]:
        if not v or not all(v):
            raise ValueError("sheet_markers must contain at least one non-empty marker")
        return v

    @field_validator("fallback_sheet_index", "max_future_days")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("header_scan_rows", "request_timeout")
    @classmethod
    def positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v


class StorageConfig(BaseModel):
    """Storage backend configuration."""

    model_config = ConfigDict(frozen=True)

    backend: StorageBackend = StorageBackend.SQLITE
    sqlite_path: str = "./data/coffee_sentinel.db"


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8000
    api_key: str | None = None
    environment: Environment = Environment.DEVELOPMENT
    production_origin: str | None = None

    @model_validator(mode="after")
    def origin_required_in_production(self) -> APIConfig:
        if self.environment == Environment.PRODUCTION and not self.production_origin:
            raise ValueError(
                "production_origin is required when environment is 'production'"
            )
        return self

    @property
    def allowed_origins(self) -> list[str]:
        if self.environment == Environment.PRODUCTION:
            return [self.production_origin]
        return ["*"]


class SentinelConfig(BaseModel):
    """Root configuration for the entire coffee-sentinel system."""

    model_config = ConfigDict(frozen=True)

    source: SourceConfig = SourceConfig()
    storage: StorageConfig = StorageConfig()
    api: APIConfig = APIConfig()


def load_config(
    config_path: str | None = None,
    env_prefix: str = "COFFEE_SENTINEL_",
) -> SentinelConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (COFFEE_SENTINEL_SOURCE__URL, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        COFFEE_SENTINEL_SOURCE__HEADER_SCAN_ROWS=30  ->  source.header_scan_rows = 30
    """
    try:
        yaml_path = _resolve_config_path(config_path)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        return SentinelConfig.model_validate(merged)
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

    env_path = os.environ.get("COFFEE_SENTINEL_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from COFFEE_SENTINEL_CONFIG not found: {env_path}",
                context={"field": "COFFEE_SENTINEL_CONFIG", "value": env_path},
            )
        return p

    default = Path("coffee-sentinel.yml")
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

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        # Skip the CONFIG env var itself
        if parts == ["config"]:
            continue

        cast_value = _auto_cast(value)

        target = result
        for part in parts[:-1]:
            if part not in target or not isinstance(target[part], dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = cast_value

    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
