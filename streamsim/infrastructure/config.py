"""
Configuration loader with Pydantic validation.

Supports:
- YAML file loading
- Environment variable overrides (STREAMSIM_ prefix)
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SimulatorConfig(BaseModel):
    """Which exchange to simulate and which channels to track."""

    exchange: str = "bitmex"
    # None tracks every channel; a list restricts tracking and disables
    # state checkpoints
    channel_filter: list[str] | None = None

    @field_validator("exchange")
    @classmethod
    def validate_exchange(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("exchange must not be empty")
        return v

    @field_validator("channel_filter")
    @classmethod
    def validate_filter(cls, v: list[str] | None) -> list[str] | None:
        if v is not None and any(not ch for ch in v):
            raise ValueError("channel_filter must not contain empty channel names")
        return v


class ReplayConfig(BaseModel):
    """Replay driver parameters."""

    verify_channels: bool = False  # Cross-check channels recorded in the capture
    checkpoint_every: int = 0  # Messages between periodic checkpoints, 0 = off
    checkpoint_kind: str = "state"  # state or wire

    @field_validator("checkpoint_every")
    @classmethod
    def validate_checkpoint_every(cls, v: int) -> int:
        if v < 0:
            raise ValueError("checkpoint_every must be non-negative")
        return v

    @field_validator("checkpoint_kind")
    @classmethod
    def validate_checkpoint_kind(cls, v: str) -> str:
        if v not in ("state", "wire"):
            raise ValueError("checkpoint_kind must be 'state' or 'wire'")
        return v


class ObservabilityConfig(BaseModel):
    """Logging and metrics configuration."""

    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    metrics_enabled: bool = False
    metrics_port: int = 9090

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return v


class EnvironmentOverrides(BaseSettings):
    """
    Overrides loaded from environment variables.

    Only fields that are explicitly set take effect.
    """

    model_config = SettingsConfigDict(env_prefix="STREAMSIM_", case_sensitive=False)

    exchange: str | None = None
    log_level: str | None = None
    log_format: str | None = None


class AppConfig(BaseModel):
    """Complete application configuration."""

    config_version: str = "1.0.0"

    simulator: SimulatorConfig = Field(default_factory=SimulatorConfig)
    replay: ReplayConfig = Field(default_factory=ReplayConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @property
    def is_filtered(self) -> bool:
        return self.simulator.channel_filter is not None

    def diff_from_defaults(self) -> dict[str, Any]:
        """
        Get configuration differences from defaults.

        Useful for logging what's been customized.
        """
        defaults = AppConfig()
        current = self.model_dump()
        default_dict = defaults.model_dump()

        def diff_dict(d1: dict, d2: dict, path: str = "") -> dict:
            differences = {}
            for key in set(d1.keys()) | set(d2.keys()):
                full_key = f"{path}.{key}" if path else key
                v1 = d1.get(key)
                v2 = d2.get(key)

                if isinstance(v1, dict) and isinstance(v2, dict):
                    nested = diff_dict(v1, v2, full_key)
                    if nested:
                        differences.update(nested)
                elif v1 != v2:
                    differences[full_key] = {"current": v1, "default": v2}

            return differences

        return diff_dict(current, default_dict)


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def env_overrides_dict(env: EnvironmentOverrides | None = None) -> dict[str, Any]:
    """Translate set environment overrides into a nested config dict."""
    env = env or EnvironmentOverrides()
    overrides: dict[str, Any] = {}
    if env.exchange:
        overrides.setdefault("simulator", {})["exchange"] = env.exchange
    if env.log_level:
        overrides.setdefault("observability", {})["log_level"] = env.log_level
    if env.log_format:
        overrides.setdefault("observability", {})["log_format"] = env.log_format
    return overrides


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Load configuration from YAML file with environment overrides.

    Priority (highest to lowest):
    1. Explicit overrides (e.g. CLI flags)
    2. Environment variables
    3. Specified config file
    4. Defaults
    """
    config_dict: dict[str, Any] = {}

    if config_path:
        config_dict = load_yaml_config(Path(config_path))

    config_dict = deep_merge(config_dict, env_overrides_dict())
    if overrides:
        config_dict = deep_merge(config_dict, overrides)

    return AppConfig(**config_dict)
