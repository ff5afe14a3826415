"""Configuration management for the user state store."""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, cast

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_FILE = Path("config/app.toml")
CONFIG_FILE_ENV_VAR = "APP_CONFIG_FILE"
PROFILE_ENV_VAR = "STORE_PROFILE"
BUILD_ID_ENV_VAR = "GIT_COMMIT_HASH"

# 0.50% expressed in basis points
INITIAL_ALLOWED_SLIPPAGE = 50
# 20 minutes
DEFAULT_DEADLINE_FROM_NOW = 20


def _resolve_config_path() -> Path:
    env_value = os.getenv(CONFIG_FILE_ENV_VAR)
    if env_value:
        candidate = Path(env_value)
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate
        return candidate
    return Path.cwd() / DEFAULT_CONFIG_FILE


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {**base}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(cast(Dict[str, Any], result[key]), value)
        else:
            result[key] = value
    return result


def _select_profile(data: Dict[str, Any]) -> Dict[str, Any]:
    if not data:
        return {}
    base_section = cast(Dict[str, Any], data.get("default", {}))
    requested = (os.getenv(PROFILE_ENV_VAR) or "").strip().lower()
    if requested and requested != "default" and isinstance(data.get(requested), dict):
        return _deep_merge(base_section, cast(Dict[str, Any], data[requested]))
    if base_section:
        return base_section
    # Flat files without a [default] table are used as-is.
    return {key: value for key, value in data.items() if isinstance(value, dict)}


def _load_toml_config() -> Tuple[Dict[str, Any], Optional[Path]]:
    path = _resolve_config_path()
    if not path.exists():
        return {}, None
    with path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        return {}, path
    return _select_profile(payload), path


class PreferenceDefaultsConfig(BaseModel):
    """Defaults applied to fresh state and when repairing stale snapshots."""

    initial_allowed_slippage: int = Field(default=INITIAL_ALLOWED_SLIPPAGE, ge=0, le=10_000)
    default_deadline_from_now: int = Field(default=DEFAULT_DEADLINE_FROM_NOW, ge=1)


class BuildConfig(BaseModel):
    """Identifier of the running build, used to detect stale snapshots."""

    git_commit_hash: Optional[str] = None

    @field_validator("git_commit_hash", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class StorageConfig(BaseModel):
    """Snapshot persistence configuration."""

    database_path: Path = Field(default=Path("./user_state.sqlite3"))
    persist_on_dispatch: bool = True


class MonitoringConfig(BaseModel):
    """Logging configuration."""

    log_level: str = Field(default="INFO")


class AppConfig(BaseSettings):
    """Aggregated application configuration."""

    preferences: PreferenceDefaultsConfig = Field(default_factory=PreferenceDefaultsConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    config_file: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def file_settings(_: Optional[BaseSettings] = None) -> Dict[str, Any]:
            payload, path = _load_toml_config()
            if path is not None:
                payload = {**payload, "config_file": str(path)}
            return payload

        # Runtime environment variables win over static config file defaults.
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def _sync_build_id(self) -> "AppConfig":
        if self.build.git_commit_hash is None:
            commit = (os.getenv(BUILD_ID_ENV_VAR) or "").strip()
            if commit:
                self.build.git_commit_hash = commit
        return self


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """Create a cached application configuration object."""

    return AppConfig()


__all__ = [
    "AppConfig",
    "BuildConfig",
    "DEFAULT_DEADLINE_FROM_NOW",
    "INITIAL_ALLOWED_SLIPPAGE",
    "MonitoringConfig",
    "PreferenceDefaultsConfig",
    "StorageConfig",
    "get_app_config",
]
