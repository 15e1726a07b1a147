"""Application configuration management.

Handles loading and validating configuration from multiple sources:
    - TOML/JSON settings files
    - Environment variables (CODEP_* prefix)
    - Default values

Key components:
    - AppConfig: Main configuration model
    - load_config(): Safe config loading with fallback
    - ConfigLoadResult: Metadata about config source
    - default_config_root(): Platform location of the editor's state
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from unittest.mock import patch

from platformdirs import user_config_dir
from pydantic import Field, NonNegativeInt, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from codep.core.result import ConfigurationError

APP_NAME = "codep"
SETTINGS_ENV_VAR = "CODEP_SETTINGS"
SETTINGS_FILENAME = "config.toml"
DEFAULT_EDITOR_NAME = "Code"


def default_config_root(editor_name: str = DEFAULT_EDITOR_NAME) -> Path:
    """Return the platform config directory the editor keeps its state in."""
    return Path(user_config_dir(editor_name, appauthor=False, roaming=True))


class AppConfig(BaseSettings):
    """codep settings; every field can be overridden with ``CODEP_<FIELD>``."""

    model_config = SettingsConfigDict(
        env_prefix="CODEP_",
        extra="ignore",
    )

    config_root: Path | None = Field(
        default=None,
        description="Editor state root. Defaults to the platform config dir of `editor_name`.",
    )
    editor_name: str = Field(
        default=DEFAULT_EDITOR_NAME,
        description="Editor config directory name, e.g. 'Code - Insiders' or 'VSCodium'.",
    )
    log_level: str = Field(default="WARNING", description="Log level for diagnostics.")
    null_terminated: bool = Field(
        default=False, description="Append a NUL byte before every newline."
    )
    markup: bool = Field(
        default=False, description="Wrap the remote-type hint in Pango-style markup."
    )
    default_limit: NonNegativeInt | None = Field(
        default=None, description="Result limit used when --limit is not given."
    )
    default_max_age_days: NonNegativeInt | None = Field(
        default=None, description="Age window used when --max-age-days is not given."
    )

    @field_validator("config_root", mode="after")
    @classmethod
    def expand_config_root(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    def resolved_config_root(self) -> Path:
        """Return the explicit root, or the platform default for ``editor_name``."""
        return self.config_root or default_config_root(self.editor_name)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        # Ensure environment variables override settings file entries.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


@dataclass
class ConfigLoadResult:
    path: Path
    file_loaded: bool
    env_overrides: set[str]
    error: str | None = None


def _resolve_settings_path(settings_path: Path | None, env_vars: Mapping[str, str]) -> Path:
    candidate = (
        settings_path
        or env_vars.get(SETTINGS_ENV_VAR)
        or (Path(user_config_dir(APP_NAME, appauthor=False)) / SETTINGS_FILENAME)
    )
    return Path(candidate).expanduser()


def _read_settings_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc

    suffix = path.suffix.lower()
    parser = json.loads if suffix == ".json" else tomllib.loads

    try:
        data = parser(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings root in {path} must be a mapping.")

    return data


def _detect_env_overrides(env_vars: Mapping[str, str]) -> set[str]:
    """Detect which fields are overridden by environment variables."""
    prefix = AppConfig.model_config.get("env_prefix", "")
    overrides: set[str] = set()
    for field in AppConfig.model_fields:
        env_key = f"{prefix}{field}".upper()
        if env_key in env_vars:
            overrides.add(field)
    return overrides


def load_config(
    settings_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """
    Load configuration with Safe Mode fallback.
    If the settings file is invalid, returns default config + error message.
    """
    env_vars: Mapping[str, str] = os.environ if env is None else {**os.environ, **env}
    resolved_path = _resolve_settings_path(settings_path, env_vars)
    env_overrides = _detect_env_overrides(env_vars)

    error: str | None = None
    file_loaded = False
    file_data: dict[str, Any] = {}

    try:
        file_data = _read_settings_file(resolved_path)
        file_loaded = resolved_path.exists()
    except ConfigurationError as exc:
        error = str(exc)

    context_manager = (
        patch.dict(os.environ, env_vars, clear=False) if env is not None else nullcontext()
    )

    try:
        with context_manager:
            config = AppConfig(**file_data)
    except ValidationError as exc:
        error = str(exc)
        config = AppConfig.model_construct()

    load_result = ConfigLoadResult(
        path=resolved_path,
        file_loaded=file_loaded,
        env_overrides=env_overrides,
        error=error,
    )

    return config, load_result
