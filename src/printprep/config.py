"""Configuration management for printprep."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from printprep.constants import (
    CONFIG_ENV_VAR,
    CONFIG_FILENAME,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_COLLECTIONS,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_GALLERY_FIELD,
    DEFAULT_ID_FIELD,
    DEFAULT_IMAGE_FIELD,
    DEFAULT_INLINE_REJECTION_MARKER,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_RETENTION,
    DEFAULT_LOG_ROTATION,
    DEFAULT_POOL_WIDTH,
    DEFAULT_RELAY_BASE_URL,
    DEFAULT_TRANSCODE_QUALITY,
    DEFAULT_TRUSTED_ORIGIN_MARKER,
    DEFAULT_UNSUPPORTED_FORMATS,
    DEFAULT_USER_CONFIG_DIR,
    ENV_OVERRIDES,
)


class EnvVarNotFoundError(ValueError):
    """Raised when an environment variable referenced by env: syntax is not found."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name
        super().__init__(f"Environment variable not found: {var_name}")


def resolve_env_value(value: str, strict: bool = True) -> str | None:
    """Resolve env:VAR_NAME syntax to actual environment variable value.

    Args:
        value: The value to resolve. If starts with "env:", looks up environment variable.
        strict: If True, raises EnvVarNotFoundError when variable not found.
                If False, returns None when variable not found.

    Returns:
        The resolved value, or None if env var not found and strict=False.

    Raises:
        EnvVarNotFoundError: If strict=True and environment variable not found.
    """
    if isinstance(value, str) and value.startswith("env:"):
        env_var = value[4:]
        env_value = os.environ.get(env_var)
        if env_value is None:
            if strict:
                raise EnvVarNotFoundError(env_var)
            return None
        return env_value
    return value


class RelayConfig(BaseModel):
    """Relay and origin configuration."""

    base_url: str = DEFAULT_RELAY_BASE_URL  # Supports env: syntax
    trusted_origin_marker: str = DEFAULT_TRUSTED_ORIGIN_MARKER
    site_origin: str | None = None  # Base address for site-relative assets

    def get_resolved_base_url(self) -> str:
        """Get relay base URL with env: syntax resolved."""
        return resolve_env_value(self.base_url, strict=True) or DEFAULT_RELAY_BASE_URL


class PoolConfig(BaseModel):
    """Worker pool configuration."""

    width: int = Field(default=DEFAULT_POOL_WIDTH, ge=1)
    timeout: float = Field(default=DEFAULT_FETCH_TIMEOUT, gt=0)  # seconds per item


class FormatConfig(BaseModel):
    """Format gate and transcoding configuration."""

    unsupported: list[str] = Field(
        default_factory=lambda: list(DEFAULT_UNSUPPORTED_FORMATS)
    )
    inline_rejection_marker: str = DEFAULT_INLINE_REJECTION_MARKER
    transcode: bool = True  # Transcode served WebP/GIF/AVIF to JPEG
    quality: int = Field(default=DEFAULT_TRANSCODE_QUALITY, ge=1, le=100)

    @field_validator("unsupported", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        # Environment overrides arrive as "webp,svg"
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class CacheConfig(BaseModel):
    """Payload cache configuration."""

    enabled: bool = True
    max_entries: int = Field(default=DEFAULT_CACHE_MAX_ENTRIES, ge=0)


class DocumentConfig(BaseModel):
    """Shape of the document being preprocessed."""

    collections: list[str] = Field(default_factory=lambda: list(DEFAULT_COLLECTIONS))
    id_field: str = DEFAULT_ID_FIELD
    image_field: str = DEFAULT_IMAGE_FIELD
    gallery_field: str | None = DEFAULT_GALLERY_FIELD


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = DEFAULT_LOG_LEVEL
    dir: str | None = DEFAULT_LOG_DIR
    rotation: str = DEFAULT_LOG_ROTATION
    retention: str = DEFAULT_LOG_RETENTION


class PrintprepConfig(BaseModel):
    """Main configuration model."""

    relay: RelayConfig = Field(default_factory=RelayConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    formats: FormatConfig = Field(default_factory=FormatConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    document: DocumentConfig = Field(default_factory=DocumentConfig)
    log: LogConfig = Field(default_factory=LogConfig)


def _set_nested_value(data: dict[str, Any], key_path: str, value: Any) -> None:
    """Set a nested value in a dict using dot-separated key path.

    Creates intermediate dicts if they don't exist.
    """
    parts = key_path.split(".")
    current = data
    for part in parts[:-1]:
        if part not in current or not isinstance(current[part], dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def _env_overrides() -> dict[str, str]:
    """Collect PRINTPREP_* overrides present in the environment."""
    return {
        key_path: os.environ[env_var]
        for env_var, key_path in ENV_OVERRIDES.items()
        if os.environ.get(env_var)
    }


class ConfigManager:
    """Configuration manager for loading and merging configs."""

    CONFIG_FILENAME = CONFIG_FILENAME
    DEFAULT_USER_CONFIG_DIR = Path(DEFAULT_USER_CONFIG_DIR).expanduser()

    def __init__(self) -> None:
        self._config: PrintprepConfig | None = None
        self._config_path: Path | None = None

    @property
    def config(self) -> PrintprepConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    @property
    def config_path(self) -> Path | None:
        """Get the path of the loaded configuration file."""
        return self._config_path

    def load(
        self,
        config_path: Path | str | None = None,
        env_override: bool = True,
    ) -> PrintprepConfig:
        """
        Load configuration from file with fallback chain.

        Priority (highest to lowest):
        1. Explicit config_path parameter
        2. PRINTPREP_CONFIG environment variable
        3. ./printprep.json (current directory)
        4. ~/.printprep/config.json (user directory)
        5. Default values

        PRINTPREP_* option variables (see constants.ENV_OVERRIDES) are
        applied on top of whichever file was loaded.
        """
        config_data: dict[str, Any] = {}

        resolved_path = self._resolve_config_path(config_path, env_override)

        if resolved_path and resolved_path.exists():
            config_data = self._load_json(resolved_path)
            self._config_path = resolved_path

        if env_override:
            for key_path, value in _env_overrides().items():
                _set_nested_value(config_data, key_path, value)

        self._config = PrintprepConfig.model_validate(config_data)
        return self._config

    def _resolve_config_path(
        self,
        config_path: Path | str | None,
        env_override: bool,
    ) -> Path | None:
        """Resolve configuration file path based on priority."""
        if config_path:
            return Path(config_path)

        if env_override:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            if env_path:
                return Path(env_path)

        cwd_config = Path.cwd() / self.CONFIG_FILENAME
        if cwd_config.exists():
            return cwd_config

        user_config = self.DEFAULT_USER_CONFIG_DIR / "config.json"
        if user_config.exists():
            return user_config

        return None

    def _load_json(self, path: Path) -> dict[str, Any]:
        """Load JSON configuration file."""
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-separated key path.

        Example: config_manager.get("pool.width")
        """
        parts = key.split(".")
        value: Any = self.config

        for part in parts:
            if isinstance(value, BaseModel):
                value = getattr(value, part, None)
            elif isinstance(value, dict):
                value = value.get(part)
            else:
                return default

            if value is None:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value by dot-separated key path.

        Example: config_manager.set("pool.width", 8)
        """
        parts = key.split(".")
        if len(parts) == 1:
            setattr(self.config, key, value)
            return

        parent: Any = self.config
        for part in parts[:-1]:
            if isinstance(parent, BaseModel):
                parent = getattr(parent, part)
            elif isinstance(parent, dict):
                parent = parent[part]

        final_key = parts[-1]
        if isinstance(parent, BaseModel):
            setattr(parent, final_key, value)
        elif isinstance(parent, dict):
            parent[final_key] = value

    def merge_cli_args(self, **kwargs: Any) -> None:
        """Merge CLI arguments into configuration.

        Keys are dot-separated config paths with "__" standing in for the dot,
        e.g. ``pool__width=8``.
        """
        for key, value in kwargs.items():
            if value is not None:
                self.set(key.replace("__", "."), value)


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> PrintprepConfig:
    """Get the global configuration."""
    return config_manager.config
