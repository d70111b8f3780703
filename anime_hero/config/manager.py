"""
Centralized configuration management for AnimeHero.

This module provides type-safe, validated configuration using Pydantic.
Service credentials come from environment variables and `.env`; the operator
settings (Cloudinary account, upload preset, push target) are persisted to a
small JSON file and take precedence over the environment.
"""

import json
from pathlib import Path
from typing import Optional, Union
from pydantic import Field, field_validator, BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import (
    SETTINGS_FILENAME,
    LOCAL_LIBRARY_FILENAME,
    LOG_FILENAME,
    GEMINI_BASE_URL,
    GEMINI_DEFAULT_MODEL,
    GEMINI_TIMEOUT,
    GEMINI_MAX_RETRIES,
    JIKAN_BASE_URL,
    JIKAN_TIMEOUT,
    CLOUDINARY_TIMEOUT_SECONDS,
    STORAGE_BACKENDS,
)
from ..logging import ConfigError


class CloudinaryConfig(BaseSettings):
    """Configuration for the Cloudinary asset store"""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    cloud_name: Optional[str] = Field(default=None, description="Cloudinary account (cloud) name")
    upload_preset: Optional[str] = Field(default=None, description="Unsigned upload preset")
    timeout: int = Field(default=CLOUDINARY_TIMEOUT_SECONDS, description="Upload timeout in seconds")


class GeminiConfig(BaseSettings):
    """Configuration for the Gemini text-generation API"""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    api_key: Optional[str] = Field(default=None, description="Gemini API key")
    model: str = Field(default=GEMINI_DEFAULT_MODEL, description="Model name to use")
    base_url: str = Field(default=GEMINI_BASE_URL, description="Base URL for the Gemini REST API")
    timeout: int = Field(default=GEMINI_TIMEOUT, description="API timeout in seconds")
    max_retries: int = Field(default=GEMINI_MAX_RETRIES, description="Maximum number of retries")


class JikanConfig(BaseSettings):
    """Configuration for Jikan (MyAnimeList) API"""

    model_config = SettingsConfigDict(
        env_prefix="JIKAN_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    base_url: str = Field(default=JIKAN_BASE_URL, description="Jikan API base URL")
    timeout: int = Field(default=JIKAN_TIMEOUT, description="API timeout in seconds")


class StorageConfig(BaseSettings):
    """Where slide libraries are persisted"""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    backend: str = Field(default="cloud", description="Library backend: local or cloud")
    local_path: Path = Field(default=Path(LOCAL_LIBRARY_FILENAME), description="Local library JSON file")

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        if v.lower() not in STORAGE_BACKENDS:
            raise ValueError(f"Storage backend must be one of {STORAGE_BACKENDS}")
        return v.lower()


class PushConfig(BaseSettings):
    """Optional push target for the published feed"""

    model_config = SettingsConfigDict(
        env_prefix="PUSH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    url: Optional[str] = Field(default=None, description="URL the feed is POSTed to")
    access_key: Optional[str] = Field(default=None, description="Bearer key for the push target")


class LoggingConfig(BaseSettings):
    """Configuration for logging behavior"""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    level: str = Field(default="INFO", description="Default logging level")
    console_level: str = Field(default="WARNING", description="Console logging level")
    log_file: str = Field(default=LOG_FILENAME, description="Log file path")

    @field_validator('level', 'console_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log level is one of the allowed values"""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class OperatorSettings(BaseModel):
    """
    Values the operator enters in the settings console.

    Cloud name and upload preset are required before anything can be
    uploaded; push URL and access key are optional.
    """

    cloud_name: Optional[str] = None
    upload_preset: Optional[str] = None
    push_url: Optional[str] = None
    access_key: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.upload_preset)

    @classmethod
    def load_from_json(cls, path: Union[str, Path] = SETTINGS_FILENAME) -> "OperatorSettings":
        """Load operator settings; a missing or unreadable file yields empty settings."""
        path = Path(path)
        if not path.exists():
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls(**{k: v for k, v in data.items() if k in cls.model_fields})
        except (OSError, ValueError, TypeError):
            return cls()

    def save_to_json(self, path: Union[str, Path] = SETTINGS_FILENAME) -> None:
        if not self.is_configured:
            raise ConfigError("Configuration required: both cloud name and upload preset must be set.")

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)


class AnimeHeroConfig(BaseSettings):
    """
    Main configuration class for AnimeHero.

    This class serves as the single source of truth for all configuration.
    It automatically loads from environment variables and .env files.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    cloudinary: CloudinaryConfig = Field(default_factory=CloudinaryConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    jikan: JikanConfig = Field(default_factory=JikanConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    push: PushConfig = Field(default_factory=PushConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    settings: OperatorSettings = Field(default_factory=OperatorSettings.load_from_json)

    settings_path: Path = Field(default=Path(SETTINGS_FILENAME), description="Operator settings file")

    # Saved operator settings win over the environment
    @property
    def cloud_name(self) -> Optional[str]:
        return self.settings.cloud_name or self.cloudinary.cloud_name

    @property
    def upload_preset(self) -> Optional[str]:
        return self.settings.upload_preset or self.cloudinary.upload_preset

    @property
    def push_url(self) -> Optional[str]:
        return self.settings.push_url or self.push.url

    @property
    def access_key(self) -> Optional[str]:
        return self.settings.access_key or self.push.access_key


# Global configuration instance
_config_instance: Optional[AnimeHeroConfig] = None


def setup_config(
    env_file: Optional[Union[str, Path]] = None,
    settings_path: Optional[Union[str, Path]] = None,
    **kwargs
) -> AnimeHeroConfig:
    """
    Set up the global configuration.

    Args:
        env_file: Path to .env file
        settings_path: Path to the operator settings JSON
        **kwargs: Additional configuration overrides

    Returns:
        AnimeHeroConfig instance
    """
    global _config_instance

    config_kwargs = {}
    if env_file:
        # Sections read their own env file, so each one is pointed at it
        env = {"_env_file": str(env_file)}
        config_kwargs.update(
            _env_file=str(env_file),
            cloudinary=CloudinaryConfig(**env),
            gemini=GeminiConfig(**env),
            jikan=JikanConfig(**env),
            storage=StorageConfig(**env),
            push=PushConfig(**env),
            logging=LoggingConfig(**env),
        )
    if settings_path:
        config_kwargs["settings_path"] = Path(settings_path)
        config_kwargs["settings"] = OperatorSettings.load_from_json(settings_path)

    config_kwargs.update(kwargs)

    _config_instance = AnimeHeroConfig(**config_kwargs)
    return _config_instance


def get_config() -> AnimeHeroConfig:
    """Get the global configuration instance, creating it on first use."""
    global _config_instance
    if _config_instance is None:
        _config_instance = AnimeHeroConfig()
    return _config_instance


def reload_config() -> AnimeHeroConfig:
    """Reload configuration from environment, .env and the settings file."""
    global _config_instance
    _config_instance = AnimeHeroConfig()
    return _config_instance


def save_operator_settings(
    cloud_name: Optional[str] = None,
    upload_preset: Optional[str] = None,
    push_url: Optional[str] = None,
    access_key: Optional[str] = None,
) -> OperatorSettings:
    """
    Merge the given values into the saved operator settings and persist them.

    Raises:
        ConfigError: If cloud name or upload preset would end up empty.
    """
    config = get_config()
    updates = {
        "cloud_name": cloud_name,
        "upload_preset": upload_preset,
        "push_url": push_url,
        "access_key": access_key,
    }
    merged = config.settings.model_copy(update={k: v for k, v in updates.items() if v is not None})
    merged.save_to_json(config.settings_path)
    config.settings = merged
    return merged


def get_cloudinary_config() -> CloudinaryConfig:
    return get_config().cloudinary


def get_gemini_config() -> GeminiConfig:
    return get_config().gemini


def get_jikan_config() -> JikanConfig:
    return get_config().jikan


def get_storage_config() -> StorageConfig:
    return get_config().storage


def get_logging_config() -> LoggingConfig:
    return get_config().logging


__all__ = [
    "CloudinaryConfig",
    "GeminiConfig",
    "JikanConfig",
    "StorageConfig",
    "PushConfig",
    "LoggingConfig",
    "OperatorSettings",
    "AnimeHeroConfig",
    "setup_config",
    "get_config",
    "reload_config",
    "save_operator_settings",
    "get_cloudinary_config",
    "get_gemini_config",
    "get_jikan_config",
    "get_storage_config",
    "get_logging_config",
]
