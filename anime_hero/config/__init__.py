"""
Configuration package for AnimeHero.

This package provides centralized, type-safe configuration management.
"""

from .manager import (
    CloudinaryConfig,
    GeminiConfig,
    JikanConfig,
    StorageConfig,
    PushConfig,
    LoggingConfig,
    OperatorSettings,
    AnimeHeroConfig,
    setup_config,
    get_config,
    reload_config,
    save_operator_settings,
    get_cloudinary_config,
    get_gemini_config,
    get_jikan_config,
    get_storage_config,
    get_logging_config,
)

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
