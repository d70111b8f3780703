"""
Centralized logging and error handling for AnimeHero.

This module provides consistent logging configuration and custom exceptions
across the entire application.
"""

import logging
from contextlib import contextmanager
from typing import Optional, Union
from rich.logging import RichHandler
from rich.console import Console

from .constants import LOG_FILENAME

# Global console instance for the entire application
console = Console()


class AnimeHeroError(Exception):
    """Base exception for all AnimeHero-specific errors."""
    pass


class ConfigError(AnimeHeroError):
    """Raised when required configuration (e.g. Cloudinary credentials) is missing."""
    pass


class APIError(AnimeHeroError):
    """Raised when an external API call fails (Cloudinary, Gemini, Jikan)."""
    pass


class AnimeNotFoundError(APIError):
    """Raised when the anime database has no match for a title."""
    pass


class StorageError(AnimeHeroError):
    """Raised when the master document cannot be read or written."""
    pass


class ValidationError(AnimeHeroError):
    """Raised when slide form data is incomplete or invalid."""
    pass


class AnimeHeroLogger:
    """
    Centralized logging configuration for AnimeHero.

    Owns the root logger handlers: a UTF-8 file handler with full detail and
    a RichHandler on the shared console for warnings and errors.
    """

    def __init__(self, log_file: str = LOG_FILENAME):
        self.log_file = log_file
        self.console = console
        self._setup_root_logger()

    def _setup_root_logger(self) -> None:
        """Configure the root logger with file and console handlers."""
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(file_formatter)

        console_handler = RichHandler(
            console=self.console,
            show_path=False,
            show_time=True,
            show_level=True,
            markup=True,
            keywords=[]
        )
        console_handler.setLevel(logging.WARNING)

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.INFO)

        # Clear existing handlers to avoid duplicates
        root_logger.handlers = []
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)

    def _set_handler_level(self, handler_cls: type, level: Union[str, int], clean: Optional[bool] = None) -> None:
        root_logger = logging.getLogger()

        numeric_level = level
        if isinstance(level, str):
            numeric_level = getattr(logging, level.upper(), logging.INFO)

        # Root logger must let the record through before any handler sees it
        if numeric_level < root_logger.level:
            root_logger.setLevel(numeric_level)

        for handler in root_logger.handlers:
            if isinstance(handler, handler_cls):
                handler.setLevel(numeric_level)
                if clean is not None and isinstance(handler, RichHandler):
                    handler.show_time = not clean
                    handler.show_level = not clean
                break

    def set_console_level(self, level: Union[str, int], clean: bool = False) -> None:
        """
        Set the console logging level.

        Args:
            level: Logging level (e.g., 'DEBUG', 'INFO', 'WARNING')
            clean: If True, hides time and level for a cleaner UI-like look
        """
        self._set_handler_level(RichHandler, level, clean=clean)

    def set_file_level(self, level: Union[str, int]) -> None:
        """Set the file logging level."""
        self._set_handler_level(logging.FileHandler, level)


# Global logger instance
_logger_instance: Optional[AnimeHeroLogger] = None


def setup_logging(log_file: str = LOG_FILENAME) -> AnimeHeroLogger:
    """
    Set up the global logging configuration.

    Args:
        log_file: Path to the log file

    Returns:
        The configured AnimeHeroLogger instance
    """
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = AnimeHeroLogger(log_file)
    return _logger_instance


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    This should be called in each module as:
        from anime_hero.logging import get_logger
        logger = get_logger(__name__)
    """
    if _logger_instance is None:
        setup_logging()
    return logging.getLogger(name)


def set_log_level(level: Union[str, int], handler_type: str = "both", clean: bool = False) -> None:
    """
    Set the logging level for console, file, or both handlers.

    Args:
        level: Logging level (e.g., 'DEBUG', 'INFO', 'WARNING', 'ERROR')
        handler_type: 'console', 'file', or 'both'
        clean: If True, hides time and level for console handler
    """
    if _logger_instance is None:
        setup_logging()

    if handler_type in ("console", "both"):
        _logger_instance.set_console_level(level, clean=clean)
    if handler_type in ("file", "both"):
        _logger_instance.set_file_level(level)


@contextmanager
def temporary_log_level(level: Union[str, int], handler_type: str = "console"):
    """
    Temporarily change the log level.

    Usage:
        with temporary_log_level("DEBUG"):
            ...
    """
    if _logger_instance is None:
        setup_logging()

    handler_cls = RichHandler if handler_type == "console" else logging.FileHandler
    root_logger = logging.getLogger()
    target = next((h for h in root_logger.handlers if isinstance(h, handler_cls)), None)
    current_level = target.level if target is not None else None

    if target is not None:
        target.setLevel(level)
    try:
        yield
    finally:
        if target is not None and current_level is not None:
            target.setLevel(current_level)


def log_api_call(url: str, method: str, params: Optional[dict] = None) -> None:
    """
    Log an API call with sensitive data masking.
    Logs at DEBUG level.
    """
    logger = get_logger("anime_hero.api")

    if not logger.isEnabledFor(logging.DEBUG):
        return

    safe_params = "None"
    if params:
        masked = dict(params)
        keys_to_mask = ['api_key', 'token', 'password', 'secret', 'key', 'preset']
        for k in masked:
            if isinstance(k, str) and any(m in k.lower() for m in keys_to_mask):
                masked[k] = "********"
        safe_params = str(masked)

    logger.debug(f"API CALL: {method} {url} | Params: {safe_params}")


__all__ = [
    "AnimeHeroError",
    "ConfigError",
    "APIError",
    "AnimeNotFoundError",
    "StorageError",
    "ValidationError",
    "AnimeHeroLogger",
    "console",
    "setup_logging",
    "get_logger",
    "set_log_level",
    "temporary_log_level",
    "log_api_call",
]
