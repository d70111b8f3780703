"""
Tests for the foundation components: logging, errors and configuration.
"""

import json
import logging
import pytest
from pathlib import Path
from rich.logging import RichHandler

from anime_hero.logging import (
    AnimeHeroLogger, get_logger, set_log_level, temporary_log_level, log_api_call,
    AnimeHeroError, ConfigError, APIError, AnimeNotFoundError, StorageError, ValidationError,
)
from anime_hero.config import (
    setup_config, get_config, reload_config, save_operator_settings,
    OperatorSettings, StorageConfig, LoggingConfig,
    get_cloudinary_config, get_gemini_config, get_jikan_config, get_storage_config,
)


@pytest.fixture
def root_handlers():
    """Restore the root logger after a test rebuilds its handlers."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def _rich_handler():
    return next(h for h in logging.getLogger().handlers if isinstance(h, RichHandler))


class TestLogging:
    def test_logger_writes_file(self, tmp_path, root_handlers):
        log_file = tmp_path / "hero.log"
        AnimeHeroLogger(str(log_file))

        get_logger("anime_hero.test").info("saved slide naruto")
        for handler in root_handlers.handlers:
            handler.flush()

        assert "saved slide naruto" in log_file.read_text(encoding="utf-8")

    def test_module_loggers_use_root_handlers(self):
        logger = get_logger("anime_hero.some.module")
        assert logger.name == "anime_hero.some.module"
        assert len(logger.handlers) == 0

    def test_console_level_changes(self, tmp_path, root_handlers):
        AnimeHeroLogger(str(tmp_path / "hero.log"))
        assert _rich_handler().level == logging.WARNING

        set_log_level("DEBUG", "console", clean=True)
        assert _rich_handler().level == logging.DEBUG
        assert root_handlers.level == logging.DEBUG

    def test_temporary_log_level_restores(self, tmp_path, root_handlers):
        AnimeHeroLogger(str(tmp_path / "hero.log"))
        before = _rich_handler().level

        with temporary_log_level("DEBUG"):
            assert _rich_handler().level == logging.DEBUG

        assert _rich_handler().level == before

    def test_api_call_masks_secrets(self, tmp_path, root_handlers):
        log_file = tmp_path / "hero.log"
        AnimeHeroLogger(str(log_file))
        set_log_level("DEBUG", "file")

        log_api_call("https://api.example/upload", "POST", {"upload_preset": "hero_preset", "api_key": "abc", "q": "naruto"})
        for handler in root_handlers.handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "naruto" in text
        assert "hero_preset" not in text
        assert "abc" not in text

    def test_error_hierarchy(self):
        for error_cls in (ConfigError, APIError, AnimeNotFoundError, StorageError, ValidationError):
            with pytest.raises(AnimeHeroError):
                raise error_cls("boom")
        assert issubclass(AnimeNotFoundError, APIError)


class TestConfiguration:
    def test_defaults(self):
        config = setup_config()
        assert config.storage.backend == "cloud"
        assert config.gemini.model
        assert config.jikan.base_url.startswith("https://api.jikan.moe")
        assert config.cloud_name is None
        assert config.settings.is_configured is False

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
        monkeypatch.setenv("CLOUDINARY_UPLOAD_PRESET", "hero_preset")
        monkeypatch.setenv("GEMINI_API_KEY", "key")
        monkeypatch.setenv("GEMINI_MODEL", "gemini-test")
        monkeypatch.setenv("STORAGE_BACKEND", "LOCAL")

        config = reload_config()

        assert config.cloud_name == "demo"
        assert config.upload_preset == "hero_preset"
        assert config.gemini.api_key == "key"
        assert config.gemini.model == "gemini-test"
        assert config.storage.backend == "local"

    def test_dotenv_in_working_directory(self, tmp_path):
        (tmp_path / ".env").write_text("CLOUDINARY_CLOUD_NAME=from-dotenv\nGEMINI_TIMEOUT=5\n", encoding="utf-8")
        config = setup_config()
        assert config.cloud_name == "from-dotenv"
        assert config.gemini.timeout == 5

    def test_explicit_env_file(self, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("STORAGE_BACKEND=local\nPUSH_URL=https://example.test/push\n", encoding="utf-8")
        config = setup_config(env_file=env_file)
        assert config.storage.backend == "local"
        assert config.push_url == "https://example.test/push"

    def test_invalid_backend_rejected(self):
        with pytest.raises(ValueError):
            StorageConfig(backend="s3")

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_convenience_functions(self):
        config = setup_config()
        assert get_config() is config
        assert get_cloudinary_config() is config.cloudinary
        assert get_gemini_config() is config.gemini
        assert get_jikan_config() is config.jikan
        assert get_storage_config() is config.storage


class TestOperatorSettings:
    def test_saved_settings_override_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "env-cloud")
        monkeypatch.setenv("PUSH_URL", "https://env.example/push")
        setup_config(settings_path=tmp_path / "ops.json")

        save_operator_settings(cloud_name="saved-cloud", upload_preset="saved-preset")

        config = get_config()
        assert config.cloud_name == "saved-cloud"
        assert config.push_url == "https://env.example/push"
        stored = json.loads((tmp_path / "ops.json").read_text(encoding="utf-8"))
        assert stored["upload_preset"] == "saved-preset"

        reloaded = setup_config(settings_path=tmp_path / "ops.json")
        assert reloaded.upload_preset == "saved-preset"

    def test_partial_update_keeps_previous_values(self, tmp_path):
        setup_config(settings_path=tmp_path / "ops.json")
        save_operator_settings(cloud_name="demo", upload_preset="preset")
        save_operator_settings(push_url="https://example.test/push", access_key="k")

        settings = OperatorSettings.load_from_json(tmp_path / "ops.json")
        assert settings.cloud_name == "demo"
        assert settings.access_key == "k"

    def test_incomplete_settings_not_saved(self, tmp_path):
        setup_config(settings_path=tmp_path / "ops.json")
        with pytest.raises(ConfigError):
            save_operator_settings(cloud_name="demo")
        assert not (tmp_path / "ops.json").exists()
        assert get_config().settings.cloud_name is None

    def test_corrupt_settings_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "ops.json"
        path.write_text("{oops", encoding="utf-8")
        assert OperatorSettings.load_from_json(path) == OperatorSettings()

    def test_missing_file(self, tmp_path):
        assert OperatorSettings.load_from_json(Path(tmp_path / "nope.json")).is_configured is False
