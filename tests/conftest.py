import pytest

from anime_hero.config import manager
from tests.helpers import FakeCloudinary, slide

ENV_VARS = [
    "CLOUDINARY_CLOUD_NAME", "CLOUDINARY_UPLOAD_PRESET",
    "GEMINI_API_KEY", "GEMINI_MODEL",
    "STORAGE_BACKEND", "STORAGE_LOCAL_PATH",
    "PUSH_URL", "PUSH_ACCESS_KEY",
    "ANIMEHERO_USER",
]


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Every test runs in an empty directory with no AnimeHero env vars and a fresh config."""
    monkeypatch.chdir(tmp_path)
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(manager, "_config_instance", None)
    yield tmp_path


@pytest.fixture
def fake_cloud():
    return FakeCloudinary()


@pytest.fixture
def make_slide():
    return slide
