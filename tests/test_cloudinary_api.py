import json
import pytest
import requests
from unittest.mock import MagicMock

from anime_hero.cloudinary_api import CloudinaryAPI, ProgressReader, UploadResult
from anime_hero.logging import ConfigError, APIError


def response(status_code, payload=None, text=None):
    r = requests.Response()
    r.status_code = status_code
    r.encoding = "utf-8"
    r._content = (json.dumps(payload) if payload is not None else (text or "")).encode("utf-8")
    return r


def draining_post(result):
    """session.post stand-in that streams the body like the transport would."""
    captured = {}

    def _post(url, data=None, headers=None, timeout=None):
        captured["url"] = url
        captured["headers"] = headers
        captured["length"] = len(data)
        chunks = []
        while True:
            chunk = data.read(1024)
            if not chunk:
                break
            chunks.append(chunk)
        captured["body"] = b"".join(chunks)
        return result

    return _post, captured


class TestProgressReader:
    def test_reports_zero_to_hundred(self):
        seen = []
        reader = ProgressReader(b"x" * 10_000, seen.append)
        while reader.read(1000):
            pass

        assert seen[0] == 0
        assert seen[-1] == 100
        assert seen == sorted(seen)
        assert len(seen) == len(set(seen))

    def test_len_is_body_size(self):
        assert len(ProgressReader(b"abc")) == 3


class TestUpload:
    def test_requires_credentials(self, tmp_path):
        session = MagicMock()
        api = CloudinaryAPI("demo", "", session=session)
        with pytest.raises(ConfigError):
            api.upload(b"data", filename="a.png")
        session.post.assert_not_called()

    def test_successful_upload_with_progress(self, tmp_path):
        media = tmp_path / "poster.png"
        media.write_bytes(b"\x89PNG" + b"0" * 5000)

        post, captured = draining_post(response(200, {
            "secure_url": "https://res.cloudinary.com/demo/image/upload/poster.png",
            "resource_type": "image",
        }))
        session = MagicMock()
        session.post.side_effect = post
        progress = []

        api = CloudinaryAPI("demo", "hero_preset", session=session)
        result = api.upload(media, public_id="posters/poster", progress_callback=progress.append)

        assert result == UploadResult("https://res.cloudinary.com/demo/image/upload/poster.png", "image")
        assert result.media_kind == "image"
        assert captured["url"] == "https://api.cloudinary.com/v1_1/demo/auto/upload"
        assert captured["headers"]["Content-Type"].startswith("multipart/form-data; boundary=")
        assert captured["length"] == len(captured["body"])
        assert b'name="upload_preset"' in captured["body"]
        assert b"hero_preset" in captured["body"]
        assert b"posters/poster" in captured["body"]
        assert b'filename="poster.png"' in captured["body"]
        assert progress[0] == 0 and progress[-1] == 100

    def test_video_media_kind(self):
        assert UploadResult("u", "video").media_kind == "video"
        assert UploadResult("u", "raw").media_kind == "image"

    def test_error_message_from_store(self):
        session = MagicMock()
        session.post.return_value = response(400, {"error": {"message": "Upload preset not found"}})
        api = CloudinaryAPI("demo", "bad", session=session)

        with pytest.raises(APIError, match="Upload preset not found"):
            api.upload(b"data", filename="a.png")

    def test_error_without_json_body(self):
        session = MagicMock()
        session.post.return_value = response(502, text="<html>Bad Gateway</html>")
        api = CloudinaryAPI("demo", "preset", session=session)

        with pytest.raises(APIError, match="Upload failed with status 502"):
            api.upload(b"data", filename="a.png")

    def test_network_error(self):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.ConnectionError("reset")
        api = CloudinaryAPI("demo", "preset", session=session)

        with pytest.raises(APIError, match="Network error"):
            api.upload(b"data", filename="a.png")

    def test_unparseable_success_body(self):
        session = MagicMock()
        session.post.return_value = response(200, text="not json")
        api = CloudinaryAPI("demo", "preset", session=session)

        with pytest.raises(APIError, match="Failed to parse"):
            api.upload(b"data", filename="a.png")

    def test_upload_json_uses_raw_resource_and_public_id(self):
        post, captured = draining_post(response(200, {
            "secure_url": "https://res.cloudinary.com/demo/raw/upload/userinfo.json",
            "resource_type": "raw",
        }))
        session = MagicMock()
        session.post.side_effect = post
        api = CloudinaryAPI("demo", "preset", session=session)

        api.upload_json({"users": {}}, public_id="userinfo.json")

        assert captured["url"] == "https://api.cloudinary.com/v1_1/demo/raw/upload"
        assert b'"users": {}' in captured["body"]
        assert b'name="public_id"' in captured["body"]


class TestUrls:
    def test_raw_url(self):
        api = CloudinaryAPI("demo", "preset", session=MagicMock())
        assert api.raw_url("userinfo.json") == "https://res.cloudinary.com/demo/raw/upload/userinfo.json"

    def test_cache_busted_url_changes_query(self):
        api = CloudinaryAPI("demo", "preset", session=MagicMock())
        assert "?_=" in api.raw_url("userinfo.json", cache_bust=True)

    def test_from_config_prefers_saved_settings(self, monkeypatch):
        from anime_hero.config import setup_config, save_operator_settings

        monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "env-cloud")
        monkeypatch.setenv("CLOUDINARY_UPLOAD_PRESET", "env-preset")
        setup_config()
        assert CloudinaryAPI.from_config().cloud_name == "env-cloud"

        save_operator_settings(cloud_name="saved-cloud", upload_preset="saved-preset")
        api = CloudinaryAPI.from_config()
        assert api.cloud_name == "saved-cloud"
        assert api.upload_preset == "saved-preset"
