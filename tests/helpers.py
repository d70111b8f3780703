"""Shared test doubles: canned HTTP responses, an in-memory Cloudinary and a slide factory."""

import copy
import json
import requests
from unittest.mock import MagicMock

from anime_hero.cloudinary_api import CloudinaryAPI, UploadResult
from anime_hero.models import SlideRecord, Episodes


def make_response(status_code, payload=None, text=None, reason=""):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason or ("OK" if status_code < 400 else "Error")
    response.encoding = "utf-8"
    body = json.dumps(payload) if payload is not None else (text or "")
    response._content = body.encode("utf-8")
    return response


class FakeCloudinary(CloudinaryAPI):
    """In-memory Cloudinary: raw files keyed by public id, with failure injection."""

    def __init__(self, cloud_name="demo", upload_preset="hero_preset"):
        super().__init__(cloud_name, upload_preset, session=MagicMock())
        self.files = {}
        self.uploads = []
        self.fetch_status = None
        self.fetch_error = None
        self.upload_error = None

    def fetch_raw(self, public_id):
        if self.fetch_error is not None:
            raise self.fetch_error
        if self.fetch_status is not None:
            return make_response(self.fetch_status, text="boom")
        if public_id not in self.files:
            return make_response(404, text="Not Found", reason="Not Found")
        return make_response(200, payload=self.files[public_id])

    def upload_json(self, document, public_id, filename=None):
        self.uploads.append(public_id)
        if self.upload_error is not None:
            raise self.upload_error
        self.files[public_id] = copy.deepcopy(document)
        return UploadResult(secure_url=self.raw_url(public_id), resource_type="raw")

    def upload(self, payload, filename=None, public_id=None, progress_callback=None, resource_type="auto"):
        self.require_config()
        if progress_callback:
            progress_callback(0)
            progress_callback(100)
        name = filename or str(payload)
        kind = "video" if str(name).endswith(".mp4") else "image"
        self.uploads.append(name)
        return UploadResult(secure_url=f"https://res.cloudinary.com/demo/{kind}/upload/{name}", resource_type=kind)



def slide(slug, rank=1, title=None, **kwargs):
    return SlideRecord(
        title=title or slug.replace("-", " ").title(),
        id=slug,
        poster=f"https://res.cloudinary.com/demo/image/upload/{slug}.jpg",
        rank=rank,
        keywords=[slug],
        episodes=kwargs.pop("episodes", Episodes(sub=12, dub=0, eps=12)),
        **kwargs,
    )
