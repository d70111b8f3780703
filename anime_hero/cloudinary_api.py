"""
Cloudinary asset store client.

Unsigned uploads keyed by cloud name and upload preset, plus raw-file
retrieval from the public delivery URL.
"""

import json
import mimetypes
import time
import requests
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Callable, Dict, Any, Union
from urllib3 import encode_multipart_formdata

from .constants import (
    CLOUDINARY_UPLOAD_URL_TEMPLATE,
    CLOUDINARY_RAW_URL_TEMPLATE,
    CLOUDINARY_TIMEOUT_SECONDS,
    UPLOAD_CHUNK_SIZE,
)
from .logging import get_logger, log_api_call, ConfigError, APIError

logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass
class UploadResult:
    secure_url: str
    resource_type: str

    @property
    def media_kind(self) -> str:
        """Coarse kind used for slide posters: 'video' or 'image'."""
        return "video" if self.resource_type == "video" else "image"


class ProgressReader:
    """
    File-like request body that reports upload progress as it is read.

    requests sizes the body through __len__, so the upload keeps a
    Content-Length header instead of falling back to chunked encoding.
    """

    def __init__(self, body: bytes, callback: Optional[ProgressCallback] = None):
        self._buffer = BytesIO(body)
        self.total = len(body)
        self.loaded = 0
        self.callback = callback
        self._last_percent = -1
        self._report()

    def __len__(self) -> int:
        return self.total

    def _report(self) -> None:
        if not self.callback:
            return
        percent = round(self.loaded / self.total * 100) if self.total else 100
        if percent != self._last_percent:
            self._last_percent = percent
            self.callback(percent)

    def read(self, size: int = -1) -> bytes:
        chunk = self._buffer.read(size if size and size > 0 else UPLOAD_CHUNK_SIZE)
        self.loaded += len(chunk)
        self._report()
        return chunk


class CloudinaryAPI:
    def __init__(
        self,
        cloud_name: Optional[str] = None,
        upload_preset: Optional[str] = None,
        timeout: int = CLOUDINARY_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.cloud_name = (cloud_name or "").strip()
        self.upload_preset = (upload_preset or "").strip()
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config=None) -> "CloudinaryAPI":
        """Build a client from the effective (settings file over env) credentials."""
        if config is None:
            from .config import get_config
            config = get_config()
        return cls(
            cloud_name=config.cloud_name,
            upload_preset=config.upload_preset,
            timeout=config.cloudinary.timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.upload_preset)

    def require_config(self) -> None:
        if not self.is_configured:
            raise ConfigError("Cloudinary not configured. Please check settings.")

    def upload_url(self, resource_type: str = "auto") -> str:
        return CLOUDINARY_UPLOAD_URL_TEMPLATE.format(cloud_name=self.cloud_name, resource_type=resource_type)

    def raw_url(self, public_id: str, cache_bust: bool = False) -> str:
        """Public delivery URL of a raw file; cache-busting defeats CDN caching."""
        url = CLOUDINARY_RAW_URL_TEMPLATE.format(cloud_name=self.cloud_name, public_id=public_id)
        if cache_bust:
            url = f"{url}?_={int(time.time() * 1000)}"
        return url

    def upload(
        self,
        payload: Union[bytes, str, Path],
        filename: Optional[str] = None,
        public_id: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
        resource_type: str = "auto",
    ) -> UploadResult:
        """
        Upload a file or an in-memory payload.

        Args:
            payload: Raw bytes or a path to a local file.
            filename: Name sent with the multipart part (defaults to the path name).
            public_id: Explicit public identifier; makes the URL stable and overwritable.
            progress_callback: Receives 0-100 as the body is transferred.
            resource_type: Cloudinary resource type segment (auto, image, video, raw).

        Raises:
            ConfigError: If cloud name or upload preset is unset.
            APIError: On non-2xx responses, transport failures or unparseable responses.
        """
        self.require_config()

        if isinstance(payload, (str, Path)):
            path = Path(payload)
            filename = filename or path.name
            try:
                data = path.read_bytes()
            except OSError as e:
                raise APIError(f"Could not read {path}: {e}") from e
        else:
            data = payload
            filename = filename or "upload.bin"

        mime = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        fields: Dict[str, Any] = {
            "file": (filename, data, mime),
            "upload_preset": self.upload_preset,
        }
        if public_id:
            fields["public_id"] = public_id

        body, content_type = encode_multipart_formdata(fields)
        url = self.upload_url(resource_type)
        log_api_call(url, "POST", {"upload_preset": self.upload_preset, "public_id": public_id, "file": filename})

        try:
            response = self.session.post(
                url,
                data=ProgressReader(body, progress_callback),
                headers={"Content-Type": content_type},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Cloudinary upload transport error for {filename}: {e}")
            raise APIError("Network error occurred during upload") from e

        if not 200 <= response.status_code < 300:
            message = f"Upload failed with status {response.status_code}"
            try:
                error = response.json().get("error") or {}
                message = error.get("message") or message
            except ValueError:
                pass
            logger.error(f"Cloudinary rejected {filename}: {message}")
            raise APIError(message)

        try:
            data = response.json()
            result = UploadResult(secure_url=data["secure_url"], resource_type=data.get("resource_type", ""))
        except (ValueError, KeyError, TypeError) as e:
            raise APIError("Failed to parse Cloudinary response") from e

        logger.info(f"Uploaded {filename} -> {result.secure_url}")
        return result

    def upload_json(
        self,
        document: Dict[str, Any],
        public_id: str,
        filename: Optional[str] = None,
    ) -> UploadResult:
        """Serialize a document and upload it as a raw file under a fixed public id."""
        payload = json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
        return self.upload(
            payload,
            filename=filename or Path(public_id).name,
            public_id=public_id,
            resource_type="raw",
        )

    def fetch_raw(self, public_id: str) -> requests.Response:
        """GET a raw file with cache-busting. Transport errors propagate."""
        url = self.raw_url(public_id, cache_bust=True)
        log_api_call(url, "GET")
        return self.session.get(url, timeout=self.timeout)
