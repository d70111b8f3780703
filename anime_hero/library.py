"""
Slide library persistence.

Every user's library lives in one master document. Saving is a whole-file
read-modify-write: re-fetch the latest document, replace the acting user's
entry, upload the full document again. Nothing guards against two sessions
saving at once; the later upload wins and the earlier change is lost.
"""

import json
import requests
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from .cloudinary_api import CloudinaryAPI
from .constants import MASTER_DB_PUBLIC_ID, LOCAL_LIBRARY_FILENAME
from .models import MasterDocument, SlideRecord, UserInfo, UserLibraryEntry, sort_by_rank
from .logging import get_logger, StorageError

logger = get_logger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def apply_user_update(document: MasterDocument, username: str, slides: List[SlideRecord]) -> MasterDocument:
    """
    Replace one user's library inside the document, leaving other users untouched.

    joinedAt survives from the existing entry; lastActive and lastUpdated are
    stamped now. The slide list is stored as given.
    """
    now = utc_now()
    current = document.entry(username)
    joined_at = current.info.joinedAt if current and current.info.joinedAt else now

    document.set_entry(username, UserLibraryEntry(
        info=UserInfo(username=username, joinedAt=joined_at, lastActive=now),
        library=list(slides),
        lastUpdated=now,
    ))
    return document


def _parse_document(response: requests.Response) -> MasterDocument:
    try:
        return MasterDocument.from_dict(response.json())
    except ValueError as e:
        raise StorageError(f"Master DB is not valid JSON: {e}") from e


class CloudLibraryStore:
    """Master document stored as a raw file on Cloudinary."""

    def __init__(self, api: CloudinaryAPI, public_id: str = MASTER_DB_PUBLIC_ID):
        self.api = api
        self.public_id = public_id

    @property
    def document_url(self) -> str:
        return self.api.raw_url(self.public_id)

    def fetch_master_document(self) -> MasterDocument:
        """
        Download the master document.

        A 404 means the document was never written and reads as empty. Any
        other failure raises, so a caller can never mistake an outage for
        an empty library.
        """
        if not self.api.cloud_name:
            logger.info("No cloud name configured; master DB reads as empty.")
            return MasterDocument()

        try:
            response = self.api.fetch_raw(self.public_id)
        except requests.exceptions.RequestException as e:
            raise StorageError(f"Failed to fetch master DB: {e}") from e

        if response.status_code == 404:
            logger.info("Master DB not found, initializing new.")
            return MasterDocument()
        if not response.ok:
            raise StorageError(f"Failed to fetch master DB: {response.status_code} {response.reason}")

        return _parse_document(response)

    def load(self, username: str) -> List[SlideRecord]:
        entry = self.fetch_master_document().entry(username)
        if not entry:
            return []
        return sort_by_rank(entry.library)

    def save(self, username: str, slides: List[SlideRecord]) -> MasterDocument:
        """
        Read-modify-write the master document for one user.

        Raises:
            ConfigError: If Cloudinary is not configured.
            StorageError: If the pre-save fetch fails with anything but 404.
                Nothing is uploaded in that case.
            APIError: If the upload itself fails. No rollback is attempted.
        """
        self.api.require_config()

        # Fetched here rather than through fetch_master_document so the
        # write path owns its own status handling
        try:
            response = self.api.fetch_raw(self.public_id)
        except requests.exceptions.RequestException as e:
            logger.error(f"Pre-save fetch failed: {e}")
            raise StorageError(f"Cannot verify existing DB status: {e}") from e

        if response.status_code == 404:
            document = MasterDocument()
        elif response.ok:
            document = _parse_document(response)
        else:
            logger.error(f"Pre-save fetch failed with status {response.status_code}; not overwriting.")
            raise StorageError(f"Cannot verify existing DB status: {response.status_code}")

        apply_user_update(document, username, slides)
        self.api.upload_json(document.to_dict(), public_id=self.public_id)
        logger.info(f"Saved {len(slides)} slides for '{username}' to master DB")
        return document


class LocalLibraryStore:
    """The same master document kept in a local JSON file."""

    def __init__(self, path: Union[str, Path] = LOCAL_LIBRARY_FILENAME):
        self.path = Path(path)

    @property
    def document_url(self) -> str:
        return self.path.resolve().as_uri()

    def fetch_master_document(self) -> MasterDocument:
        if not self.path.exists():
            return MasterDocument()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return MasterDocument.from_dict(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read local library {self.path}: {e}") from e

    def load(self, username: str) -> List[SlideRecord]:
        entry = self.fetch_master_document().entry(username)
        if not entry:
            return []
        return sort_by_rank(entry.library)

    def save(self, username: str, slides: List[SlideRecord]) -> MasterDocument:
        document = apply_user_update(self.fetch_master_document(), username, slides)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(document.to_dict(), f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StorageError(f"Failed to write local library {self.path}: {e}") from e
        logger.info(f"Saved {len(slides)} slides for '{username}' to {self.path}")
        return document


LibraryStore = Union[CloudLibraryStore, LocalLibraryStore]


def get_store(config=None, api: Optional[CloudinaryAPI] = None) -> LibraryStore:
    """Pick the configured library backend."""
    if config is None:
        from .config import get_config
        config = get_config()

    if config.storage.backend == "local":
        return LocalLibraryStore(config.storage.local_path)
    return CloudLibraryStore(api or CloudinaryAPI.from_config(config))


def get_user_library(username: str, store: Optional[LibraryStore] = None) -> List[SlideRecord]:
    """The user's slides sorted by rank; empty when the user has none."""
    return (store or get_store()).load(username)


def save_user_library(username: str, slides: List[SlideRecord], store: Optional[LibraryStore] = None) -> MasterDocument:
    return (store or get_store()).save(username, slides)
