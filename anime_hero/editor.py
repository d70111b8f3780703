"""
Slide editor state.

Holds the in-progress form record and the user's slide list, and routes
every change through the configured library store. Each action is a full
save of the user's list; in-memory state only changes once that save
succeeded.
"""

import copy
from pathlib import Path
from typing import List, Optional, Union, Callable, Dict, Any

from .cloudinary_api import CloudinaryAPI, UploadResult
from .constants import PUBLISHED_SLIDE_PREFIX, POSTER_TYPES, DEFAULT_RANK
from .feed import build_feed, backup_filename
from .library import LibraryStore
from .metadata import generate_anime_details
from .models import SlideRecord, sort_by_rank, find_slide
from .logging import get_logger, ValidationError

logger = get_logger(__name__)

TEXT_FIELDS = {
    "title", "alternativeTitle", "id", "poster", "logo", "type",
    "quality", "duration", "aired", "synopsis", "publishedUrl",
}


def _parse_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class SlideEditor:
    def __init__(self, username: str, store: LibraryStore, assets: Optional[CloudinaryAPI] = None):
        if not username or not username.strip():
            raise ValidationError("A username is required.")
        self.username = username.strip()
        self.store = store
        self.assets = assets
        self.slides: List[SlideRecord] = []
        self.form = SlideRecord()

    def load_library(self) -> List[SlideRecord]:
        self.slides = self.store.load(self.username)
        logger.info(f"Loaded {len(self.slides)} slides for '{self.username}'")
        return self.slides

    def reset_form(self) -> None:
        self.form = SlideRecord()

    def edit(self, slug: str) -> SlideRecord:
        """Copy an existing record into the form."""
        slide = find_slide(self.slides, slug)
        if slide is None:
            raise ValidationError(f'No slide with slug "{slug}".')
        self.form = copy.deepcopy(slide)
        return self.form

    def set_field(self, name: str, value: Any) -> None:
        """
        Apply one form input.

        'episodes.<sub|dub|eps>' and 'rank' are parsed as integers (invalid
        input becomes 0 and 1 respectively); 'keywords' holds a single
        primary tag.
        """
        if "." in name:
            parent, child = name.split(".", 1)
            if parent != "episodes" or child not in ("sub", "dub", "eps"):
                raise ValidationError(f"Unknown field: {name}")
            setattr(self.form.episodes, child, _parse_int(value, 0))
        elif name == "rank":
            self.form.rank = _parse_int(value, DEFAULT_RANK)
        elif name == "keywords":
            self.form.keywords = [str(value)]
        elif name == "posterType":
            if value not in POSTER_TYPES:
                raise ValidationError(f"posterType must be one of {POSTER_TYPES}")
            self.form.posterType = value
        elif name in TEXT_FIELDS:
            setattr(self.form, name, "" if value is None else str(value))
        else:
            raise ValidationError(f"Unknown field: {name}")

    def apply_details(self, details: Dict[str, Any]) -> SlideRecord:
        """Merge auto-filled details into the form, keeping the current poster."""
        episodes = self.form.episodes.to_dict()
        episodes.update(details.get("episodes") or {})

        merged = self.form.to_dict()
        merged.update({k: v for k, v in details.items() if k != "episodes"})
        merged["poster"] = self.form.poster
        merged["posterType"] = self.form.posterType
        merged["episodes"] = episodes

        self.form = SlideRecord.from_dict(merged)
        return self.form

    def auto_fill(self, allow_ai_only: bool = False) -> SlideRecord:
        if not self.form.title:
            raise ValidationError("Enter title first")
        details = generate_anime_details(self.form.title, allow_ai_only=allow_ai_only)
        logger.info(f"Auto-filled '{self.form.title}' as '{details.get('id')}'")
        return self.apply_details(details)

    def upload_media(
        self,
        path: Union[str, Path],
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> UploadResult:
        result = self._require_assets().upload(path, progress_callback=progress_callback)
        self.form.poster = result.secure_url
        self.form.posterType = result.media_kind
        return result

    def save_record(self) -> bool:
        """
        Insert or update the form record, keyed by slug.

        Returns:
            True if an existing record was updated, False if a new one was added.
        """
        if not (self.form.title and self.form.poster and self.form.id):
            raise ValidationError("Title, Media, and Slug Identifier are required.")

        record = copy.deepcopy(self.form)
        is_updating = find_slide(self.slides, record.id) is not None
        if is_updating:
            updated = [record if s.id == record.id else s for s in self.slides]
        else:
            updated = [record] + self.slides

        updated = sort_by_rank(updated)
        self.store.save(self.username, updated)

        self.slides = updated
        self.reset_form()
        logger.info(f"{'Updated' if is_updating else 'Saved'} slide '{record.id}' for '{self.username}'")
        return is_updating

    def delete_record(self, slug: str) -> SlideRecord:
        slide = find_slide(self.slides, slug)
        if slide is None:
            raise ValidationError(f'No slide with slug "{slug}".')

        updated = [s for s in self.slides if s.id != slug]
        self.store.save(self.username, updated)
        self.slides = updated
        logger.info(f"Deleted slide '{slug}' for '{self.username}'")
        return slide

    def publish_record(self, slug: str) -> str:
        """
        Upload one slide as its own feed file and record the public URL.

        Returns:
            The published URL.
        """
        slide = find_slide(self.slides, slug)
        if slide is None:
            raise ValidationError(f'No slide with slug "{slug}".')

        assets = self._require_assets()
        public_id = f"{PUBLISHED_SLIDE_PREFIX}/{self.username}/{slug}.json"
        assets.upload_json(build_feed([slide]), public_id=public_id, filename=f"{slug}.json")
        published_url = assets.raw_url(public_id)

        updated_slide = copy.deepcopy(slide)
        updated_slide.publishedUrl = published_url
        updated = [updated_slide if s.id == slug else s for s in self.slides]
        self.store.save(self.username, updated)
        self.slides = updated
        logger.info(f"Published '{slug}' to {published_url}")
        return published_url

    def export_feed(self) -> Dict[str, Any]:
        return build_feed(self.slides)

    def backup_filename(self) -> str:
        return backup_filename(self.username)

    def _require_assets(self) -> CloudinaryAPI:
        if self.assets is None:
            self.assets = CloudinaryAPI.from_config()
        return self.assets
