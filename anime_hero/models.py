from dataclasses import dataclass, field, asdict, fields
from typing import List, Optional, Dict, Any

from .constants import DEFAULT_RANK, DEFAULT_TYPE, DEFAULT_QUALITY, DEFAULT_DURATION


def _known_keys(cls) -> set:
    return {f.name for f in fields(cls)}


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Episodes:
    """Episode counts: subbed, dubbed and total ('eps')."""
    sub: int = 0
    dub: int = 0
    eps: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Episodes':
        data = data or {}
        return cls(
            sub=_to_int(data.get("sub"), 0),
            dub=_to_int(data.get("dub"), 0),
            eps=_to_int(data.get("eps"), 0),
        )


@dataclass
class SlideRecord:
    """
    One promotional hero slide: anime metadata plus artwork.

    Attribute names match the JSON feed keys, so the record serializes
    without a mapping layer. `id` is the slug and the record's identity.
    """
    title: str = ""
    alternativeTitle: str = ""
    id: str = ""
    poster: str = ""
    posterType: str = "image"  # image | video
    logo: str = ""
    rank: int = DEFAULT_RANK
    type: str = DEFAULT_TYPE
    quality: str = DEFAULT_QUALITY
    duration: str = DEFAULT_DURATION
    aired: str = ""
    synopsis: str = ""
    keywords: List[str] = field(default_factory=list)
    episodes: Episodes = field(default_factory=Episodes)
    publishedUrl: str = ""

    @property
    def slug(self) -> str:
        return self.id

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Optional fields stay out of the feed when blank
        for optional in ("logo", "publishedUrl"):
            if not data.get(optional):
                data.pop(optional, None)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SlideRecord':
        # Filter unknown keys to prevent init errors if the feed schema changes
        valid_keys = _known_keys(cls)
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        filtered["episodes"] = Episodes.from_dict(filtered.get("episodes"))
        if "rank" in filtered:
            filtered["rank"] = _to_int(filtered["rank"], 0)
        if "keywords" in filtered and not isinstance(filtered["keywords"], list):
            filtered["keywords"] = [str(filtered["keywords"])] if filtered["keywords"] else []
        for text_key in ("logo", "publishedUrl", "aired", "alternativeTitle"):
            if filtered.get(text_key) is None and text_key in filtered:
                filtered[text_key] = ""
        return cls(**filtered)


@dataclass
class UserInfo:
    username: str
    joinedAt: str
    lastActive: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserInfo':
        return cls(
            username=data.get("username", ""),
            joinedAt=data.get("joinedAt", ""),
            lastActive=data.get("lastActive", ""),
        )


@dataclass
class UserLibraryEntry:
    """One user's slot in the master document."""
    info: UserInfo
    library: List[SlideRecord] = field(default_factory=list)
    lastUpdated: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "info": self.info.to_dict(),
            "library": [s.to_dict() for s in self.library],
            "lastUpdated": self.lastUpdated,
        }

    @classmethod
    def from_dict(cls, username: str, data: Dict[str, Any]) -> 'UserLibraryEntry':
        info = data.get("info") or {}
        library = data.get("library")
        return cls(
            info=UserInfo.from_dict({"username": username, **info}),
            library=[SlideRecord.from_dict(s) for s in library if isinstance(s, dict)] if isinstance(library, list) else [],
            lastUpdated=data.get("lastUpdated", ""),
        )


@dataclass
class MasterDocument:
    """
    Every user's library, stored as one JSON file.

    Entries are held exactly as fetched and only parsed when read, so
    writing one user's entry leaves every other entry (and any other
    top-level key) untouched.
    """
    users: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def entry(self, username: str) -> Optional[UserLibraryEntry]:
        data = self.users.get(username)
        if not isinstance(data, dict):
            return None
        return UserLibraryEntry.from_dict(username, data)

    def set_entry(self, username: str, entry: UserLibraryEntry) -> None:
        self.users[username] = entry.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        return {**self.extra, "users": self.users}

    @classmethod
    def from_dict(cls, data: Any) -> 'MasterDocument':
        """Payloads without a 'users' mapping read as an empty document."""
        if not isinstance(data, dict):
            return cls()
        users = data.get("users")
        return cls(
            users=dict(users) if isinstance(users, dict) else {},
            extra={k: v for k, v in data.items() if k != "users"},
        )


def sort_by_rank(slides: List[SlideRecord]) -> List[SlideRecord]:
    """Stable ascending sort by rank; a missing rank counts as 0."""
    return sorted(slides, key=lambda s: s.rank or 0)


def find_slide(slides: List[SlideRecord], slug: str) -> Optional[SlideRecord]:
    for slide in slides:
        if slide.id == slug:
            return slide
    return None
