import hashlib
import re
import requests
from dataclasses import dataclass
from typing import Optional, Dict, Any

from .ai_api import call_gemini
from .constants import (
    SLIDE_COPY_PROMPT,
    SLIDE_COPY_SCHEMA,
    FULL_METADATA_PROMPT,
    FULL_METADATA_SCHEMA,
    DEFAULT_RANK,
    DEFAULT_TYPE,
    DEFAULT_QUALITY,
    DEFAULT_DURATION,
    NO_SYNOPSIS,
)
from .logging import get_logger, log_api_call, AnimeHeroError, APIError, AnimeNotFoundError

logger = get_logger(__name__)

_NON_SLUG_RE = re.compile(r'[^a-z0-9]+')


def slugify(text: str) -> str:
    """
    URL-safe slug: lowercase, every run of non [a-z0-9] becomes a single
    hyphen, no leading or trailing hyphen.
    """
    return _NON_SLUG_RE.sub('-', (text or "").lower()).strip('-')


@dataclass
class AnimeLookup:
    """The factual fields Jikan returns for a title's best match."""
    title: str
    title_english: str = ""
    alternative_title: str = ""
    synopsis: str = ""
    type: Optional[str] = None
    episodes: Optional[int] = None
    duration: Optional[str] = None
    aired: Optional[str] = None
    rank: Optional[int] = None
    mal_id: Optional[int] = None

    @classmethod
    def from_jikan(cls, anime: Dict[str, Any]) -> 'AnimeLookup':
        alternative = anime.get("title_japanese")
        if not alternative:
            alternative = next(
                (t.get("title") for t in anime.get("titles") or [] if t.get("type") == "Synonym"),
                ""
            )

        duration = anime.get("duration")
        if duration:
            duration = duration.replace(" per ep", "")

        aired = str(anime["year"]) if anime.get("year") else (anime.get("aired") or {}).get("string")

        return cls(
            title=anime.get("title") or "",
            title_english=anime.get("title_english") or "",
            alternative_title=alternative or "",
            synopsis=anime.get("synopsis") or "",
            type=anime.get("type"),
            episodes=anime.get("episodes"),
            duration=duration or None,
            aired=aired or None,
            rank=anime.get("rank"),
            mal_id=anime.get("mal_id"),
        )


def fetch_from_jikan(title: str, config=None) -> AnimeLookup:
    """
    Looks a title up on Jikan (MAL) and returns the best match.

    Raises:
        APIError: If Jikan is unreachable or answers with an error status.
        AnimeNotFoundError: If the search has no results.
    """
    if config is None:
        from .config import get_jikan_config
        config = get_jikan_config()

    url = f"{config.base_url.rstrip('/')}/anime"
    params = {"q": title, "limit": 1}
    log_api_call(url, "GET", params)

    try:
        resp = requests.get(url, params=params, timeout=config.timeout)
        resp.raise_for_status()
        data = resp.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Jikan API failed for '{title}': {e}")
        raise APIError("Could not connect to anime database (Jikan API).") from e

    results = data.get("data") or []
    if not results:
        raise AnimeNotFoundError(f'Anime "{title}" not found in the database.')

    lookup = AnimeLookup.from_jikan(results[0])
    logger.info(f"Jikan found a match for '{title}': {lookup.title}")
    return lookup


def generate_slide_copy(title: str, synopsis: str) -> Dict[str, Any]:
    """AI slug, keyword list and shortened synopsis for a known title."""
    result = call_gemini(
        SLIDE_COPY_PROMPT.format(title=title, synopsis=synopsis),
        response_schema=SLIDE_COPY_SCHEMA,
    )
    if not isinstance(result, dict) or not result.get("id"):
        raise APIError("Gemini did not return valid data.")
    return result


def generate_full_metadata(title: str) -> Dict[str, Any]:
    """AI-only metadata estimate, used when the anime database is unavailable."""
    result = call_gemini(
        FULL_METADATA_PROMPT.format(title=title),
        response_schema=FULL_METADATA_SCHEMA,
    )
    if not isinstance(result, dict):
        raise APIError("Gemini did not return valid data.")
    return result


def _first_int(*values: Any, default: int = 0) -> int:
    for value in values:
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return default


def _first_text(*values: Any, default: str = "") -> str:
    for value in values:
        if value:
            return str(value)
    return default


def fallback_slug(lookup: Optional[AnimeLookup], *titles: str) -> str:
    """
    Deterministic slug when the AI gave none.

    Tries each title, then the database's English title, then the MAL id.
    A title with no ASCII letters or digits at all still gets a stable slug
    from a hash of its text.
    """
    candidates = list(titles)
    if lookup:
        candidates.append(lookup.title_english)
    for candidate in candidates:
        slug = slugify(candidate)
        if slug:
            return slug
    if lookup and lookup.mal_id:
        return f"anime-{lookup.mal_id}"

    source = next((t.strip() for t in titles if t and t.strip()), "untitled")
    return f"anime-{hashlib.sha1(source.encode('utf-8')).hexdigest()[:8]}"


def merge_details(lookup: Optional[AnimeLookup], ai: Optional[Dict[str, Any]], title: str) -> Dict[str, Any]:
    """
    Merge database facts with AI output into slide fields.

    Factual fields (episodes, aired, duration, type, rank) prefer the
    database and fall back to the AI estimate. Slug, keywords and synopsis
    come from the AI; without it the slug is derived from the title and the
    database synopsis is used as-is.
    """
    ai = ai or {}
    ai_episodes = ai.get("episodes") if isinstance(ai.get("episodes"), dict) else {}
    base_title = (lookup.title if lookup else "") or _first_text(ai.get("title"), default=title)

    total = _first_int(lookup.episodes if lookup else None, ai_episodes.get("eps"), ai_episodes.get("sub"))
    details: Dict[str, Any] = {
        "title": base_title,
        "alternativeTitle": _first_text(lookup.alternative_title if lookup else None, ai.get("alternativeTitle")),
        "type": _first_text(lookup.type if lookup else None, ai.get("type"), default=DEFAULT_TYPE),
        "quality": DEFAULT_QUALITY,
        "duration": _first_text(lookup.duration if lookup else None, ai.get("duration"), default=DEFAULT_DURATION),
        "aired": _first_text(lookup.aired if lookup else None, ai.get("aired")),
        "rank": _first_int(lookup.rank if lookup else None, ai.get("rank"), default=DEFAULT_RANK),
        "episodes": {
            "sub": _first_int(lookup.episodes if lookup else None, ai_episodes.get("sub"), total),
            "dub": _first_int(ai_episodes.get("dub")),
            "eps": total,
        },
    }

    slug = slugify(ai.get("id") or "")
    if slug:
        keywords = [k for k in ai.get("keywords") or [] if isinstance(k, str) and k] or [slug]
        details["id"] = slug
        details["keywords"] = keywords
        details["synopsis"] = _first_text(ai.get("synopsis"), lookup.synopsis if lookup else None, default=NO_SYNOPSIS)
    else:
        fallback_id = fallback_slug(lookup, base_title, title)
        details["id"] = fallback_id
        details["keywords"] = [fallback_id]
        details["synopsis"] = _first_text(lookup.synopsis if lookup else None, default=NO_SYNOPSIS)

    return details


def generate_anime_details(title: str, allow_ai_only: bool = False) -> Dict[str, Any]:
    """
    Auto-fill entry point.

    1. Looks the title up on Jikan for factual fields.
    2. Asks Gemini for a slug, keywords and a short synopsis.
    3. Merges the two; an AI failure falls back to a title-derived slug.

    A Jikan failure aborts unless allow_ai_only is set, in which case the AI
    estimates everything and, if that fails too, a minimal record is built
    from the title alone.

    Raises:
        APIError: Jikan unreachable (strict mode).
        AnimeNotFoundError: No Jikan match (strict mode).
    """
    try:
        lookup = fetch_from_jikan(title)
    except APIError as e:
        if not allow_ai_only:
            raise
        logger.warning(f"Anime database lookup failed for '{title}' ({e}); using AI-only metadata.")
        try:
            ai = generate_full_metadata(title)
        except AnimeHeroError as ai_error:
            logger.warning(f"AI-only metadata failed for '{title}': {ai_error}. Using title-derived defaults.")
            ai = None
        return merge_details(None, ai, title)

    try:
        ai = generate_slide_copy(lookup.title, lookup.synopsis or NO_SYNOPSIS)
    except AnimeHeroError as e:
        logger.warning(f"Gemini enhancement failed, using Jikan data with basic slug: {e}")
        ai = None

    return merge_details(lookup, ai, title)
