"""
Hero slide JSON feed: building, fetching and pushing.
"""

import json
import requests
from typing import Any, Dict, List, Optional, Tuple

from .constants import HERO_SLIDE_BASE_URL, FEED_TIMEOUT_SECONDS
from .models import SlideRecord
from .logging import get_logger, log_api_call, APIError, ConfigError

logger = get_logger(__name__)


def build_feed(slides: List[SlideRecord]) -> Dict[str, Any]:
    """The published shape: {success, data: {spotlight: [...]}}."""
    return {"success": True, "data": {"spotlight": [s.to_dict() for s in slides]}}


def dump_feed(slides: List[SlideRecord]) -> str:
    return json.dumps(build_feed(slides), indent=2, ensure_ascii=False)


def backup_filename(username: str) -> str:
    return f"heroslides_{username}_backup.json"


def load_raw_json_from_endpoint(url: str, timeout: int = FEED_TIMEOUT_SECONDS) -> Tuple[str, Optional[Any]]:
    """
    Fetch an endpoint and return its body exactly as sent, plus the parsed JSON.

    The parsed value is None when the body is not valid JSON.

    Raises:
        APIError: On transport failure or a non-2xx status.
    """
    log_api_call(url, "GET")
    try:
        res = requests.get(
            url,
            headers={"Accept": "application/json", "Cache-Control": "no-store"},
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        raise APIError(f"API request failed: {e}") from e

    if not res.ok:
        raise APIError(f"API failed: {res.status_code}")

    raw_text = res.text
    try:
        parsed = json.loads(raw_text)
    except ValueError:
        logger.warning(f"Response from {url} is not valid JSON")
        parsed = None

    return raw_text, parsed


def get_hero_slide(slug: str, base_url: str = HERO_SLIDE_BASE_URL) -> Tuple[str, Optional[Any]]:
    """Raw and parsed feed for one slug, e.g. 'blue-lock'."""
    url = f"{base_url.rstrip('/')}/{slug}"
    raw, parsed = load_raw_json_from_endpoint(url)
    logger.debug(f"RAW RESPONSE: {raw}")
    return raw, parsed


def push_feed(
    slides: List[SlideRecord],
    push_url: Optional[str],
    access_key: Optional[str] = None,
    timeout: int = FEED_TIMEOUT_SECONDS,
) -> int:
    """
    POST the feed to the configured push target.

    Returns:
        The HTTP status code of the push target's response.

    Raises:
        ConfigError: If no push URL is configured.
        APIError: On transport failure or a non-2xx status.
    """
    if not push_url:
        raise ConfigError("No push URL configured. Set it with 'anime-hero settings --push-url'.")

    headers = {"Content-Type": "application/json"}
    if access_key:
        headers["Authorization"] = f"Bearer {access_key}"

    log_api_call(push_url, "POST", {"slides": len(slides)})
    try:
        res = requests.post(push_url, data=dump_feed(slides).encode("utf-8"), headers=headers, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise APIError(f"Push failed: {e}") from e

    if not res.ok:
        raise APIError(f"Push target rejected the feed: {res.status_code}")

    logger.info(f"Pushed {len(slides)} slides to {push_url}")
    return res.status_code
