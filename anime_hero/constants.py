"""
Constants used throughout the AnimeHero application.
"""

# Files
LOG_FILENAME = "anime_hero.log"
SETTINGS_FILENAME = "anime_hero_settings.json"
LOCAL_LIBRARY_FILENAME = "anime_hero_library.json"

# Cloudinary
CLOUDINARY_UPLOAD_URL_TEMPLATE = "https://api.cloudinary.com/v1_1/{cloud_name}/{resource_type}/upload"
CLOUDINARY_RAW_URL_TEMPLATE = "https://res.cloudinary.com/{cloud_name}/raw/upload/{public_id}"
CLOUDINARY_TIMEOUT_SECONDS = 120
UPLOAD_CHUNK_SIZE = 64 * 1024

# The single remote document holding every user's library
MASTER_DB_PUBLIC_ID = "userinfo.json"
# Published single-slide feeds live under hero_slide_data/{username}/{slug}
PUBLISHED_SLIDE_PREFIX = "hero_slide_data"

# Gemini
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_DEFAULT_MODEL = "gemini-3-flash-preview"
GEMINI_TIMEOUT = 60
GEMINI_MAX_RETRIES = 2

# Jikan (MyAnimeList)
JIKAN_BASE_URL = "https://api.jikan.moe/v4"
JIKAN_TIMEOUT = 10

# Hero slide feed endpoint consumed by fetch-slide
HERO_SLIDE_BASE_URL = "https://hero-admin-omega.vercel.app/heroslide"
FEED_TIMEOUT_SECONDS = 15

# Slide defaults (mirrors a blank editor form)
DEFAULT_RANK = 1
DEFAULT_TYPE = "TV"
DEFAULT_QUALITY = "HD"
DEFAULT_DURATION = "24m"
NO_SYNOPSIS = "No synopsis available."

SLIDE_TYPES = ("TV", "MOVIE", "OVA", "ONA")
QUALITIES = ("HD", "FHD", "4K", "CAM")
POSTER_TYPES = ("image", "video")

# Storage backends
STORAGE_BACKENDS = ("local", "cloud")

# Progress Display
PROGRESS_REFRESH_RATE = 10

# AI prompts
SLIDE_COPY_PROMPT = """
Based on the anime title "{title}", perform the following tasks and return ONLY the JSON object:
1. Create a URL-friendly 'id' (slug) from the title. For example, "Jujutsu Kaisen" becomes "jujutsu-kaisen".
2. Create a 'keywords' array containing only the generated 'id' as a string.
3. Summarize the following synopsis into an engaging, short paragraph (2-3 sentences max).
Synopsis to process: "{synopsis}"
"""

FULL_METADATA_PROMPT = """
Provide promotional metadata for the anime "{title}" and return ONLY the JSON object.
Use your best estimate for numbers you are unsure of; use 0 when completely unknown.
'id' must be a URL-friendly slug of the title and 'keywords' must contain only that slug.
Keep 'synopsis' to 2-3 engaging sentences.
"""

SLIDE_COPY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "id": {"type": "STRING", "description": "URL-friendly slug."},
        "keywords": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Array containing just the slug."
        },
        "synopsis": {"type": "STRING", "description": "Short, engaging summary."},
    },
}

FULL_METADATA_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "alternativeTitle": {"type": "STRING"},
        "id": {"type": "STRING", "description": "URL-friendly slug."},
        "type": {"type": "STRING", "enum": list(SLIDE_TYPES)},
        "duration": {"type": "STRING", "description": "Episode length, e.g. 24m."},
        "aired": {"type": "STRING", "description": "Year first aired."},
        "rank": {"type": "INTEGER"},
        "synopsis": {"type": "STRING"},
        "keywords": {"type": "ARRAY", "items": {"type": "STRING"}},
        "episodes": {
            "type": "OBJECT",
            "properties": {
                "sub": {"type": "INTEGER"},
                "dub": {"type": "INTEGER"},
                "eps": {"type": "INTEGER"},
            },
        },
    },
}
