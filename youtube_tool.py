"""
youtube_tool.py — YouTube channel analytics tool logic
YouTube Data API v3 integration and the channel metrics derived from it.

Tools:
  1. analyze_channel   — full analytics record for one channel
  2. get_channel_info  — single-step workflow projection of analyze_channel

Derivers (pure, no I/O):
  parse_duration, analyze_upload_frequency, get_common_tags,
  calculate_average_length, classify_genre
"""

import re
import os
import logging
import requests
from pathlib import Path
from collections import Counter
from datetime import datetime, timezone
from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

# Load .env from the same folder as this file — works regardless of cwd
load_dotenv(dotenv_path=Path(__file__).parent / ".env")

BASE_URL = "https://www.googleapis.com/youtube/v3"
DEFAULT_TIMEOUT = 10.0

RECENT_VIDEO_LIMIT = 10
TOP_VIDEO_LIMIT = 5
HANDLE_SEARCH_LIMIT = 5
MAX_COMMON_TAGS = 10

UNKNOWN_DURATION = "Unknown"

logger = logging.getLogger("youtube-mcp.tool")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ConfigurationError(RuntimeError):
    """The tool cannot run at all, e.g. YOUTUBE_API_KEY is not set."""


class ChannelNotFoundError(ValueError):
    """Search or detail lookup returned nothing for the query."""

    def __init__(self, query: str):
        super().__init__(f"Channel not found: {query}")
        self.query = query


class ChannelFetchError(RuntimeError):
    """Any other failure while fetching or merging channel data."""

    def __init__(self, query: str, cause: Exception):
        super().__init__(f"Failed to fetch channel data: {cause}")
        self.query = query


def require_api_key() -> str:
    """Return the configured API key or fail before any request is made."""
    api_key = os.environ.get("YOUTUBE_API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError("YOUTUBE_API_KEY environment variable is required")
    return api_key


def _request_timeout() -> float:
    try:
        return float(os.environ.get("YOUTUBE_API_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        return DEFAULT_TIMEOUT


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _get(endpoint: str, params: dict) -> dict:
    """Thin wrapper around requests.get with shared API key and error handling."""
    logger.debug(f"GET {endpoint} | {params}")
    params["key"] = require_api_key()
    response = requests.get(f"{BASE_URL}/{endpoint}", params=params, timeout=_request_timeout())
    response.raise_for_status()
    return response.json()


def _safe_int(value) -> int:
    """Safely coerce a value to int, returning 0 on failure."""
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _thumbnail_url(thumbnails: dict) -> str:
    """Pick the high thumbnail, falling back to smaller ones."""
    for quality in ("high", "medium", "default"):
        if quality in thumbnails:
            return thumbnails[quality].get("url", "")
    return ""


def _parse_timestamp(value) -> datetime | None:
    """Accept a datetime or an ISO 8601 string (with 'Z'); None if unparseable."""
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _format_timestamp(dt: datetime) -> str:
    """UTC, millisecond precision, 'Z' suffix: 2024-05-01T12:00:00.000Z"""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ===========================================================================
# DERIVERS
# ===========================================================================

def parse_duration(duration: str) -> int:
    """
    Convert an ISO 8601 duration (e.g. PT1H2M3S) to total seconds.
    Empty, "Unknown" or unrecognised tokens degrade to 0 instead of raising.
    """
    if not duration or duration == UNKNOWN_DURATION:
        return 0
    match = re.search(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?", duration)
    if not match:
        return 0
    h, m, s = (int(x or 0) for x in match.groups())
    return h * 3600 + m * 60 + s


def analyze_upload_frequency(timestamps: list) -> str:
    """Bucket the average gap between uploads into a cadence label."""
    parsed = [dt for dt in (_parse_timestamp(t) for t in timestamps) if dt is not None]
    if len(parsed) < 2:
        return "Insufficient data"

    ordered = sorted(parsed, reverse=True)
    gaps = [
        abs((ordered[i] - ordered[i + 1]).total_seconds()) / 86400
        for i in range(len(ordered) - 1)
    ]
    gaps = [g for g in gaps if g > 0]

    if not gaps:
        return "Irregular"

    avg_days = sum(gaps) / len(gaps)

    if avg_days <= 1:
        return "Daily"
    if avg_days <= 3:
        return "2-3 times per week"
    if avg_days <= 7:
        return "Weekly"
    if avg_days <= 14:
        return "Bi-weekly"
    if avg_days <= 30:
        return "Monthly"
    return "Irregular"


def get_common_tags(tags: list, limit: int = MAX_COMMON_TAGS) -> list:
    """Most frequent distinct tags; equal counts keep first-seen order."""
    return [tag for tag, _ in Counter(tags).most_common(limit)]


def calculate_average_length(videos: list) -> str:
    """Mean duration of the videos as M:SS, or "Unknown" with no usable durations."""
    durations = [parse_duration(v.get("duration", "")) for v in videos]
    durations = [d for d in durations if d > 0]

    if not durations:
        return UNKNOWN_DURATION

    avg_seconds = sum(durations) / len(durations)
    minutes = int(avg_seconds // 60)
    seconds = int(avg_seconds % 60)
    return f"{minutes}:{seconds:02d}"


# Checked in order; the first group with a hit wins.
GENRE_KEYWORDS = [
    ("Gaming", ("gaming", "game")),
    ("Technology", ("tech", "technology")),
    ("Science & Education", ("science", "education")),
    ("Entertainment", ("entertainment", "comedy")),
    ("Music", ("music",)),
    ("Lifestyle", ("vlog", "lifestyle")),
    ("News & Politics", ("news",)),
    ("Business & Finance", ("business", "finance")),
]


def classify_genre(description: str) -> str:
    """Keyword scan of a channel description; "General" when nothing matches."""
    text = (description or "").lower()
    for genre, keywords in GENRE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return genre
    return "General"


# ---------------------------------------------------------------------------
# Aggregation helpers
# ---------------------------------------------------------------------------

def _avg_views_per_video(total_views: int, total_videos: int) -> int:
    """Lifetime views / lifetime videos, rounded half up."""
    if total_videos <= 0:
        return 0
    return (2 * total_views + total_videos) // (2 * total_videos)


def _engagement_rate(videos: list) -> float:
    """(likes + comments) / views * 100 over the given sample."""
    total_engagement = sum(v["likes"] + v["comments"] for v in videos)
    total_views = sum(v["views"] for v in videos)
    if total_views <= 0:
        return 0
    return round(total_engagement / total_views * 100, 2)


def _resolve_channel(channel_query: str) -> dict:
    """Search for the channel and return the chosen search result item."""
    if channel_query.startswith("@"):
        handle = channel_query[1:]
        data = _get("search", {
            "part": "snippet",
            "q": handle,
            "type": "channel",
            "maxResults": HANDLE_SEARCH_LIMIT,
        })
        items = data.get("items") or []
        if not items:
            raise ChannelNotFoundError(channel_query)

        needle = handle.lower()
        for item in items:
            snippet = item.get("snippet", {})
            if (needle in snippet.get("title", "").lower()
                    or needle in (snippet.get("customUrl") or "").lower()):
                return item
        return items[0]

    data = _get("search", {
        "part": "snippet",
        "q": channel_query,
        "type": "channel",
        "maxResults": 1,
    })
    items = data.get("items") or []
    if not items:
        raise ChannelNotFoundError(channel_query)
    return items[0]


def _search_channel_videos(channel_id: str, order: str, limit: int) -> list:
    data = _get("search", {
        "part": "snippet",
        "channelId": channel_id,
        "order": order,
        "maxResults": limit,
        "type": "video",
    })
    return (data.get("items") or [])[:limit]


def _video_id(search_item: dict) -> str:
    return (search_item.get("id") or {}).get("videoId") or ""


def _fetch_video_details(video_ids: list) -> list:
    if not video_ids:
        return []
    data = _get("videos", {
        "part": "statistics,snippet,contentDetails",
        "id": ",".join(video_ids),
    })
    return data.get("items") or []


def _build_video(search_item: dict, details: list, with_description: bool) -> dict:
    """Merge a search result with its detail record, found by linear lookup."""
    video_id = _video_id(search_item)
    detail = next((d for d in details if d.get("id") == video_id), {})
    snippet = search_item.get("snippet", {})
    detail_snippet = detail.get("snippet", {})
    stats = detail.get("statistics", {})

    return {
        "video_id": video_id,
        "title": snippet.get("title", ""),
        "views": _safe_int(stats.get("viewCount", 0)),
        "likes": _safe_int(stats.get("likeCount", 0)),
        "comments": _safe_int(stats.get("commentCount", 0)),
        "duration": detail.get("contentDetails", {}).get("duration") or UNKNOWN_DURATION,
        "published_at": snippet.get("publishedAt", ""),
        "tags": list(detail_snippet.get("tags") or []),
        "thumbnail_url": _thumbnail_url(snippet.get("thumbnails") or {}),
        "description": detail_snippet.get("description", "") if with_description else None,
    }


# ===========================================================================
# TOOLS
# ===========================================================================

# ---------------------------------------------------------------------------
# Tool 1 — analyze_channel
# ---------------------------------------------------------------------------

def analyze_channel(channel: str) -> dict:
    """
    Fetch a channel by name or @handle and derive its analytics record:
    stats, latest and top videos, upload cadence, engagement rate,
    common tags, average video length and genre.

    Raises ChannelNotFoundError when the search or detail lookup is empty,
    ChannelFetchError for any other failure along the way.
    """
    require_api_key()
    channel_query = channel.strip()

    try:
        found = _resolve_channel(channel_query)
        found_snippet = found.get("snippet", {})
        channel_id = found_snippet.get("channelId") or (found.get("id") or {}).get("channelId", "")
        channel_title = found_snippet.get("title", "")
        channel_description = found_snippet.get("description", "")

        data = _get("channels", {
            "part": "statistics,snippet,brandingSettings",
            "id": channel_id,
        })
        items = data.get("items") or []
        if not items:
            raise ChannelNotFoundError(channel_query)

        snippet = items[0].get("snippet", {})
        stats = items[0].get("statistics", {})
        total_videos = _safe_int(stats.get("videoCount", 0))
        subscribers = _safe_int(stats.get("subscriberCount", 0))
        total_views = _safe_int(stats.get("viewCount", 0))

        recent_items = _search_channel_videos(channel_id, "date", RECENT_VIDEO_LIMIT)
        popular_items = _search_channel_videos(channel_id, "viewCount", TOP_VIDEO_LIMIT)

        video_ids = list(dict.fromkeys(
            vid for vid in map(_video_id, recent_items + popular_items) if vid
        ))
        details = _fetch_video_details(video_ids)

        latest_videos = [_build_video(item, details, with_description=True) for item in recent_items]
        top_videos = [_build_video(item, details, with_description=False) for item in popular_items]
    except ChannelNotFoundError:
        raise
    except Exception as e:
        raise ChannelFetchError(channel_query, e) from e

    upload_dates = sorted(
        (dt for dt in (_parse_timestamp(v["published_at"]) for v in latest_videos) if dt is not None),
        reverse=True,
    )
    all_tags = [tag for v in latest_videos for tag in v["tags"]]

    logger.info(f"Analyzed channel '{channel_title}' ({channel_id}): "
                f"{len(latest_videos)} latest, {len(top_videos)} top videos")

    return {
        "name": channel_title,
        "channel_id": channel_id,
        "custom_url": snippet.get("customUrl") or None,
        "subscribers": subscribers,
        "total_videos": total_videos,
        "total_views": total_views,
        "summary": channel_description,
        "genre": classify_genre(channel_description),
        "created_at": snippet.get("publishedAt", ""),
        "country": snippet.get("country") or None,
        "upload_frequency": analyze_upload_frequency(upload_dates),
        "avg_views_per_video": _avg_views_per_video(total_views, total_videos),
        "engagement_rate": _engagement_rate(latest_videos),
        "latest_videos": latest_videos,
        "top_videos": top_videos,
        "recent_upload_dates": [_format_timestamp(dt) for dt in upload_dates],
        "common_tags": get_common_tags(all_tags),
        "avg_video_length": calculate_average_length(latest_videos),
    }


# ---------------------------------------------------------------------------
# Tool 2 — get_channel_info
# ---------------------------------------------------------------------------

def _video_summary(video: dict) -> dict:
    return {"title": video["title"], "views": video["views"], "tags": video["tags"]}


def get_channel_info(channel: str) -> dict:
    """
    Single-step workflow: summary, genre, subscribers and videos of a channel.
    A reduced projection of analyze_channel.
    """
    record = analyze_channel(channel)
    top_videos = record["top_videos"]

    return {
        "name": record["name"],
        "channel_id": record["channel_id"],
        "subscribers": record["subscribers"],
        "total_videos": record["total_videos"],
        "summary": record["summary"],
        "genre": record["genre"],
        "latest_videos": [_video_summary(v) for v in record["latest_videos"]],
        "top_video": _video_summary(top_videos[0]) if top_videos else None,
    }
