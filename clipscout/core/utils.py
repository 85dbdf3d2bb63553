"""Utility helpers shared by the adapters and the download stage."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

ISO_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
# '[' ']' break glob lookups of the output stem, '%' breaks yt-dlp templates.
UNSAFE_FILENAME_RE = re.compile(r'[<>:"/\\|?*\[\]%\x00-\x1f]')
WHITESPACE_RE = re.compile(r"\s+")
MAX_FILENAME_LENGTH = 100


def iso8601_to_seconds(duration: str | None) -> int:
    """Convert ISO8601 duration strings (PTxxHxxMxxS) into seconds."""
    if not duration:
        return 0
    match = ISO_DURATION_RE.fullmatch(duration)
    if not match:
        return 0
    hours, minutes, seconds = match.groups()
    return (int(hours or 0) * 3600) + (int(minutes or 0) * 60) + int(seconds or 0)


def parse_timestamp(value: object) -> datetime:
    """Parse an API timestamp, falling back to now for missing/garbled values."""
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(timezone.utc)
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def lookback_start(days: int) -> str:
    """RFC3339 timestamp ``days`` ago, the format Twitch and YouTube expect."""
    start = datetime.now(timezone.utc) - timedelta(days=days)
    return start.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def sanitize_filename(name: str, max_length: int = MAX_FILENAME_LENGTH) -> str:
    """Make ``name`` safe as a single path component.

    Filesystem-hostile characters become ``_``, whitespace runs collapse into a
    single ``_`` and the result is capped at ``max_length`` characters.
    """
    cleaned = UNSAFE_FILENAME_RE.sub("_", name)
    cleaned = WHITESPACE_RE.sub("_", cleaned.strip())
    cleaned = cleaned[:max_length].strip(".")
    return cleaned or "untitled"
