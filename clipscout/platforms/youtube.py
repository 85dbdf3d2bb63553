from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

from googleapiclient.discovery import build  # type: ignore
from googleapiclient.errors import HttpError  # type: ignore
from pydantic import ValidationError

from ..core.models import Clip, is_global
from ..core.utils import iso8601_to_seconds, lookback_start, parse_timestamp
from ..errors import SourceUnavailable, SubjectNotFound

logger = logging.getLogger(__name__)

MAX_RESULTS = 50


def _to_clip(item: dict[str, Any]) -> Optional[Clip]:
    if not isinstance(item, dict):
        return None
    try:
        snippet = item.get("snippet") or {}
        stats = item.get("statistics") or {}
        content = item.get("contentDetails") or {}
        thumbnails = snippet.get("thumbnails") or {}
        thumbnail = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url", "")
        return Clip(
            id=item["id"],
            title=snippet.get("title"),
            url=f"https://www.youtube.com/watch?v={item['id']}",
            view_count=int(stats.get("viewCount", 0) or 0),
            duration=iso8601_to_seconds(content.get("duration")),
            created_at=parse_timestamp(snippet.get("publishedAt")),
            thumbnail_url=thumbnail,
            creator=snippet.get("channelTitle"),
            platform="youtube",
        )
    except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
        logger.debug("Skipping malformed YouTube video %s: %s", item.get("id"), exc)
        return None


class YouTubeSource:
    """Most viewed recent uploads through the YouTube Data API v3."""

    name = "youtube"

    def __init__(self, api_key: str, *, lookback_days: int = 7, client: Any = None) -> None:
        if not api_key and client is None:
            raise ValueError("YOUTUBE_API_KEY not configured")
        self.api_key = api_key
        self.lookback_days = lookback_days
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = build("youtube", "v3", developerKey=self.api_key, cache_discovery=False)
        return self._client

    async def fetch_top_clips(self, subject: str, limit: int = 10) -> List[Clip]:
        try:
            return await asyncio.to_thread(self._fetch, subject, limit)
        except HttpError as exc:
            raise SourceUnavailable(self.name, f"YouTube API error: {exc}") from exc

    def _fetch(self, subject: str, limit: int) -> List[Clip]:
        params: dict[str, Any] = {
            "part": "snippet",
            "type": "video",
            "order": "viewCount",
            "maxResults": min(limit, MAX_RESULTS),
            "publishedAfter": lookback_start(self.lookback_days),
        }
        if not is_global(subject):
            params["channelId"] = self._resolve_channel(subject)

        search = self.client.search().list(**params).execute()
        ids = [x["id"]["videoId"] for x in search.get("items", []) if x.get("id", {}).get("videoId")]
        if not ids:
            return []
        details = (
            self.client.videos()
            .list(part="snippet,statistics,contentDetails", id=",".join(ids))
            .execute()
        )
        clips = [clip for clip in map(_to_clip, details.get("items", [])) if clip is not None]
        clips.sort(key=lambda clip: clip.view_count, reverse=True)
        return clips[:limit]

    def _resolve_channel(self, username: str) -> str:
        """Legacy username lookup first, then a channel search by name."""
        channels = self.client.channels().list(part="id", forUsername=username).execute()
        items = channels.get("items") or []
        if items:
            return items[0]["id"]

        found = (
            self.client.search()
            .list(part="snippet", type="channel", q=username, maxResults=1)
            .execute()
        )
        items = found.get("items") or []
        if not items:
            raise SubjectNotFound(self.name, username)
        return items[0]["snippet"]["channelId"]
