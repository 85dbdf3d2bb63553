from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from ..core.models import Clip, is_global
from ..core.utils import parse_timestamp
from ..errors import SourceUnavailable, SubjectNotFound
from .http import build_client, request_json

logger = logging.getLogger(__name__)

API_URL = "https://kick.com/api/v2"
TRENDING_ENDPOINTS = ("clips/trending", "clips/featured", "clips")
MAX_PAGE_SIZE = 100
MAX_CHANNEL_PAGE_SIZE = 50


def _items(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return payload.get("data") or payload.get("clips") or []
    return []


def _to_clip(item: dict[str, Any]) -> Optional[Clip]:
    if not isinstance(item, dict):
        return None
    try:
        channel = item.get("channel") or {}
        slug = channel.get("slug") or ""
        return Clip(
            id=str(item["id"]),
            title=item.get("title"),
            url=item.get("clip_url") if not slug else f"https://kick.com/{slug}/clips/{item['id']}",
            view_count=int(item.get("views") or item.get("view_count") or 0),
            duration=float(item.get("duration") or 0),
            created_at=parse_timestamp(item.get("created_at")),
            thumbnail_url=item.get("thumbnail_url") or "",
            creator=channel.get("username") or slug,
            platform="kick",
        )
    except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
        logger.debug("Skipping malformed Kick clip %s: %s", item.get("id"), exc)
        return None


class KickSource:
    """Public Kick clips; no credentials required."""

    name = "kick"

    def __init__(self, *, timeout: float = 20.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.timeout = timeout
        self._transport = transport

    async def fetch_top_clips(self, subject: str, limit: int = 10) -> List[Clip]:
        async with build_client(self.timeout, self._transport) as client:
            if is_global(subject):
                raw = await self._trending_clips(client, limit)
            else:
                raw = await self._user_clips(client, subject, limit)

        clips: list[Clip] = []
        seen: set[str] = set()
        for item in raw:
            clip = _to_clip(item)
            if clip is None or clip.id in seen:
                continue
            seen.add(clip.id)
            clips.append(clip)
        clips.sort(key=lambda clip: clip.view_count, reverse=True)
        return clips[:limit]

    async def _trending_clips(self, client: httpx.AsyncClient, limit: int) -> list[dict[str, Any]]:
        collected: list[dict[str, Any]] = []
        failures = 0
        for endpoint in TRENDING_ENDPOINTS:
            try:
                payload = await request_json(
                    client,
                    "GET",
                    f"{API_URL}/{endpoint}",
                    platform=self.name,
                    params={"limit": min(limit * 2, MAX_PAGE_SIZE)},
                )
            except SourceUnavailable as exc:
                failures += 1
                logger.warning("Failed to fetch from %s: %s", endpoint, exc)
                continue
            collected.extend(_items(payload))
        if failures == len(TRENDING_ENDPOINTS):
            raise SourceUnavailable(self.name, "all trending endpoints failed")
        return collected

    async def _user_clips(self, client: httpx.AsyncClient, username: str, limit: int) -> list[dict[str, Any]]:
        channel = await request_json(
            client,
            "GET",
            f"{API_URL}/channels/{username}",
            platform=self.name,
            allow_missing=True,
        )
        if not channel:
            raise SubjectNotFound(self.name, username)

        slug = channel.get("slug") or username
        payload = await request_json(
            client,
            "GET",
            f"{API_URL}/channels/{slug}/clips",
            platform=self.name,
            params={"limit": min(limit, MAX_CHANNEL_PAGE_SIZE)},
        )
        owner = (channel.get("user") or {}).get("username") or slug
        items = _items(payload)
        for item in items:
            if not isinstance(item, dict):
                continue
            # Channel clip listings omit the embedded channel object.
            item.setdefault("channel", {"slug": slug, "username": owner})
        return items
