from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from ..core.models import Clip, is_global
from ..core.utils import lookback_start, parse_timestamp
from ..errors import SourceUnavailable, SubjectNotFound
from .http import build_client, request_json

logger = logging.getLogger(__name__)

API_URL = "https://api.twitch.tv/helix"
TOKEN_URL = "https://id.twitch.tv/oauth2/token"
TOP_GAMES = 20
GAMES_SAMPLED = 10
CLIPS_PER_GAME = 20
MAX_PAGE_SIZE = 100


def _to_clip(item: dict[str, Any]) -> Optional[Clip]:
    if not isinstance(item, dict):
        return None
    try:
        return Clip(
            id=str(item["id"]),
            title=item.get("title"),
            url=item["url"],
            view_count=int(item.get("view_count") or 0),
            duration=float(item.get("duration") or 0),
            created_at=parse_timestamp(item.get("created_at")),
            thumbnail_url=item.get("thumbnail_url") or "",
            creator=item.get("broadcaster_name") or item.get("broadcaster_login"),
            platform="twitch",
        )
    except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
        logger.debug("Skipping malformed Twitch clip %s: %s", item.get("id"), exc)
        return None


class TwitchSource:
    """Top clips from the Twitch Helix API using an app access token."""

    name = "twitch"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        lookback_days: int = 7,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not (client_id and client_secret):
            raise ValueError("Twitch client ID and secret are required")
        self.client_id = client_id
        self.client_secret = client_secret
        self.lookback_days = lookback_days
        self.timeout = timeout
        self._transport = transport

    async def fetch_top_clips(self, subject: str, limit: int = 10) -> List[Clip]:
        async with build_client(self.timeout, self._transport) as client:
            headers = await self._auth_headers(client)
            if is_global(subject):
                raw = await self._trending_clips(client, headers, limit)
            else:
                raw = await self._user_clips(client, headers, subject, limit)

        clips = [clip for clip in map(_to_clip, raw) if clip is not None]
        clips.sort(key=lambda clip: clip.view_count, reverse=True)
        return clips[:limit]

    async def _auth_headers(self, client: httpx.AsyncClient) -> dict[str, str]:
        payload = await request_json(
            client,
            "POST",
            TOKEN_URL,
            platform=self.name,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "client_credentials",
            },
        )
        token = (payload or {}).get("access_token")
        if not token:
            raise SourceUnavailable(self.name, "authentication returned no access token")
        return {"Client-ID": self.client_id, "Authorization": f"Bearer {token}"}

    async def _trending_clips(
        self, client: httpx.AsyncClient, headers: dict[str, str], limit: int
    ) -> list[dict[str, Any]]:
        games = await request_json(
            client,
            "GET",
            f"{API_URL}/games/top",
            platform=self.name,
            headers=headers,
            params={"first": TOP_GAMES},
        )
        started_at = lookback_start(self.lookback_days)

        async def clips_for(game: dict[str, Any]) -> list[dict[str, Any]]:
            try:
                payload = await request_json(
                    client,
                    "GET",
                    f"{API_URL}/clips",
                    platform=self.name,
                    headers=headers,
                    params={
                        "game_id": game["id"],
                        "first": min(CLIPS_PER_GAME, limit),
                        "started_at": started_at,
                    },
                )
            except SourceUnavailable as exc:
                logger.warning("Failed to get clips for game %s: %s", game.get("name"), exc)
                return []
            return payload.get("data", [])

        batches = await asyncio.gather(*(clips_for(game) for game in games.get("data", [])[:GAMES_SAMPLED]))
        return [item for batch in batches for item in batch]

    async def _user_clips(
        self, client: httpx.AsyncClient, headers: dict[str, str], username: str, limit: int
    ) -> list[dict[str, Any]]:
        users = await request_json(
            client,
            "GET",
            f"{API_URL}/users",
            platform=self.name,
            headers=headers,
            params={"login": username},
        )
        data = users.get("data") or []
        if not data:
            raise SubjectNotFound(self.name, username)

        payload = await request_json(
            client,
            "GET",
            f"{API_URL}/clips",
            platform=self.name,
            headers=headers,
            params={
                "broadcaster_id": data[0]["id"],
                "first": min(limit, MAX_PAGE_SIZE),
                "started_at": lookback_start(self.lookback_days),
            },
        )
        return payload.get("data", [])
