"""Merge clips from several platforms into one ranking."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, List, Mapping, Sequence

from .models import Clip, is_global

if TYPE_CHECKING:
    from ..platforms import SourceAdapter

logger = logging.getLogger(__name__)

# Per-platform floor for global queries so enough variety survives truncation.
GLOBAL_MIN_FETCH = 20


class ClipAggregator:
    """Fan a query out to every selected adapter and rank the union by views."""

    def __init__(self, adapters: Mapping[str, "SourceAdapter"], *, min_views: int = 0) -> None:
        self.adapters = dict(adapters)
        self.min_views = min_views

    async def aggregate(
        self,
        subject: str,
        platforms: Sequence[str],
        limit: int,
        offset: int = 0,
    ) -> List[Clip]:
        """Return at most ``limit`` clips, most viewed first.

        Each platform is asked for ``limit + offset`` clips (at least
        ``GLOBAL_MIN_FETCH`` for global queries) and its first ``offset`` are
        skipped. A failing platform contributes nothing. Ties keep platform
        order, then adapter order.
        """
        if limit <= 0:
            return []
        selected = [name for name in dict.fromkeys(platforms) if self._has_adapter(name)]
        fetch_limit = limit + offset
        if is_global(subject):
            fetch_limit = max(fetch_limit, GLOBAL_MIN_FETCH)

        label = "trending clips" if is_global(subject) else f"clips for {subject}"
        logger.info("Searching for top %s (offset: %d)", label, offset)

        batches = await asyncio.gather(
            *(self._fetch_platform(name, subject, fetch_limit, offset) for name in selected)
        )

        merged: list[Clip] = []
        for batch in batches:
            merged.extend(clip for clip in batch if clip.view_count >= self.min_views)
        ranked = sorted(merged, key=lambda clip: clip.view_count, reverse=True)[:limit]

        logger.info("Total clips found: %d", len(ranked))
        if ranked and is_global(subject):
            top = ranked[0]
            logger.info("Top clip overall: %r from %s (%s views)", top.title, top.platform, f"{top.view_count:,}")
        return ranked

    def _has_adapter(self, name: str) -> bool:
        if name in self.adapters:
            return True
        logger.warning("Platform %s not configured, skipping...", name)
        return False

    async def _fetch_platform(self, name: str, subject: str, fetch_limit: int, offset: int) -> List[Clip]:
        try:
            clips = list(await self.adapters[name].fetch_top_clips(subject, fetch_limit))
        except Exception as exc:
            logger.error("Error fetching clips from %s: %s", name, exc)
            return []
        window = clips[offset:]
        logger.info("Found %d clips from %s (after offset)", len(window), name)
        return window
