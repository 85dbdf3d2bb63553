from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from clipscout.core.models import Clip

CLIP_DATE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_clip(clip_id, views=0, *, platform="twitch", creator="streamer", title=None, duration=30.0):
    return Clip(
        id=str(clip_id),
        title=title or f"Clip {clip_id}",
        url=f"https://clips.example/{platform}/{clip_id}",
        view_count=views,
        duration=duration,
        created_at=CLIP_DATE,
        creator=creator,
        platform=platform,
    )


class FakeAdapter:
    """Serves a fixed ranking and records every call."""

    def __init__(self, name, clips=(), *, error=None):
        self.name = name
        self.clips = sorted(clips, key=lambda clip: clip.view_count, reverse=True)
        self.error = error
        self.calls = []

    async def fetch_top_clips(self, subject, limit):
        self.calls.append((subject, limit))
        if self.error is not None:
            raise self.error
        return self.clips[:limit]


class FakeFetcher:
    """Writes the url into an ``.mp4`` where yt-dlp would, unless told to fail.

    Like yt-dlp with ``overwrites`` off, an existing file is left untouched.
    """

    def __init__(self, *, fail_urls=(), write=True):
        self.fail_urls = set(fail_urls)
        self.write = write
        self.calls = []

    def fetch(self, url, output_template, format_selector):
        self.calls.append((url, output_template, format_selector))
        if url in self.fail_urls:
            raise RuntimeError("ERROR: Unable to download video")
        target = Path(output_template.replace("%(ext)s", "mp4"))
        if self.write and not target.exists():
            target.write_text(url)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)

