from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

import yt_dlp  # type: ignore

from ..errors import FetchFailed
from ..storage.ledger import DownloadLedger
from ..utils.media import SocialMediaProcessor
from .models import Clip
from .utils import sanitize_filename

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".mp4"
# Leftovers yt-dlp may write next to the media file.
IGNORED_SUFFIXES = frozenset({".part", ".ytdl", ".json", ".jpg", ".webp", ".png", ".temp"})
# Platforms whose streams do not expose usable height metadata.
BEST_ONLY_PLATFORMS = frozenset({"kick"})


class MediaFetcher(Protocol):
    def fetch(self, url: str, output_template: str, format_selector: str) -> None:
        """Write exactly one file matching ``output_template``."""
        ...


class YtDlpFetcher:
    """Media fetcher backed by the yt-dlp Python API."""

    def __init__(self, *, quiet: bool = True, retries: int = 3) -> None:
        self.quiet = quiet
        self.retries = retries

    def fetch(self, url: str, output_template: str, format_selector: str) -> None:
        ydl_opts = {
            "format": format_selector,
            "outtmpl": output_template,
            "quiet": self.quiet,
            "no_warnings": self.quiet,
            "noplaylist": True,
            "overwrites": False,
            "retries": self.retries,
            "merge_output_format": "mp4",
        }
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            ydl.download([url])


def format_selector(quality: str, platform: str) -> str:
    """yt-dlp format string for a quality setting ("best" or a max height)."""
    if platform in BEST_ONLY_PLATFORMS or quality == "best":
        return "best"
    return f"best[height<={quality}]"


@dataclass(slots=True)
class DownloadOutcome:
    """A clip resolved to a local file, freshly downloaded or already present."""

    clip: Clip
    path: Path
    is_new: bool
    renditions: List[Path] = field(default_factory=list)


class ClipDownloader:
    """Download clips into ``output_dir/<creator>/<platform>/`` and record them."""

    def __init__(
        self,
        output_dir: Path,
        ledger: DownloadLedger,
        *,
        fetcher: Optional[MediaFetcher] = None,
        processor: Optional[SocialMediaProcessor] = None,
        quality: str = "best",
    ) -> None:
        self.output_dir = Path(output_dir)
        self.ledger = ledger
        self.fetcher = fetcher or YtDlpFetcher()
        self.processor = processor
        self.quality = quality

    def target_dir(self, clip: Clip) -> Path:
        return self.output_dir / sanitize_filename(clip.creator) / clip.platform

    def base_name(self, clip: Clip) -> str:
        return f"{sanitize_filename(clip.title)}_{clip.date_stamp}"

    def unique_name(self, clip: Clip) -> str:
        """``base_name`` with the clip id appended; used once the plain stem is taken."""
        return f"{self.base_name(clip)}_{sanitize_filename(clip.id)}"

    def expected_path(self, clip: Clip) -> Path:
        """Where ``clip`` lives on disk, whether or not it was fetched yet."""
        directory = self.target_dir(clip)
        for base in (self.unique_name(clip), self.base_name(clip)):
            found = self._locate(directory, base)
            if found is not None:
                return found
        return directory / f"{self.base_name(clip)}{DEFAULT_EXTENSION}"

    def _fresh_base(self, directory: Path, clip: Clip) -> str:
        # Same title and day from one creator is common; never reuse another clip's file.
        base = self.base_name(clip)
        if self._locate(directory, base) is None:
            return base
        return self.unique_name(clip)

    async def download_clips(self, clips: Iterable[Clip]) -> List[DownloadOutcome]:
        """Download sequentially; failed clips are logged and left out."""
        outcomes: List[DownloadOutcome] = []
        for clip in clips:
            try:
                outcomes.append(await self.download_clip(clip))
            except FetchFailed as exc:
                logger.error("Failed to download clip %s: %s", clip.title, exc)
        return outcomes

    async def download_clip(self, clip: Clip) -> DownloadOutcome:
        if self.ledger.is_known(clip):
            path = self.expected_path(clip)
            logger.debug("Already downloaded %s -> %s", clip.canonical_key, path)
            return DownloadOutcome(clip=clip, path=path, is_new=False)

        directory = self.target_dir(clip)
        directory.mkdir(parents=True, exist_ok=True)
        base = self._fresh_base(directory, clip)
        template = str(directory / f"{base}.%(ext)s")
        selector = format_selector(self.quality, clip.platform)

        logger.info("Downloading: %s by %s", clip.title, clip.creator)
        try:
            await asyncio.to_thread(self.fetcher.fetch, clip.url, template, selector)
        except Exception as exc:
            raise FetchFailed(clip.title, str(exc), url=clip.url) from exc

        path = self._locate(directory, base)
        if path is None:
            raise FetchFailed(clip.title, "downloaded file not found", url=clip.url)
        logger.info("Downloaded: %s", path.name)

        self.ledger.mark_downloaded(clip)
        self.ledger.persist()

        outcome = DownloadOutcome(clip=clip, path=path, is_new=True)
        if self.processor is not None:
            try:
                outcome.renditions = await asyncio.to_thread(self.processor.process, path)
            except Exception:
                logger.exception("Social media processing failed for %s; keeping original", path.name)
        return outcome

    @staticmethod
    def _locate(directory: Path, base: str) -> Optional[Path]:
        if not directory.is_dir():
            return None
        candidates = [
            path
            for path in directory.glob(f"{base}.*")
            if path.is_file() and path.stem == base and path.suffix.lower() not in IGNORED_SUFFIXES
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda path: path.stat().st_mtime)
