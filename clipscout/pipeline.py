"""Acquisition loop: keep paging the ranking until N new clips are on disk."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Sequence

from .config import AppConfig
from .core.aggregator import ClipAggregator
from .core.downloader import ClipDownloader, DownloadOutcome
from .core.models import Clip
from .platforms import build_adapters
from .storage.ledger import DownloadLedger
from .utils.media import SocialMediaProcessor

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 10
MAX_FETCH = 50
OVERFETCH_FACTOR = 2

Status = Literal["done", "exhausted"]


@dataclass(slots=True)
class AcquisitionRequest:
    """What to look for and how many new clips are wanted."""

    subject: str
    platforms: Sequence[str]
    limit: int
    min_views: int = 0

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be at least 1")
        if self.min_views < 0:
            raise ValueError("min_views must be >= 0")


@dataclass(slots=True)
class AcquisitionResult:
    """Outcome of one acquisition run."""

    requested: int
    downloads: List[DownloadOutcome] = field(default_factory=list)
    attempts: int = 0
    failed: int = 0
    status: Status = "exhausted"

    @property
    def files(self) -> List[Path]:
        return [outcome.path for outcome in self.downloads]

    @property
    def found(self) -> int:
        return len(self.downloads)

    @property
    def exhausted(self) -> bool:
        return self.status == "exhausted"


def _fresh(clips: Sequence[Clip], ledger: DownloadLedger) -> List[Clip]:
    """Drop clips already in the ledger and repeats within the window."""
    seen: set[str] = set()
    fresh: List[Clip] = []
    for clip in clips:
        key = clip.canonical_key
        if key in seen or ledger.is_known(clip):
            continue
        seen.add(key)
        fresh.append(clip)
    return fresh


def _log_batch(batch: Sequence[Clip], start: int, remaining: int) -> None:
    logger.info("New clips to download (%d/%d needed):", len(batch), remaining)
    for index, clip in enumerate(batch, start=start + 1):
        logger.info(
            "%d. %s | %s views | %s | %s",
            index,
            clip.title,
            f"{clip.view_count:,}",
            clip.platform,
            clip.creator,
        )


async def acquire_clips(
    request: AcquisitionRequest,
    aggregator: ClipAggregator,
    ledger: DownloadLedger,
    downloader: ClipDownloader,
    *,
    max_attempts: int = MAX_ATTEMPTS,
) -> AcquisitionResult:
    """Collect ``request.limit`` clips that were never downloaded before.

    Each pass over-fetches ``2 * remaining`` (capped at ``MAX_FETCH``) to absorb
    attrition. The offset only advances when a window yields fewer new clips
    than needed, so a window is never skipped while it still has fresh clips.
    Stops early when upstream returns nothing; ``max_attempts`` bounds the loop
    when upstream keeps returning the same window.
    """
    if not ledger.loaded:
        ledger.load()

    result = AcquisitionResult(requested=request.limit)
    offset = 0
    logger.info("Searching for %d unique clips...", request.limit)

    while result.found < request.limit and result.attempts < max_attempts:
        remaining = request.limit - result.found
        fetch_limit = min(remaining * OVERFETCH_FACTOR, MAX_FETCH)

        clips = await aggregator.aggregate(request.subject, request.platforms, fetch_limit, offset)
        if not clips:
            logger.warning("No more clips found matching the criteria")
            break

        fresh = _fresh(clips, ledger)
        if not fresh:
            logger.warning(
                "All %d fetched clips have already been downloaded, trying next batch...", len(clips)
            )
            offset += fetch_limit
            result.attempts += 1
            continue

        batch = fresh[:remaining]
        _log_batch(batch, result.found, remaining)
        outcomes = await downloader.download_clips(batch)
        result.downloads.extend(outcomes)
        result.failed += len(batch) - len(outcomes)

        if len(fresh) < remaining:
            offset += fetch_limit
        result.attempts += 1

    if result.found >= request.limit:
        result.status = "done"
        logger.info("Successfully found and downloaded %d unique clips!", result.found)
    else:
        result.status = "exhausted"
        logger.warning("Could only find %d unique clips out of %d requested", result.found, request.limit)
    return result


def build_pipeline(
    config: AppConfig, request: AcquisitionRequest
) -> tuple[ClipAggregator, DownloadLedger, ClipDownloader]:
    """Wire adapters, ledger, downloader and transcoder from settings."""
    adapters = build_adapters(config, request.platforms)
    aggregator = ClipAggregator(adapters, min_views=request.min_views)
    ledger = DownloadLedger(config.ledger_path)
    settings = config.social_settings()
    processor = None
    if settings.enabled:
        processor = SocialMediaProcessor(settings, ffmpeg=config.ffmpeg_binary, ffprobe=config.ffprobe_binary)
    downloader = ClipDownloader(config.output_dir, ledger, processor=processor, quality=config.quality)
    return aggregator, ledger, downloader


def run_pipeline(request: AcquisitionRequest, config: AppConfig) -> AcquisitionResult:
    """Synchronous entry point used by the CLI."""
    config.ensure_runtime_directories()
    aggregator, ledger, downloader = build_pipeline(config, request)
    return asyncio.run(
        acquire_clips(request, aggregator, ledger, downloader, max_attempts=config.max_attempts)
    )
