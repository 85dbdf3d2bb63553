from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .config import SOCIAL_FORMATS, SUPPORTED_PLATFORMS, AppConfig, ConfigError, load_config
from .core.models import GLOBAL_SUBJECT
from .logging_utils import configure_logging
from .pipeline import AcquisitionRequest, AcquisitionResult, run_pipeline
from .storage.ledger import DownloadLedger

logger = logging.getLogger("clipscout")

SAMPLE_ENV = """\
# Twitch API credentials
# Get these from: https://dev.twitch.tv/console/apps
TWITCH_CLIENT_ID=your_twitch_client_id
TWITCH_CLIENT_SECRET=your_twitch_client_secret

# YouTube Data API v3 key (only needed with --platforms youtube)
YOUTUBE_API_KEY=your_youtube_api_key

# Kick doesn't require API credentials for public clips

# Optional defaults
# CLIPSCOUT_OUTPUT_DIR=./downloads
# CLIPSCOUT_PLATFORMS=twitch,kick
# CLIPSCOUT_QUALITY=best
# CLIPSCOUT_SOCIAL_DURATION=59
# CLIPSCOUT_SOCIAL_VIDEO_SCALE=1.0
"""


def _load(args: argparse.Namespace, **overrides) -> AppConfig:
    config = load_config(args.env_file, output_dir=getattr(args, "output", None), **overrides)
    configure_logging(config, verbose=args.verbose)
    return config


def _print_summary(result: AcquisitionResult, output_dir: Path) -> None:
    if not result.downloads:
        print("\nNo clips were downloaded")
        return
    print("\nDownload Complete!")
    print(f"Files saved to: {output_dir}")
    print(f"Total files downloaded: {result.found} of {result.requested} requested")
    for outcome in result.downloads:
        print(f"  {outcome.path}")
        for rendition in outcome.renditions:
            print(f"    + {rendition.name}")
    if result.failed:
        print(f"Failed downloads: {result.failed}")


def cmd_scrape(args: argparse.Namespace) -> int:
    config = _load(
        args,
        platforms=args.platforms,
        quality=args.quality,
        min_views=args.min_views,
        social_enabled=args.social_media,
        social_formats=args.social_formats,
        social_max_duration=args.social_duration,
        social_background_blur=False if args.no_background_blur else None,
        social_video_scale=args.video_scale,
    )

    missing = config.missing_credentials(config.platforms)
    if missing:
        logger.error("Missing required environment variables:")
        for error in missing:
            logger.error("   - %s", error.variables)
        print("\nCreate a .env file with the required API credentials (see `clipscout config`)")
        return 1

    request = AcquisitionRequest(
        subject=args.username,
        platforms=config.platforms,
        limit=args.limit,
        min_views=config.min_views,
    )
    result = run_pipeline(request, config)
    _print_summary(result, config.output_dir)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    print("Sample .env configuration:")
    print("-" * 50)
    print(SAMPLE_ENV)
    print("-" * 50)
    print("Copy this to a .env file in your project root and fill in your API credentials")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    config = _load(args)
    ledger = DownloadLedger(config.ledger_path)
    ledger.load()
    stats = ledger.stats()

    print("Download Statistics\n")
    print(f"Total clips downloaded: {stats.total}")
    if stats.per_platform:
        print("\nBy platform:")
        for platform, count in stats.per_platform.items():
            print(f"  {platform}: {count} clips")
    else:
        print("No clips downloaded yet")
    return 0


def cmd_clear_history(args: argparse.Namespace) -> int:
    if not args.confirm:
        print("This will clear the download history and allow re-downloading of all clips.")
        print("Use --confirm to skip this prompt.")
        return 0

    config = _load(args)
    ledger = DownloadLedger(config.ledger_path)
    if not ledger.clear():
        logger.error("Could not write %s", config.ledger_path)
        return 1
    print("Download history cleared successfully!")
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--env-file", type=Path, help="Load settings from this .env file")
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    p = argparse.ArgumentParser(
        prog="clipscout",
        description="Find and download the most viewed clips from Twitch, Kick and YouTube",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser(
        "scrape",
        parents=[common],
        help="Scrape and download clips for a user, or trending clips with 'all'",
    )
    scrape.add_argument("username", help=f"Username to scrape clips for, or {GLOBAL_SUBJECT!r} for trending clips")
    scrape.add_argument("-p", "--platforms", nargs="+", choices=SUPPORTED_PLATFORMS, help="Platforms to scrape")
    scrape.add_argument("-l", "--limit", type=int, default=10, help="Number of new clips to download")
    scrape.add_argument("-o", "--output", type=Path, help="Output directory for downloaded clips")
    scrape.add_argument("-q", "--quality", help="Video quality: 'best' or a max height such as 720")
    scrape.add_argument("--min-views", type=int, help="Minimum view count for clips")
    scrape.add_argument(
        "--social-media",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Create square and vertical versions of downloaded clips",
    )
    scrape.add_argument("--social-formats", nargs="+", choices=SOCIAL_FORMATS, help="Social media formats to create")
    scrape.add_argument("--social-duration", type=float, help="Maximum duration for social media clips in seconds")
    scrape.add_argument("--no-background-blur", action="store_true", help="Crop to fill instead of blurring")
    scrape.add_argument("--video-scale", type=float, help="Foreground scale factor when blurring (1.0 = 100%%)")
    scrape.set_defaults(func=cmd_scrape)

    config = sub.add_parser("config", help="Print a sample .env configuration file")
    config.set_defaults(func=cmd_config)

    stats = sub.add_parser("stats", parents=[common], help="Show download statistics and history")
    stats.add_argument("-o", "--output", type=Path, help="Output directory to check")
    stats.set_defaults(func=cmd_stats)

    clear = sub.add_parser(
        "clear-history",
        parents=[common],
        help="Clear download history (allows re-downloading previously downloaded clips)",
    )
    clear.add_argument("-o", "--output", type=Path, help="Output directory to clear history for")
    clear.add_argument("--confirm", action="store_true", help="Skip confirmation prompt")
    clear.set_defaults(func=cmd_clear_history)
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 1
    except Exception as exc:
        logger.exception("Error: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
