"""Source adapters, one module per streaming platform.

Every adapter satisfies ``SourceAdapter``. Raw API payloads are mapped to
``Clip`` inside the adapter module and never leave it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Iterable, Protocol, Sequence, runtime_checkable

from ..core.models import Clip
from ..utils.secrets import require_secret

if TYPE_CHECKING:
    from ..config import AppConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class SourceAdapter(Protocol):
    name: str

    async def fetch_top_clips(self, subject: str, limit: int) -> Sequence[Clip]:
        """Top clips for a creator (or the global subject), best first."""
        ...


def _twitch(config: "AppConfig") -> SourceAdapter:
    from .twitch import TwitchSource

    return TwitchSource(
        require_secret(config.twitch_client_id, "twitch", "TWITCH_CLIENT_ID"),
        require_secret(config.twitch_client_secret, "twitch", "TWITCH_CLIENT_SECRET"),
        lookback_days=config.lookback_days,
        timeout=config.http_timeout,
    )


def _kick(config: "AppConfig") -> SourceAdapter:
    from .kick import KickSource

    return KickSource(timeout=config.http_timeout)


def _youtube(config: "AppConfig") -> SourceAdapter:
    from .youtube import YouTubeSource

    return YouTubeSource(
        require_secret(config.youtube_api_key, "youtube", "YOUTUBE_API_KEY"),
        lookback_days=config.lookback_days,
    )


PLATFORM_FACTORIES: dict[str, Callable[["AppConfig"], SourceAdapter]] = {
    "twitch": _twitch,
    "kick": _kick,
    "youtube": _youtube,
}


def build_adapters(config: "AppConfig", platforms: Iterable[str]) -> dict[str, SourceAdapter]:
    """Instantiate adapters for the selected platforms, in selection order.

    Raises ``MissingCredentials`` for a selected platform that cannot
    authenticate; unknown names are logged and skipped.
    """
    adapters: dict[str, SourceAdapter] = {}
    for name in platforms:
        factory = PLATFORM_FACTORIES.get(name)
        if factory is None:
            logger.warning("Platform %s is not supported, skipping...", name)
            continue
        adapters[name] = factory(config)
    return adapters
