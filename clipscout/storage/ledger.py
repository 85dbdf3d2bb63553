"""Persistent record of clips that have already been downloaded."""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.models import KEY_SEPARATOR, Clip
from ..errors import LedgerUnavailable, LedgerWriteFailed

logger = logging.getLogger(__name__)

LEDGER_FILENAME = ".downloaded_clips.json"


class LedgerSnapshot(BaseModel):
    """On-disk shape of the ledger."""

    model_config = ConfigDict(populate_by_name=True)

    downloaded_ids: list[str] = Field(default_factory=list, alias="downloadedIds")
    last_updated: datetime | None = Field(default=None, alias="lastUpdated")
    total_downloaded: int = Field(default=0, ge=0, alias="totalDownloaded")


@dataclass(frozen=True, slots=True)
class LedgerStats:
    total: int
    per_platform: dict[str, int] = field(default_factory=dict)


class DownloadLedger:
    """In-memory set of canonical clip keys backed by a JSON file.

    The in-memory set is authoritative for the running process; the file is
    only a best-effort copy. Call ``load()`` before trusting ``is_known``.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._keys: set[str] = set()
        self.loaded = False

    @classmethod
    def for_output_dir(cls, output_dir: Path) -> "DownloadLedger":
        return cls(Path(output_dir) / LEDGER_FILENAME)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, clip: object) -> bool:
        return isinstance(clip, Clip) and self.is_known(clip)

    def keys(self) -> Iterator[str]:
        return iter(sorted(self._keys))

    def is_known(self, clip: Clip) -> bool:
        return clip.canonical_key in self._keys

    def mark_downloaded(self, clip: Clip) -> bool:
        """Record ``clip``; returns False when it was already present."""
        key = clip.canonical_key
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def load(self) -> None:
        """Replace in-memory state with the persisted set (empty if unreadable)."""
        try:
            snapshot = self._read()
        except LedgerUnavailable as exc:
            logger.info("Starting with an empty download history: %s", exc)
            snapshot = LedgerSnapshot()
        self._keys = set(snapshot.downloaded_ids)
        self.loaded = True
        logger.debug("Loaded %d downloaded clip ids from %s", len(self._keys), self.path)

    def persist(self) -> bool:
        """Write the full set to disk; failures are logged, never raised."""
        try:
            self._write()
        except LedgerWriteFailed as exc:
            logger.warning("%s; history kept in memory for this run", exc)
            return False
        return True

    def clear(self) -> bool:
        self._keys.clear()
        self.loaded = True
        return self.persist()

    def stats(self) -> LedgerStats:
        per_platform = Counter(key.split(KEY_SEPARATOR, 1)[0] for key in self._keys)
        return LedgerStats(total=len(self._keys), per_platform=dict(sorted(per_platform.items())))

    def _read(self) -> LedgerSnapshot:
        if not self.path.exists():
            raise LedgerUnavailable(f"no history file at {self.path}")
        try:
            return LedgerSnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            raise LedgerUnavailable(f"unreadable history file {self.path}: {exc}") from exc

    def _write(self) -> None:
        snapshot = LedgerSnapshot(
            downloaded_ids=sorted(self._keys),
            last_updated=datetime.now(timezone.utc),
            total_downloaded=len(self._keys),
        )
        payload = snapshot.model_dump(mode="json", by_alias=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            with suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise LedgerWriteFailed(f"Failed to save download history to {self.path}: {exc}") from exc
