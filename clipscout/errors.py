"""Failure taxonomy for the acquisition and transcoding pipeline.

Only ``MissingCredentials`` is fatal. Every other error is caught at the stage
that owns it, logged, and turned into a partial result.
"""

from __future__ import annotations

from typing import Any, Optional


class ClipScoutError(Exception):
    """Base class for all clipscout errors."""

    code = "CLIPSCOUT_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class SourceUnavailable(ClipScoutError):
    """A platform fetch failed; that platform contributes nothing this pass."""

    code = "SOURCE_UNAVAILABLE"

    def __init__(self, platform: str, reason: str) -> None:
        super().__init__(f"{platform} unavailable: {reason}", platform=platform)
        self.platform = platform


class SubjectNotFound(SourceUnavailable):
    """A specific creator does not exist on a platform."""

    code = "SUBJECT_NOT_FOUND"

    def __init__(self, platform: str, subject: str) -> None:
        super().__init__(platform, f"user {subject} not found")
        self.subject = subject


class FetchFailed(ClipScoutError):
    """Media retrieval for a single clip failed."""

    code = "FETCH_FAILED"

    def __init__(self, title: str, reason: str, url: Optional[str] = None) -> None:
        super().__init__(f"Failed to download {title!r}: {reason}", url=url)
        self.title = title


class ProbeFailed(ClipScoutError):
    """The transcoding engine could not inspect a source file."""

    code = "PROBE_FAILED"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to get video info for {path}: {reason}", path=path)


class RenditionFailed(ClipScoutError):
    """One output rendition could not be produced."""

    code = "RENDITION_FAILED"

    def __init__(self, rendition: str, returncode: int, stderr: str) -> None:
        super().__init__(
            f"ffmpeg failed creating {rendition} version (code {returncode})",
            rendition=rendition,
            stderr=stderr[-2000:],
        )
        self.returncode = returncode


class LedgerUnavailable(ClipScoutError):
    """The persisted ledger is missing or unreadable."""

    code = "LEDGER_UNAVAILABLE"


class LedgerWriteFailed(ClipScoutError):
    """The ledger could not be written to its backing store."""

    code = "LEDGER_WRITE_FAILED"


class MissingCredentials(ClipScoutError):
    """A selected platform has no usable credentials configured."""

    code = "MISSING_CREDENTIALS"

    def __init__(self, platform: str, variables: str) -> None:
        super().__init__(f"{platform} requires {variables}", platform=platform)
        self.platform = platform
        self.variables = variables
