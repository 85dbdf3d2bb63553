from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

GLOBAL_SUBJECT = "all"
KEY_SEPARATOR = ":"


def is_global(subject: str) -> bool:
    return subject.strip().lower() == GLOBAL_SUBJECT


def _text_or(value: object, default: str) -> str:
    """Blank or missing text becomes ``default``; numbers are rendered as text."""
    if value is None:
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ValueError(f"expected text, got {type(value).__name__}")
    return value.strip() or default


class Clip(BaseModel):
    """Platform-independent clip record produced by every source adapter."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    url: str
    view_count: int = Field(default=0, ge=0)
    duration: float = Field(default=0.0, ge=0, description="Duration in seconds")
    created_at: datetime
    thumbnail_url: str = ""
    creator: str
    platform: str

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, v: object) -> str:
        return _text_or(v, "Untitled Clip")

    @field_validator("creator", mode="before")
    @classmethod
    def _default_creator(cls, v: object) -> str:
        return _text_or(v, "Unknown")

    @field_validator("platform")
    @classmethod
    def _normalize_platform(cls, v: str) -> str:
        v = v.strip().lower()
        if not v or KEY_SEPARATOR in v:
            raise ValueError("platform must be a non-empty name without ':'")
        return v

    @field_validator("created_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @property
    def canonical_key(self) -> str:
        """``platform:id:creator``; ``id`` alone collides across platforms."""
        return KEY_SEPARATOR.join((self.platform, self.id, self.creator))

    @property
    def date_stamp(self) -> str:
        return self.created_at.astimezone(timezone.utc).date().isoformat()


class SocialMediaSettings(BaseModel):
    """Which renditions to derive from a download and how to compose them."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    square: bool = True
    vertical: bool = True
    max_duration: float = Field(default=59.0, gt=0)
    background_blur: bool = True
    video_scale: float = Field(default=1.0, gt=0, description="Foreground scale when blurring")
