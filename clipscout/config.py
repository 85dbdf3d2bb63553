"""Configuration loader for clipscout (Pydantic settings)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Iterable, Literal, Sequence

from dotenv import find_dotenv, load_dotenv
from pydantic import AliasChoices, Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .core.models import SocialMediaSettings
from .errors import MissingCredentials
from .utils.secrets import secret_value

LOGGER = logging.getLogger(__name__)
SUPPORTED_PLATFORMS: tuple[str, ...] = ("twitch", "kick", "youtube")
DEFAULT_PLATFORMS: tuple[str, ...] = ("twitch", "kick")
SOCIAL_FORMATS: tuple[str, ...] = ("square", "vertical")


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded safely."""


class AppConfig(BaseSettings):
    """Strongly typed runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        validate_default=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="production",
        validation_alias=AliasChoices("CLIPSCOUT_ENVIRONMENT", "CLIPSCOUT_ENV"),
    )
    log_path: Path | None = Field(default=None, validation_alias="CLIPSCOUT_LOG_PATH")
    output_dir: Path = Field(
        default=Path("downloads"),
        validation_alias=AliasChoices("CLIPSCOUT_OUTPUT_DIR", "OUTPUT_DIR"),
    )

    # Acquisition
    platforms: Annotated[tuple[str, ...], NoDecode] = Field(
        DEFAULT_PLATFORMS, validation_alias="CLIPSCOUT_PLATFORMS"
    )
    quality: str = Field("best", validation_alias="CLIPSCOUT_QUALITY")
    min_views: int = Field(0, ge=0, validation_alias="CLIPSCOUT_MIN_VIEWS")
    max_attempts: int = Field(10, ge=1, validation_alias="CLIPSCOUT_MAX_ATTEMPTS")
    lookback_days: int = Field(7, ge=1, le=365, validation_alias="CLIPSCOUT_LOOKBACK_DAYS")
    http_timeout: float = Field(20.0, gt=0, validation_alias="CLIPSCOUT_HTTP_TIMEOUT")

    # Credentials
    twitch_client_id: SecretStr | None = Field(default=None, validation_alias="TWITCH_CLIENT_ID")
    twitch_client_secret: SecretStr | None = Field(default=None, validation_alias="TWITCH_CLIENT_SECRET")
    youtube_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("YOUTUBE_API_KEY", "YT_API_KEY"),
    )

    # Social media renditions
    social_enabled: bool = Field(True, validation_alias="CLIPSCOUT_SOCIAL_ENABLED")
    social_formats: Annotated[tuple[str, ...], NoDecode] = Field(
        SOCIAL_FORMATS, validation_alias="CLIPSCOUT_SOCIAL_FORMATS"
    )
    social_max_duration: float = Field(59.0, gt=0, validation_alias="CLIPSCOUT_SOCIAL_DURATION")
    social_background_blur: bool = Field(True, validation_alias="CLIPSCOUT_SOCIAL_BLUR")
    social_video_scale: float = Field(1.0, gt=0, le=4.0, validation_alias="CLIPSCOUT_SOCIAL_VIDEO_SCALE")
    ffmpeg_binary: str = Field("ffmpeg", validation_alias="FFMPEG_BINARY")
    ffprobe_binary: str = Field("ffprobe", validation_alias="FFPROBE_BINARY")

    @field_validator("output_dir", "log_path", mode="after")
    @classmethod
    def _expand_path(cls, value: Path | None) -> Path | None:
        if value is None:
            return None
        expanded = value.expanduser()
        return expanded if expanded.is_absolute() else (Path.cwd() / expanded).resolve()

    @field_validator("platforms", "social_formats", mode="before")
    @classmethod
    def _split_list(cls, value: str | Sequence[str] | None) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.replace(" ", ",").split(",")
        return tuple(part.strip().lower() for part in value if part and part.strip())

    @field_validator("quality", mode="after")
    @classmethod
    def _check_quality(cls, value: str) -> str:
        value = value.strip().lower().removesuffix("p")
        if value != "best" and not value.isdigit():
            raise ValueError("quality must be 'best' or a height such as 720")
        return value

    @model_validator(mode="after")
    def _validate_choices(self) -> "AppConfig":
        unknown = [name for name in self.platforms if name not in SUPPORTED_PLATFORMS]
        if unknown:
            raise ConfigError(f"Unsupported platforms: {', '.join(unknown)}")
        bad_formats = [name for name in self.social_formats if name not in SOCIAL_FORMATS]
        if bad_formats:
            raise ConfigError(f"Unsupported social formats: {', '.join(bad_formats)}")
        return self

    @property
    def has_twitch_credentials(self) -> bool:
        return bool(secret_value(self.twitch_client_id) and secret_value(self.twitch_client_secret))

    @property
    def has_youtube_credentials(self) -> bool:
        return bool(secret_value(self.youtube_api_key))

    @property
    def ledger_path(self) -> Path:
        return self.output_dir / ".downloaded_clips.json"

    def missing_credentials(self, platforms: Iterable[str]) -> list[MissingCredentials]:
        """Return one error per selected platform that cannot authenticate."""
        missing: list[MissingCredentials] = []
        for name in platforms:
            if name == "twitch" and not self.has_twitch_credentials:
                missing.append(MissingCredentials("twitch", "TWITCH_CLIENT_ID and TWITCH_CLIENT_SECRET"))
            elif name == "youtube" and not self.has_youtube_credentials:
                missing.append(MissingCredentials("youtube", "YOUTUBE_API_KEY"))
        return missing

    def social_settings(self) -> SocialMediaSettings:
        return SocialMediaSettings(
            enabled=self.social_enabled,
            square="square" in self.social_formats,
            vertical="vertical" in self.social_formats,
            max_duration=self.social_max_duration,
            background_blur=self.social_background_blur,
            video_scale=self.social_video_scale,
        )

    def ensure_runtime_directories(self) -> None:
        """Create directories required for runtime operation."""
        directories = [self.output_dir]
        if self.log_path is not None:
            directories.append(self.log_path.parent)
        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


def load_config(env_path: Path | None = None, **overrides) -> AppConfig:
    """Load configuration from .env/environment with validation.

    Keyword overrides take precedence over the environment and are how the CLI
    applies its flags.
    """
    load_kwargs: dict[str, object] = {}
    if env_path is not None:
        load_dotenv(env_path, override=False)
        load_kwargs["_env_file"] = str(env_path)
    else:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    for name, value in overrides.items():
        if value is not None:
            load_kwargs[_primary_alias(name)] = value
    try:
        config = AppConfig(**load_kwargs)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    LOGGER.debug(
        "AppConfig loaded",
        extra={
            "event": "config.loaded",
            "environment": config.environment,
            "paths": {"output": str(config.output_dir), "log": str(config.log_path)},
        },
    )
    return config


def _primary_alias(name: str) -> str:
    """Init keywords must use the env alias so they outrank environment values."""
    alias = AppConfig.model_fields[name].validation_alias
    if isinstance(alias, AliasChoices):
        return str(alias.choices[0])
    return str(alias or name)
