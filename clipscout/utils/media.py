"""Social-media renditions built with ffmpeg filter graphs."""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from ..core.models import SocialMediaSettings
from ..errors import ProbeFailed, RenditionFailed

logger = logging.getLogger(__name__)

BLUR_SIGMA = 20
ENCODE_ARGS: tuple[str, ...] = (
    "-c:v", "libx264",
    "-c:a", "aac",
    "-preset", "fast",
    "-crf", "23",
)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of an external command; failures are data, not exceptions."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


Runner = Callable[[Sequence[str]], CommandResult]


def run_command(args: Sequence[str], timeout: float | None = None) -> CommandResult:
    """Run ``args`` synchronously, capturing exit code, stdout and stderr."""
    argv = tuple(str(arg) for arg in args)
    try:
        completed = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        return CommandResult(argv, 127, "", f"{argv[0]} not found: {exc}")
    except subprocess.TimeoutExpired:
        return CommandResult(argv, 124, "", f"{argv[0]} timed out after {timeout}s")
    return CommandResult(argv, completed.returncode, completed.stdout or "", completed.stderr or "")


@dataclass(frozen=True, slots=True)
class VideoInfo:
    duration: float
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class Rendition:
    name: str
    width: int
    height: int
    suffix: str


SQUARE = Rendition("square", 1080, 1080, "_square")
VERTICAL = Rendition("vertical", 1080, 1920, "_vertical")


def probe_video(path: Path, *, ffprobe: str = "ffprobe", runner: Runner = run_command) -> VideoInfo:
    """Read duration and frame size of the first video stream."""
    result = runner([ffprobe, "-v", "quiet", "-print_format", "json", "-show_format", "-show_streams", str(path)])
    if not result.ok:
        raise ProbeFailed(str(path), f"ffprobe failed with code {result.returncode}")
    try:
        info = json.loads(result.stdout)
        stream = next(s for s in info.get("streams", []) if s.get("codec_type") == "video")
        duration = info.get("format", {}).get("duration") or stream.get("duration")
        return VideoInfo(duration=float(duration), width=int(stream["width"]), height=int(stream["height"]))
    except StopIteration:
        raise ProbeFailed(str(path), "no video stream") from None
    except (ValueError, TypeError, KeyError) as exc:
        raise ProbeFailed(str(path), f"unexpected ffprobe output: {exc}") from exc


def build_filter_graph(rendition: Rendition, *, background_blur: bool, video_scale: float = 1.0) -> str:
    """Filter graph producing ``[v]`` at the rendition's exact frame size.

    Without blur the source is scaled to cover the frame and center-cropped, so
    there are never letterbox bars. With blur a cropped, blurred copy fills the
    frame and the source, fitted into ``width x height*video_scale``, is
    overlaid in the middle.
    """
    w, h = rendition.width, rendition.height
    fill = f"scale={w}:{h}:force_original_aspect_ratio=increase,crop={w}:{h}"
    if not background_blur:
        return f"[0:v]{fill}[v]"

    fg_height = round(h * video_scale)
    fit = f"min({w}/iw\\,{fg_height}/ih)"
    return (
        f"[0:v]split=2[bg][fg];"
        f"[bg]{fill},gblur=sigma={BLUR_SIGMA}[blurred];"
        f"[fg]scale=iw*{fit}:ih*{fit}[scaled];"
        f"[blurred][scaled]overlay=(W-w)/2:(H-h)/2[v]"
    )


def output_path_for(source: Path, rendition: Rendition) -> Path:
    return source.with_name(f"{source.stem}{rendition.suffix}{source.suffix}")


def _seconds(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


def build_encode_args(ffmpeg: str, source: Path, output: Path, graph: str, duration: float) -> list[str]:
    return [
        ffmpeg,
        "-y",
        "-i", str(source),
        "-t", _seconds(duration),
        "-filter_complex", graph,
        "-map", "[v]",
        "-map", "0:a?",
        *ENCODE_ARGS,
        str(output),
    ]


class SocialMediaProcessor:
    """Derive square and vertical renditions next to a downloaded clip."""

    def __init__(
        self,
        settings: SocialMediaSettings,
        *,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
        runner: Runner = run_command,
    ) -> None:
        self.settings = settings
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.runner = runner

    @property
    def renditions(self) -> list[Rendition]:
        enabled = []
        if self.settings.square:
            enabled.append(SQUARE)
        if self.settings.vertical:
            enabled.append(VERTICAL)
        return enabled

    def process(self, source: Path) -> list[Path]:
        """Render every enabled rendition; returns the ones that succeeded."""
        source = Path(source)
        if not self.settings.enabled or not self.renditions:
            return []

        logger.info("Creating social media versions of: %s", source.name)
        try:
            info = probe_video(source, ffprobe=self.ffprobe, runner=self.runner)
        except ProbeFailed as exc:
            logger.error("Error processing clip for social media: %s", exc)
            return []

        duration = min(info.duration, self.settings.max_duration)
        outputs: list[Path] = []
        for rendition in self.renditions:
            try:
                outputs.append(self._render(source, rendition, duration))
            except RenditionFailed as exc:
                logger.error("Failed to create %s version: %s", rendition.name, exc)
                logger.debug("ffmpeg stderr: %s", exc.details.get("stderr"))

        if outputs:
            logger.info("Created %d social media versions", len(outputs))
        return outputs

    def _render(self, source: Path, rendition: Rendition, duration: float) -> Path:
        output = output_path_for(source, rendition)
        graph = build_filter_graph(
            rendition,
            background_blur=self.settings.background_blur,
            video_scale=self.settings.video_scale,
        )
        logger.debug("Creating %s version (%dx%d)", rendition.name, rendition.width, rendition.height)
        result = self.runner(build_encode_args(self.ffmpeg, source, output, graph, duration))
        if not result.ok:
            raise RenditionFailed(rendition.name, result.returncode, result.stderr)
        return output
