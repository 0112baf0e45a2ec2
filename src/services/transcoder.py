"""FFmpeg invocation for metadata probing and format conversion."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import ffmpeg

from ..config import settings
from ..core.exceptions import ConversionFailure, ProbeFailure
from ..utils.constants import CODEC_MAP, OutputFormat
from ..utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


@dataclass
class VideoMetadata:
    """Container-level metadata read from a raw upload."""

    duration: Optional[float]
    resolution: Optional[str]
    size: int

    def as_update(self) -> Dict[str, Any]:
        return {
            "duration": self.duration,
            "resolution": self.resolution,
            "size": self.size,
        }


def build_watermark_text(output_format: str, brand: Optional[str] = None) -> str:
    """Text burned into every converted output."""
    return f"Convert Video - {brand or settings.watermark_brand} - {output_format.upper()}"


def normalize_path(path: PathLike) -> str:
    """Absolute path with forward slashes, as ffmpeg expects on every platform."""
    return str(Path(path).resolve()).replace("\\", "/")


def build_convert_command(
    input_path: PathLike, output_path: PathLike, output_format: OutputFormat
) -> List[str]:
    """
    Compose the ffmpeg command for one output format.

    The watermark is centred on the video stream; audio is carried over when
    the source has any. Codec pair comes from CODEC_MAP and
    preset/quality/threads are the same for every format.
    """
    video_codec, audio_codec = CODEC_MAP[output_format]
    source = ffmpeg.input(normalize_path(input_path))
    video = source.video.drawtext(
        text=build_watermark_text(output_format.value),
        fontcolor=settings.watermark_font_color,
        fontsize=settings.watermark_font_size,
        x="(w-text_w)/2",
        y="(h-text_h)/2",
    )
    stream = ffmpeg.output(
        video,
        source["a?"],
        normalize_path(output_path),
        vcodec=video_codec,
        acodec=audio_codec,
        preset=settings.encode_preset,
        crf=settings.encode_crf,
        threads=settings.encode_threads,
    )
    return stream.overwrite_output().compile(cmd=settings.ffmpeg_path)


def parse_probe(data: Dict[str, Any], size: int) -> VideoMetadata:
    """
    Read metadata from ``ffmpeg.probe`` output.
    Duration is optional; resolution is set only when both dimensions exist.
    """
    raw_duration = (data.get("format") or {}).get("duration")
    try:
        duration = float(raw_duration) if raw_duration is not None else None
    except (TypeError, ValueError):
        duration = None

    video_stream = next(
        (s for s in data.get("streams") or [] if s.get("codec_type", "video") == "video"),
        {},
    )
    width, height = video_stream.get("width"), video_stream.get("height")
    resolution = f"{width}x{height}" if width and height else None

    return VideoMetadata(duration=duration, resolution=resolution, size=size)


def _stderr_text(stderr: Optional[bytes]) -> str:
    return (stderr or b"").decode("utf-8", errors="ignore").strip()


class Transcoder:
    """Runs ffprobe and ffmpeg as external processes."""

    async def _run(self, command: Sequence[str]) -> Tuple[int, bytes, bytes]:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        return process.returncode, stdout, stderr

    async def probe(self, input_path: PathLike) -> VideoMetadata:
        """
        Read duration, first video stream dimensions and file size.
        Raises ProbeFailure if the file is missing or ffprobe fails.
        """
        path = Path(input_path)
        if not path.is_file():
            raise ProbeFailure(f"Raw file not found: {input_path}")

        try:
            data = await asyncio.to_thread(
                ffmpeg.probe,
                normalize_path(path),
                cmd=settings.ffprobe_path,
                v="error",
                select_streams="v:0",
            )
        except ffmpeg.Error as exc:
            raise ProbeFailure(f"ffprobe failed: {_stderr_text(exc.stderr)}")
        except OSError as exc:
            raise ProbeFailure(f"Could not start ffprobe: {exc}")
        except ValueError as exc:
            raise ProbeFailure(f"Unreadable ffprobe output: {exc}")

        return parse_probe(data, path.stat().st_size)

    async def convert(
        self, input_path: PathLike, output_path: PathLike, output_format: OutputFormat
    ) -> None:
        """
        Convert and watermark one output format.
        Raises ConversionFailure when ffmpeg cannot be started or exits non-zero.
        """
        command = build_convert_command(input_path, output_path, output_format)
        logger.debug("Running ffmpeg", format=output_format.value, command=" ".join(command))

        try:
            returncode, _, stderr = await self._run(command)
        except OSError as exc:
            raise ConversionFailure(output_format.value, f"Could not start ffmpeg: {exc}")

        if returncode != 0:
            raise ConversionFailure(
                output_format.value,
                f"ffmpeg exited with code {returncode}: {_stderr_text(stderr)[-500:]}",
            )
