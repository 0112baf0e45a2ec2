"""Application constants and enums."""

from enum import Enum
from typing import Dict, List, Tuple


class VideoStatus(str, Enum):
    """Video lifecycle status enum."""

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class OutputFormat(str, Enum):
    """Supported conversion targets, in presentation order."""

    MP4 = "mp4"
    WEBM = "webm"
    AVI = "avi"
    MOV = "mov"
    MKV = "mkv"
    FLV = "flv"

    @property
    def label(self) -> str:
        return FORMAT_LABELS[self]


FORMAT_LABELS: Dict[OutputFormat, str] = {
    OutputFormat.MP4: "MP4",
    OutputFormat.WEBM: "WebM",
    OutputFormat.AVI: "AVI",
    OutputFormat.MOV: "MOV",
    OutputFormat.MKV: "MKV",
    OutputFormat.FLV: "FLV",
}

# (video codec, audio codec) handed to ffmpeg
CODEC_MAP: Dict[OutputFormat, Tuple[str, str]] = {
    OutputFormat.MP4: ("libx264", "aac"),
    OutputFormat.MOV: ("libx264", "aac"),
    OutputFormat.MKV: ("libx264", "aac"),
    OutputFormat.WEBM: ("libvpx-vp9", "libopus"),
    OutputFormat.AVI: ("libx264", "mp3"),
    OutputFormat.FLV: ("libx264", "mp3"),
}

CONTENT_TYPES: Dict[OutputFormat, str] = {
    OutputFormat.MP4: "video/mp4",
    OutputFormat.WEBM: "video/webm",
    OutputFormat.AVI: "video/x-msvideo",
    OutputFormat.MOV: "video/quicktime",
    OutputFormat.MKV: "video/x-matroska",
    OutputFormat.FLV: "video/x-flv",
}

DEFAULT_CONTENT_TYPE = "video/mp4"


class NotificationEvent(str, Enum):
    """Event names pushed over the live notification socket."""

    STATUS_CHANGED = "status-changed"
    FORMAT_CONVERTED = "format-converted"


# Fields a status update may carry alongside the new status
MERGEABLE_VIDEO_FIELDS: Tuple[str, ...] = (
    "duration",
    "resolution",
    "size",
    "error_message",
    "output_file_path",
    "output_format",
)


def supported_format_values() -> List[str]:
    """Return the supported format identifiers in order."""
    return [fmt.value for fmt in OutputFormat]
