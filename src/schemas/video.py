"""Video record and notification schemas."""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field
from ..utils.constants import VideoStatus


class ConvertedFormatResponse(BaseModel):
    """A completed conversion."""

    format: str
    file_path: str


class VideoResponse(BaseModel):
    """Video record response schema."""

    id: str
    user_email: str
    filename: str
    status: VideoStatus = Field(..., description="uploaded, processing, completed, failed")
    raw_file_path: str
    output_file_path: Optional[str] = None
    output_format: Optional[str] = None
    duration: Optional[float] = Field(default=None, description="Duration in seconds")
    resolution: Optional[str] = Field(default=None, description="WIDTHxHEIGHT of the first video stream")
    size: Optional[int] = Field(default=None, description="Raw file size in bytes")
    error_message: Optional[str] = None
    converted_formats: List[ConvertedFormatResponse] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VideoUploadResponse(BaseModel):
    """Records created by an upload request."""

    videos: List[VideoResponse]


class FormatOption(BaseModel):
    """A supported output format."""

    value: str
    label: str


class FormatListResponse(BaseModel):
    formats: List[FormatOption]


class StatusChangedEvent(BaseModel):
    """Payload of a status-changed notification."""

    videoId: str
    video: VideoResponse


class FormatConvertedEvent(BaseModel):
    """Payload of a format-converted notification."""

    videoId: str
    format: str
    filePath: str
