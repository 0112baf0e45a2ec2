"""Video service for uploads, listing, downloads and deletion."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional
from fastapi import UploadFile, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from .transcoding_service import TranscodingService
from ..config import settings
from ..core.exceptions import DuplicateFilename, FileMissing, VideoNotReady
from ..middleware.validation import validate_upload_batch
from ..repositories.queue_repo import QueueRepository
from ..repositories.storage_repo import StorageRepository
from ..repositories.video_repo import VideoRepository
from ..schemas.shared import SuccessResponse
from ..schemas.video import (
    FormatListResponse,
    FormatOption,
    VideoResponse,
    VideoUploadResponse,
)
from ..utils.constants import CONTENT_TYPES, DEFAULT_CONTENT_TYPE, OutputFormat, VideoStatus
from ..utils.logger import get_logger
from ..utils.validators import validate_output_format

logger = get_logger(__name__)

DOWNLOADABLE_STATUSES = (VideoStatus.PROCESSING.value, VideoStatus.COMPLETED.value)


@dataclass
class DownloadTarget:
    """File to send back for a download request."""

    handle: BinaryIO
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return os.fstat(self.handle.fileno()).st_size


class VideoService:
    """Service for video operations."""

    def __init__(
        self,
        db: AsyncSession,
        transcoding_service: TranscodingService,
        queue_repo: Optional[QueueRepository] = None,
        storage_repo: Optional[StorageRepository] = None,
    ):
        self.db = db
        self.storage_repo = storage_repo or StorageRepository()
        self.video_repo = VideoRepository(db, self.storage_repo)
        self.queue_repo = queue_repo or QueueRepository()
        self.transcoding_service = transcoding_service

    async def handle_upload(
        self, user_email: str, files: List[UploadFile]
    ) -> VideoUploadResponse:
        """
        Handle video upload: validate, store raw file, create record, enqueue processing.
        """
        validate_upload_batch(files)

        videos = []
        for file in files:
            original_filename = file.filename or "upload"
            raw_file_path, size = await self.storage_repo.save_upload(
                file, settings.max_file_size_bytes
            )

            try:
                video = await self.video_repo.create_video(
                    user_email=user_email,
                    filename=original_filename,
                    raw_file_path=raw_file_path,
                )
            except DuplicateFilename:
                self.storage_repo.delete_file(raw_file_path)
                raise

            logger.info(
                "Video uploaded",
                video_id=video["id"],
                user=user_email,
                filename=original_filename,
                size=size,
            )

            # A failed enqueue leaves the record in UPLOADED for manual retry
            try:
                self.queue_repo.enqueue_video_processing(
                    video_id=video["id"], raw_file_path=raw_file_path
                )
            except Exception as exc:
                logger.error(
                    "Failed to enqueue video processing",
                    video_id=video["id"],
                    error=str(exc),
                )
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Video stored but processing could not be scheduled",
                )

            videos.append(VideoResponse(**video))

        return VideoUploadResponse(videos=videos)

    async def list_videos(self, user_email: str) -> List[VideoResponse]:
        """List user's videos, newest first."""
        videos = await self.video_repo.list_by_user(user_email)
        return [VideoResponse(**v) for v in videos]

    async def get_video(self, video_id: str, user_email: str) -> VideoResponse:
        """Get video details by ID (with authorization check)."""
        return VideoResponse(**await self.video_repo.get_video(video_id, user_email))

    @staticmethod
    def get_formats() -> FormatListResponse:
        return FormatListResponse(
            formats=[FormatOption(value=fmt.value, label=fmt.label) for fmt in OutputFormat]
        )

    async def delete_video(self, video_id: str, user_email: str) -> SuccessResponse:
        result = await self.video_repo.delete_video(video_id, user_email)
        return SuccessResponse(message=result["message"])

    async def get_download(
        self, video_id: str, user_email: str, output_format: Optional[str] = None
    ) -> DownloadTarget:
        """
        Resolve and open the file for a download.

        Without a format the raw upload is returned. With one, an existing
        conversion is reused when its file is still on disk; otherwise the
        format is converted now, blocking the request until it is done.
        The returned handle is already open, so a re-conversion removing the
        superseded file cannot break a download in flight.
        """
        video = await self.video_repo.get_video(video_id, user_email)

        if not output_format:
            handle = self.storage_repo.open_file(video["raw_file_path"])
            if handle is None:
                raise FileMissing()
            return DownloadTarget(
                handle=handle,
                filename=video["filename"],
                content_type=DEFAULT_CONTENT_TYPE,
            )

        fmt = validate_output_format(output_format)
        if video["status"] not in DOWNLOADABLE_STATUSES:
            raise VideoNotReady()
        if not self.storage_repo.file_exists(video["raw_file_path"]):
            raise FileMissing()

        handle = await self._open_format(video_id, fmt)
        if handle is None:
            logger.info("Converting on demand", video_id=video_id, format=fmt.value)
            await self.transcoding_service.convert_to_format(
                video_id, user_email, video["raw_file_path"], fmt
            )
            handle = await self._open_format(video_id, fmt)
            if handle is None:
                raise FileMissing()

        return DownloadTarget(
            handle=handle,
            filename=f"{Path(video['filename']).stem}.{fmt.value}",
            content_type=CONTENT_TYPES.get(fmt, DEFAULT_CONTENT_TYPE),
        )

    async def _open_format(self, video_id: str, fmt: OutputFormat) -> Optional[BinaryIO]:
        """
        Open the file currently registered for a format.
        A replacement is registered before the old file is removed, so a file
        vanishing between lookup and open is retried against the new entry.
        """
        tried = None
        for _ in range(2):
            file_path = await self.video_repo.get_format_path(video_id, fmt.value)
            if not file_path or file_path == tried:
                return None
            handle = self.storage_repo.open_file(file_path)
            if handle is not None:
                return handle
            tried = file_path
        return None
