"""Transcoding pipeline: drives a video from uploaded to completed or failed."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .event_publisher import EventPublisher
from .transcoder import Transcoder
from ..config import settings
from ..core.exceptions import VideoNotFound
from ..repositories.storage_repo import StorageRepository
from ..repositories.video_repo import VideoRepository
from ..utils.constants import OutputFormat, VideoStatus
from ..utils.helpers import truncate_error
from ..utils.logger import get_logger
from ..utils.validators import validate_output_format

logger = get_logger(__name__)


class TranscodingService:
    """
    Service for the per-video conversion state machine.

    UPLOADED -> PROCESSING -> COMPLETED, or FAILED when the record cannot be
    prepared (probe error and the like) or the outcome cannot be recorded. Every supported format is converted
    concurrently; a failed format is logged and left out of the record
    without affecting the others or the final status.

    Each unit of work opens its own session so concurrent conversions never
    share one.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        transcoder: Transcoder,
        publisher: EventPublisher,
        storage_repo: Optional[StorageRepository] = None,
    ):
        self.session_factory = session_factory
        self.transcoder = transcoder
        self.publisher = publisher
        self.storage_repo = storage_repo or StorageRepository()

    @asynccontextmanager
    async def _video_repo(self) -> AsyncIterator[VideoRepository]:
        async with self.session_factory() as session:
            yield VideoRepository(session, self.storage_repo)

    async def _set_status(
        self,
        video_id: str,
        status: VideoStatus,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        async with self._video_repo() as repo:
            video = await repo.update_status(video_id, status, metadata)
        if video is None:
            logger.warning("Video record vanished, aborting job", video_id=video_id, status=status.value)
        else:
            logger.info("Video status changed", video_id=video_id, status=status.value)
        return video

    async def process_video(
        self, video_id: str, raw_file_path: str
    ) -> Optional[Dict[str, Any]]:
        """
        Run the whole pipeline for one uploaded video.
        Returns the final record, or None if the record disappeared.
        Safe to run again for the same video.
        """
        logger.info("Processing video", video_id=video_id, path=raw_file_path)

        try:
            async with self._video_repo() as repo:
                video = await repo.get_video(video_id)
        except VideoNotFound:
            logger.error("Video record not found, dropping job", video_id=video_id)
            return None
        user_email = video["user_email"]

        try:
            if await self._set_status(video_id, VideoStatus.PROCESSING) is None:
                return None

            metadata = await self.transcoder.probe(raw_file_path)
            video = await self._set_status(
                video_id, VideoStatus.PROCESSING, metadata.as_update()
            )
            if video is None:
                return None
            await self.publisher.status_changed(user_email, video)
            logger.info(
                "Video metadata extracted",
                video_id=video_id,
                duration=metadata.duration,
                resolution=metadata.resolution,
                size=metadata.size,
            )

            await self.convert_all_formats(video_id, user_email, raw_file_path)

            video = await self._set_status(video_id, VideoStatus.COMPLETED)
            if video is not None:
                await self.publisher.status_changed(user_email, video)
            return video
        except Exception as exc:
            logger.error("Error processing video", video_id=video_id, error=str(exc))
            return await self._mark_failed(video_id, user_email, exc)

    async def _mark_failed(
        self, video_id: str, user_email: str, exc: BaseException
    ) -> Optional[Dict[str, Any]]:
        """Persist FAILED with the error and notify; never raises."""
        try:
            failed = await self._set_status(
                video_id,
                VideoStatus.FAILED,
                {"error_message": truncate_error(exc, settings.error_message_max_length)},
            )
            if failed is not None:
                await self.publisher.status_changed(user_email, failed)
            return failed
        except Exception as persist_exc:
            logger.error(
                "Could not record video failure",
                video_id=video_id,
                error=str(persist_exc),
                cause=str(exc),
            )
            return None

    async def convert_all_formats(
        self, video_id: str, user_email: str, raw_file_path: str
    ) -> Dict[str, Union[str, BaseException]]:
        """
        Convert to every supported format at once and wait for all of them.
        Returns the output path or the error for each format.
        """
        formats: List[OutputFormat] = list(OutputFormat)
        logger.info(
            "Starting automatic conversion", video_id=video_id, formats=len(formats)
        )

        results = await asyncio.gather(
            *(
                self.convert_to_format(video_id, user_email, raw_file_path, fmt)
                for fmt in formats
            ),
            return_exceptions=True,
        )

        outcomes: Dict[str, Union[str, BaseException]] = {}
        for fmt, result in zip(formats, results):
            outcomes[fmt.value] = result
            if isinstance(result, BaseException):
                logger.error(
                    "Failed to convert video",
                    video_id=video_id,
                    format=fmt.value,
                    error=str(result),
                )
            else:
                logger.info("Converted video", video_id=video_id, format=fmt.value)

        succeeded = sum(1 for r in results if not isinstance(r, BaseException))
        logger.info(
            "Completed automatic conversion",
            video_id=video_id,
            succeeded=succeeded,
            failed=len(formats) - succeeded,
        )
        return outcomes

    async def convert_to_format(
        self,
        video_id: str,
        user_email: str,
        raw_file_path: str,
        output_format: Union[str, OutputFormat],
    ) -> str:
        """
        Convert one format, record it and notify the owner.
        Used by the pipeline fan-out and by on-demand downloads.
        Returns the path of the new file.
        """
        fmt = (
            output_format
            if isinstance(output_format, OutputFormat)
            else validate_output_format(output_format)
        )
        output_path = self.storage_repo.new_processed_path(fmt.value)
        logger.info("Converting video", video_id=video_id, format=fmt.value)

        try:
            await self.transcoder.convert(raw_file_path, output_path, fmt)
        except Exception:
            self.storage_repo.delete_file(output_path)
            raise

        async with self._video_repo() as repo:
            previous_path = await repo.get_format_path(video_id, fmt.value)
            try:
                await repo.upsert_format(video_id, fmt.value, str(output_path))
            except VideoNotFound:
                # Video deleted mid-job; keep nothing behind
                self.storage_repo.delete_file(output_path)
                raise

        if previous_path and Path(previous_path) != output_path:
            self.storage_repo.delete_file(previous_path)

        await self.publisher.format_converted(
            user_email, video_id, fmt.value, str(output_path)
        )
        return str(output_path)
