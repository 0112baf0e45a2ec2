"""Video repository: the only writer of video records."""

from typing import Any, Dict, List, Mapping, Optional
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from .base import BaseRepository
from .storage_repo import StorageRepository
from ..config import settings
from ..core.exceptions import DuplicateFilename, VideoNotFound
from ..models.video import Video, VideoFormat
from ..utils.constants import MERGEABLE_VIDEO_FIELDS, VideoStatus
from ..utils.helpers import merge_video_fields, truncate_error
from ..utils.logger import get_logger

logger = get_logger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class VideoRepository(BaseRepository[Video]):
    """Repository for video records and their converted formats."""

    def __init__(
        self, session: AsyncSession, storage_repo: Optional[StorageRepository] = None
    ):
        super().__init__(session, Video)
        self.storage_repo = storage_repo or StorageRepository()

    async def create_video(
        self, user_email: str, filename: str, raw_file_path: str
    ) -> Dict[str, Any]:
        """
        Create a video record in UPLOADED state.
        Raises DuplicateFilename if the user already has a video with this filename.
        """
        existing = await self.session.execute(
            select(Video.id).where(
                Video.user_email == user_email, Video.filename == filename
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateFilename(filename)

        video = Video(
            user_email=user_email,
            filename=filename,
            status=VideoStatus.UPLOADED,
            raw_file_path=raw_file_path,
        )
        self.session.add(video)
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race against a concurrent upload of the same name
            await self.session.rollback()
            raise DuplicateFilename(filename)

        return self._to_dict(await self._get_entity(video.id))

    async def get_video(
        self, video_id: str, user_email: Optional[str] = None
    ) -> Dict[str, Any]:
        """Get a video, optionally restricted to its owner."""
        video = await self._get_entity(video_id, user_email=user_email)
        if video is None:
            raise VideoNotFound()
        return self._to_dict(video)

    async def list_by_user(self, user_email: str) -> List[Dict[str, Any]]:
        """Get all videos for a user, newest first."""
        result = await self.session.execute(
            select(Video)
            .where(Video.user_email == user_email)
            .order_by(Video.created_at.desc(), Video.id)
        )
        return [self._to_dict(v) for v in result.scalars().all()]

    async def update_status(
        self,
        video_id: str,
        status: VideoStatus,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Set status and merge any provided metadata fields.
        Returns None if the record no longer exists.
        """
        video = await self._get_entity(video_id)
        if video is None:
            return None

        if metadata and metadata.get("error_message") is not None:
            metadata = dict(metadata)
            metadata["error_message"] = truncate_error(
                metadata["error_message"], settings.error_message_max_length
            )

        current = {field: getattr(video, field) for field in MERGEABLE_VIDEO_FIELDS}
        for field, value in merge_video_fields(current, metadata).items():
            setattr(video, field, value)
        video.status = status
        await self.session.commit()

        return self._to_dict(await self._get_entity(video_id))

    async def upsert_format(
        self, video_id: str, output_format: str, file_path: str
    ) -> Dict[str, Any]:
        """
        Record a converted format, replacing the path of an existing entry.
        The insert-or-update is a single statement so concurrent completions
        for the same video never lose an entry.
        """
        if await self._get_entity(video_id) is None:
            raise VideoNotFound()

        insert = _UPSERT_INSERTS.get(self.dialect_name)
        if insert is None:
            await self._upsert_format_fallback(video_id, output_format, file_path)
        else:
            stmt = insert(VideoFormat).values(
                video_id=video_id, format=output_format, file_path=file_path
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["video_id", "format"],
                set_={"file_path": stmt.excluded.file_path},
            )
            try:
                await self.session.execute(stmt)
                await self.session.commit()
            except IntegrityError:
                # Parent row was deleted between the check and the insert
                await self.session.rollback()
                raise VideoNotFound()

        return self._to_dict(await self._get_entity(video_id))

    async def _upsert_format_fallback(
        self, video_id: str, output_format: str, file_path: str
    ) -> None:
        result = await self.session.execute(
            select(VideoFormat).where(
                VideoFormat.video_id == video_id, VideoFormat.format == output_format
            )
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            self.session.add(
                VideoFormat(video_id=video_id, format=output_format, file_path=file_path)
            )
        else:
            entry.file_path = file_path
        await self.session.commit()

    async def get_format_path(self, video_id: str, output_format: str) -> Optional[str]:
        """Get the stored location of a converted format, if any."""
        result = await self.session.execute(
            select(VideoFormat.file_path).where(
                VideoFormat.video_id == video_id, VideoFormat.format == output_format
            )
        )
        return result.scalar_one_or_none()

    async def delete_video(self, video_id: str, user_email: str) -> Dict[str, str]:
        """
        Delete a video and every file backing it.
        File removal is best-effort; the record is deleted regardless.
        """
        video = await self._get_entity(video_id, user_email=user_email)
        if video is None:
            raise VideoNotFound()

        paths = [video.raw_file_path, video.output_file_path]
        paths.extend(entry.file_path for entry in video.converted_formats)
        for path in paths:
            if path and self.storage_repo.file_exists(path):
                if not self.storage_repo.delete_file(path):
                    logger.error(
                        "Failed to delete video file", video_id=video_id, path=path
                    )

        await self.session.delete(video)
        await self.session.commit()
        logger.info("Video deleted", video_id=video_id, user=user_email)
        return {"message": "Video deleted successfully"}

    def _to_dict(self, entity: Optional[Video]) -> Optional[Dict[str, Any]]:
        data = super()._to_dict(entity)
        if data is None:
            return None
        data["status"] = VideoStatus(entity.status).value
        data["converted_formats"] = [
            {"format": entry.format, "file_path": entry.file_path}
            for entry in entity.converted_formats
        ]
        return data
