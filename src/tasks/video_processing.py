"""Video processing Celery tasks."""

import asyncio
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from ..tasks.celery_app import celery_app
from ..config import settings
from ..config.redis import create_redis
from ..services.event_publisher import RedisEventPublisher
from ..services.transcoder import Transcoder
from ..services.transcoding_service import TranscodingService
from ..utils.logger import get_logger

logger = get_logger(__name__)


async def _process(video_id: str, raw_file_path: str) -> Optional[Dict[str, Any]]:
    # Engine and redis client are bound to this job's event loop
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    redis = create_redis()
    try:
        service = TranscodingService(
            session_factory,
            Transcoder(),
            RedisEventPublisher(redis, settings.notification_channel),
        )
        return await service.process_video(video_id, raw_file_path)
    finally:
        await redis.aclose()
        await engine.dispose()


@celery_app.task(name="process_video", bind=True)
def process_video(self, video_id: str, raw_file_path: str) -> dict:
    """
    Convert an uploaded video into every supported format.
    Failures are recorded on the video itself, so the task is never retried.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        video = loop.run_until_complete(_process(video_id, raw_file_path))
    finally:
        loop.close()

    status = video["status"] if video else "missing"
    logger.info("Video job finished", video_id=video_id, status=status, task_id=self.request.id)
    return {"video_id": video_id, "status": status}
