"""Reusable FastAPI dependencies."""

from typing import AsyncGenerator
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from ..config.database import AsyncSessionLocal, get_db
from ..repositories.queue_repo import QueueRepository
from ..repositories.storage_repo import StorageRepository
from ..services.event_publisher import HubEventPublisher
from ..services.notification_hub import NotificationHub
from ..services.transcoder import Transcoder
from ..services.transcoding_service import TranscodingService
from ..services.video_service import VideoService


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that outlives a single request session."""
    return AsyncSessionLocal


def get_transcoder() -> Transcoder:
    return Transcoder()


def get_notification_hub(request: Request) -> NotificationHub:
    """The hub created in the application lifespan."""
    return request.app.state.notification_hub


async def get_queue_repo() -> AsyncGenerator[QueueRepository, None]:
    """Dependency to get queue repository."""
    yield QueueRepository()


async def get_storage_repo() -> AsyncGenerator[StorageRepository, None]:
    """Dependency to get storage repository."""
    yield StorageRepository()


async def get_transcoding_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    transcoder: Transcoder = Depends(get_transcoder),
    hub: NotificationHub = Depends(get_notification_hub),
    storage_repo: StorageRepository = Depends(get_storage_repo),
) -> AsyncGenerator[TranscodingService, None]:
    """Pipeline primitives publishing straight to this process's hub."""
    yield TranscodingService(
        session_factory=session_factory,
        transcoder=transcoder,
        publisher=HubEventPublisher(hub),
        storage_repo=storage_repo,
    )


async def get_video_service(
    db: AsyncSession = Depends(get_db),
    transcoding_service: TranscodingService = Depends(get_transcoding_service),
    queue_repo: QueueRepository = Depends(get_queue_repo),
    storage_repo: StorageRepository = Depends(get_storage_repo),
) -> AsyncGenerator[VideoService, None]:
    """Dependency to get video service."""
    yield VideoService(
        db,
        transcoding_service=transcoding_service,
        queue_repo=queue_repo,
        storage_repo=storage_repo,
    )
