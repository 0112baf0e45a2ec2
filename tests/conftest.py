"""Pytest configuration and fixtures."""

import os
import tempfile
import time

# Point the application at throwaway storage before it reads its settings
_TEST_ROOT = tempfile.mkdtemp(prefix="convert-video-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/app.db"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["NOTIFICATION_RELAY_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

import pytest
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Tuple
from unittest.mock import MagicMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from src.main import app
from src.config.database import Base, get_db
from src.core.dependencies import (
    get_queue_repo,
    get_session_factory,
    get_storage_repo,
    get_transcoder,
)
from src.core.exceptions import ConversionFailure
from src.core.security import create_access_token
from src.middleware.rate_limit import limiter
from src.repositories.storage_repo import StorageRepository
from src.repositories.video_repo import VideoRepository
from src.services.event_publisher import EventPublisher
from src.services.notification_hub import NotificationHub
from src.services.transcoder import VideoMetadata
from src.services.transcoding_service import TranscodingService
from src.utils.constants import OutputFormat

TEST_USER = "test@example.com"
OTHER_USER = "other@example.com"


class FakeTranscoder:
    """Stands in for ffmpeg: writes small output files, fails on request."""

    def __init__(self):
        self.metadata = VideoMetadata(duration=12.5, resolution="1280x720", size=2048)
        self.probe_error = None
        self.fail_formats = set()
        self.converted: List[OutputFormat] = []

    async def probe(self, input_path):
        if self.probe_error is not None:
            raise self.probe_error
        return self.metadata

    async def convert(self, input_path, output_path, output_format):
        if output_format in self.fail_formats:
            raise ConversionFailure(output_format.value, "ffmpeg exited with code 1")
        Path(output_path).write_bytes(b"converted-" + output_format.value.encode())
        self.converted.append(output_format)


class RecordingPublisher(EventPublisher):
    """Keeps published notifications in memory."""

    def __init__(self):
        self.events: List[Tuple[str, str, Dict[str, Any]]] = []

    async def publish(self, user_email, event, data):
        self.events.append((user_email, event, data))

    def named(self, event: str) -> List[Dict[str, Any]]:
        return [data for _, name, data in self.events if name == event]


class FakeSocket:
    """Minimal WebSocket double for hub tests."""

    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)


def auth_headers_for(email: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': email})}"}


def wait_for_connection(hub: NotificationHub, user: str, timeout: float = 2.0) -> None:
    """Block until the socket handler has registered a connection for ``user``."""
    deadline = time.monotonic() + timeout
    while not hub.connections_for(user):
        if time.monotonic() > deadline:
            raise AssertionError(f"no connection registered for {user}")
        time.sleep(0.01)


@pytest.fixture(scope="function")
async def db_engine(tmp_path):
    """File-backed SQLite so concurrent sessions see each other's writes."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage_repo(tmp_path) -> StorageRepository:
    return StorageRepository(tmp_path / "raw", tmp_path / "processed")


@pytest.fixture
def video_repo(db_session, storage_repo) -> VideoRepository:
    return VideoRepository(db_session, storage_repo)


@pytest.fixture
def raw_file(storage_repo) -> str:
    """A raw upload already sitting in the raw root."""
    storage_repo.raw_dir.mkdir(parents=True, exist_ok=True)
    path = storage_repo.raw_dir / "1700000000000-abcd1234.mp4"
    path.write_bytes(b"raw video bytes")
    return str(path)


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def transcoding_service(session_factory, fake_transcoder, publisher, storage_repo):
    return TranscodingService(session_factory, fake_transcoder, publisher, storage_repo)


@pytest.fixture
async def uploaded_video(session_factory, storage_repo, raw_file) -> Dict[str, Any]:
    """A video record in UPLOADED state backed by ``raw_file``."""
    async with session_factory() as session:
        repo = VideoRepository(session, storage_repo)
        return await repo.create_video(TEST_USER, "clip.mp4", raw_file)


@pytest.fixture
def notification_hub() -> NotificationHub:
    return NotificationHub()


@pytest.fixture
def queue_repo() -> MagicMock:
    queue = MagicMock()
    queue.enqueue_video_processing = MagicMock(
        return_value={"task_id": "task-123", "status": "queued"}
    )
    return queue


@pytest.fixture(scope="function")
async def client(
    session_factory, fake_transcoder, storage_repo, queue_repo, notification_hub
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_queue_repo():
        yield queue_repo

    async def override_get_storage_repo():
        yield storage_repo

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_transcoder] = lambda: fake_transcoder
    app.dependency_overrides[get_queue_repo] = override_get_queue_repo
    app.dependency_overrides[get_storage_repo] = override_get_storage_repo
    # ASGITransport skips the lifespan, so the hub is installed by hand
    app.state.notification_hub = notification_hub
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return auth_headers_for(TEST_USER)


@pytest.fixture
def other_auth_headers() -> Dict[str, str]:
    return auth_headers_for(OTHER_USER)
