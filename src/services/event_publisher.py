"""Publishing of video notifications, in-process or across processes via Redis."""

import asyncio
import json
from typing import Any, Dict

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .notification_hub import NotificationHub
from ..schemas.video import FormatConvertedEvent, StatusChangedEvent, VideoResponse
from ..utils.constants import NotificationEvent
from ..utils.logger import get_logger

logger = get_logger(__name__)

RELAY_RETRY_SECONDS = 5.0


class EventPublisher:
    """Builds notification payloads; subclasses decide where they go."""

    async def publish(self, user_email: str, event: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def status_changed(self, user_email: str, video: Dict[str, Any]) -> None:
        """Push the full record snapshot after a status transition."""
        payload = StatusChangedEvent(
            videoId=video["id"], video=VideoResponse.model_validate(video)
        )
        await self.publish(
            user_email,
            NotificationEvent.STATUS_CHANGED.value,
            payload.model_dump(mode="json"),
        )

    async def format_converted(
        self, user_email: str, video_id: str, output_format: str, file_path: str
    ) -> None:
        payload = FormatConvertedEvent(
            videoId=video_id, format=output_format, filePath=file_path
        )
        await self.publish(
            user_email,
            NotificationEvent.FORMAT_CONVERTED.value,
            payload.model_dump(mode="json"),
        )


class HubEventPublisher(EventPublisher):
    """Delivers straight to the hub of the current process."""

    def __init__(self, hub: NotificationHub):
        self.hub = hub

    async def publish(self, user_email: str, event: str, data: Dict[str, Any]) -> None:
        await self.hub.broadcast(user_email, event, data)


class RedisEventPublisher(EventPublisher):
    """Publishes on a Redis channel for the API process relay to pick up."""

    def __init__(self, redis: aioredis.Redis, channel: str):
        self.redis = redis
        self.channel = channel

    async def publish(self, user_email: str, event: str, data: Dict[str, Any]) -> None:
        message = json.dumps({"user": user_email, "event": event, "data": data})
        try:
            await self.redis.publish(self.channel, message)
        except RedisError as exc:
            # Notifications are not replayed; clients re-fetch state on reconnect
            logger.warning("Failed to publish notification", event_name=event, error=str(exc))


async def relay_notifications(
    hub: NotificationHub, redis: aioredis.Redis, channel: str
) -> None:
    """
    Forward events published by workers to the local hub.
    Runs until cancelled; reconnects after Redis errors.
    """
    while True:
        pubsub = redis.pubsub()
        try:
            await pubsub.subscribe(channel)
            logger.info("Notification relay subscribed", channel=channel)
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                await _forward(hub, message.get("data"))
        except RedisError as exc:
            logger.warning("Notification relay lost Redis connection", error=str(exc))
            await asyncio.sleep(RELAY_RETRY_SECONDS)
        finally:
            await pubsub.aclose()


async def _forward(hub: NotificationHub, raw: Any) -> None:
    try:
        message = json.loads(raw)
        user_email, event, data = message["user"], message["event"], message["data"]
    except (TypeError, ValueError, KeyError) as exc:
        logger.warning("Ignoring malformed notification", error=str(exc))
        return
    await hub.broadcast(user_email, event, data)
