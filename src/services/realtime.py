"""Real-time notification fan-out using Redis pub/sub."""

import json
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

import redis
import redis.asyncio as aioredis

from src.config import get_settings

if TYPE_CHECKING:
    from redis.asyncio.client import PubSub

logger = logging.getLogger(__name__)
settings = get_settings()

NOTIF_CHANNEL_PREFIX = "notif:channel:"
NOTIF_PENDING_PREFIX = "notif:pending:"
NOTIF_PENDING_TTL_SECONDS = 24 * 60 * 60
NOTIF_PENDING_MAX = 100


# Synchronous Redis client for use in API endpoints and workers
_sync_redis: redis.Redis | None = None


def get_sync_redis() -> redis.Redis:
    """Get synchronous Redis client shared by caches and publishers."""
    global _sync_redis
    if _sync_redis is None:
        _sync_redis = redis.from_url(settings.redis_url, decode_responses=True)
    return _sync_redis


def notification_channel(user_id: int) -> str:
    return f"{NOTIF_CHANNEL_PREFIX}{user_id}"


def publish_notification(user_id: int, payload: dict) -> None:
    """Publish a notification to a user's channel.

    When nobody is subscribed, the payload is parked on the user's pending queue
    so the next websocket connection can flush it.
    """
    try:
        redis_client = get_sync_redis()
        message = json.dumps(payload, default=str)
        receivers = redis_client.publish(notification_channel(user_id), message)
        if not receivers:
            pending_key = f"{NOTIF_PENDING_PREFIX}{user_id}"
            redis_client.rpush(pending_key, message)
            redis_client.ltrim(pending_key, -NOTIF_PENDING_MAX, -1)
            redis_client.expire(pending_key, NOTIF_PENDING_TTL_SECONDS)
        logger.debug(f"Published notification to user {user_id} ({receivers} receivers)")
    except redis.RedisError as e:
        # Don't fail the request if pub/sub fails
        logger.error(f"Failed to publish notification: {e}")


def drain_pending_notifications(user_id: int) -> list[dict]:
    """Pop every queued notification for a user, oldest first."""
    pending_key = f"{NOTIF_PENDING_PREFIX}{user_id}"
    try:
        redis_client = get_sync_redis()
        pipe = redis_client.pipeline()
        pipe.lrange(pending_key, 0, -1)
        pipe.delete(pending_key)
        raw_messages, _ = pipe.execute()
    except redis.RedisError as e:
        logger.error(f"Failed to read pending notifications: {e}")
        return []

    messages = []
    for raw in raw_messages or []:
        try:
            messages.append(json.loads(raw))
        except (TypeError, json.JSONDecodeError):
            logger.warning(f"Invalid JSON in pending queue for user {user_id}")
    return messages


class RealtimeService:
    """Async Redis pub/sub service for WebSocket connections."""

    def __init__(self) -> None:
        self._redis: aioredis.Redis | None = None
        self._pubsub: PubSub | None = None

    async def _get_redis(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(settings.redis_url)
        return self._redis

    async def subscribe(self, channel: str) -> None:
        """Subscribe to a Redis channel.

        Messages published from here on are buffered by the connection until
        read with listen().
        """
        redis_conn = await self._get_redis()
        self._pubsub = redis_conn.pubsub()
        await self._pubsub.subscribe(channel)

    async def listen(self) -> AsyncIterator[dict]:
        """Yield messages from the subscribed channel."""
        if self._pubsub is None:
            raise RuntimeError("subscribe() must be called before listen()")

        async for message in self._pubsub.listen():
            if message["type"] == "message":
                try:
                    data = json.loads(message["data"])
                    yield data
                except json.JSONDecodeError:
                    logger.warning(f"Invalid JSON in pub/sub message: {message['data']}")

    async def cleanup(self) -> None:
        """Clean up Redis connections."""
        if self._pubsub:
            await self._pubsub.close()
        if self._redis:
            await self._redis.close()
