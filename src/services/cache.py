"""Small JSON cache on top of the shared Redis client.

Every helper degrades to a cache miss when Redis is unavailable.
"""

import json
import logging
from typing import Any

import redis

from src.services.realtime import get_sync_redis

logger = logging.getLogger(__name__)


def get_json(key: str) -> Any | None:
    """Return the cached value for key, or None on a miss."""
    try:
        raw = get_sync_redis().get(key)
    except redis.RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        logger.warning(f"Discarding unreadable cache entry {key}")
        return None


def set_json(key: str, value: Any, ttl_seconds: int) -> None:
    """Cache value under key for ttl_seconds."""
    try:
        get_sync_redis().set(key, json.dumps(value, default=str), ex=ttl_seconds)
    except redis.RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")


def delete(*keys: str) -> None:
    """Drop cached keys."""
    if not keys:
        return
    try:
        get_sync_redis().delete(*keys)
    except redis.RedisError as e:
        logger.warning(f"Cache invalidation failed for {keys}: {e}")
