"""Single-use account tokens kept in Redis.

The raw token only ever travels in an email link. Redis stores its SHA-256
hash under a purpose prefix, with the user id as the value and a TTL.
"""

import hashlib
import logging
import secrets

import redis

from src.services.realtime import get_sync_redis

logger = logging.getLogger(__name__)

RESET_PREFIX = "reset:"
RESET_TTL_SECONDS = 15 * 60
VERIFY_PREFIX = "verify:"
VERIFY_TTL_SECONDS = 24 * 60 * 60
VERIFY_RESEND_PREFIX = "verify_resend:"
VERIFY_RESEND_COOLDOWN_SECONDS = 5 * 60
TOKEN_BYTES = 32


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


def issue_token(prefix: str, user_id: int, ttl_seconds: int) -> str:
    """Store a new token for user_id and return the raw token."""
    raw_token = secrets.token_hex(TOKEN_BYTES)
    get_sync_redis().set(f"{prefix}{hash_token(raw_token)}", str(user_id), ex=ttl_seconds)
    return raw_token


def _parse_user_id(value: str | bytes | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Discarding account token with unreadable user id")
        return None


def peek_token(prefix: str, raw_token: str) -> int | None:
    """Return the token's user id without using it up."""
    try:
        value = get_sync_redis().get(f"{prefix}{hash_token(raw_token)}")
    except redis.RedisError as e:
        logger.error(f"Failed to read account token: {e}")
        return None
    return _parse_user_id(value)


def consume_token(prefix: str, raw_token: str) -> int | None:
    """Return the token's user id and delete it, or None if unknown or expired."""
    value = get_sync_redis().getdel(f"{prefix}{hash_token(raw_token)}")
    return _parse_user_id(value)


def start_resend_cooldown(user_id: int) -> bool:
    """Start the verification resend cooldown. Returns False if one is already running."""
    try:
        started = get_sync_redis().set(
            f"{VERIFY_RESEND_PREFIX}{user_id}", "1", ex=VERIFY_RESEND_COOLDOWN_SECONDS, nx=True
        )
    except redis.RedisError as e:
        logger.warning(f"Failed to check resend cooldown for user {user_id}: {e}")
        return True
    return bool(started)
