"""Web push: subscriptions, preferences, message building and delivery bookkeeping."""

import json
import logging
import re
import time
import uuid
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pywebpush import WebPushException, webpush
from sqlalchemy.orm import Session

from src.config import get_settings
from src.models import Notification, PushDeliveryLog, PushPreference, PushSubscription
from src.models.enums import NotificationType, PushSubscriptionStatus
from src.services.dates import load_zone
from src.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_BODY_LENGTH = 200
MAX_PAYLOAD_BYTES = 4096
DEFAULT_TTL_SECONDS = 3600
QUIET_HOURS_RETRY_SECONDS = 15 * 60

STALE_SUBSCRIPTION_DAYS = 90
GONE_SUBSCRIPTION_DAYS = 7
DELIVERY_LOG_RETENTION_DAYS = 30

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
REQUIRED_PREFERENCE_FIELDS = ("push_enabled", "quiet_hours_enabled", "timezone")

STATUS_SUCCESS = "success"
STATUS_GONE = "subscription_gone"
STATUS_RATE_LIMITED = "rate_limited"
STATUS_NETWORK_ERROR = "network_error"


# --- Subscriptions ---


def _truncate(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    return value[:limit]


def register_subscription(
    db: Session,
    user_id: int,
    endpoint: str,
    p256dh: str,
    auth: str,
    user_agent: str | None = None,
    platform: str | None = None,
    browser: str | None = None,
) -> PushSubscription:
    """Register or refresh a browser subscription for a user.

    An endpoint already owned by a different user is rejected.
    """
    if not endpoint.startswith("https://") or not 10 <= len(endpoint) <= 2048:
        raise ValidationError("Endpoint must be an https URL of at most 2048 characters")

    settings = get_settings()
    subscription = db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint).first()

    if subscription and subscription.user_id != user_id:
        raise ConflictError("Subscription endpoint belongs to another user")

    if subscription is None:
        subscription = PushSubscription(user_id=user_id, endpoint=endpoint)
        db.add(subscription)

    subscription.p256dh = p256dh
    subscription.auth = auth
    subscription.vapid_key_id = settings.vapid_key_id
    subscription.status = PushSubscriptionStatus.ACTIVE
    subscription.failure_count = 0
    subscription.user_agent = _truncate(user_agent, 500)
    subscription.platform = _truncate(platform, 50)
    subscription.browser = _truncate(browser, 50)
    db.commit()
    db.refresh(subscription)

    logger.info(f"Push subscription {subscription.id} registered for user {user_id}")
    return subscription


def unregister_subscription(db: Session, user_id: int, endpoint: str) -> None:
    """Soft-delete a subscription by marking it expired."""
    subscription = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
        .first()
    )
    if not subscription:
        raise NotFoundError("Subscription not found")

    subscription.status = PushSubscriptionStatus.EXPIRED
    db.commit()
    logger.info(f"Push subscription {subscription.id} unregistered for user {user_id}")


# --- Preferences ---


def get_preferences(db: Session, user_id: int) -> PushPreference | None:
    """Get push preferences for a user."""
    return db.query(PushPreference).filter(PushPreference.user_id == user_id).first()


def get_or_create_preferences(db: Session, user_id: int) -> PushPreference:
    """Get or create push preferences for a user."""
    preferences = get_preferences(db, user_id)
    if not preferences:
        preferences = PushPreference(
            user_id=user_id,
            push_enabled=True,
            types={},
            quiet_hours_enabled=False,
            timezone=get_settings().app_timezone,
        )
        db.add(preferences)
        db.commit()
        db.refresh(preferences)
    return preferences


def update_preferences(db: Session, user_id: int, update_data: dict) -> PushPreference:
    """Validate and apply a partial preference update."""
    for field in REQUIRED_PREFERENCE_FIELDS:
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"{field} cannot be null")

    valid_types = {t.value for t in NotificationType}
    types = update_data.get("types")
    if types is not None:
        unknown = sorted(set(types) - valid_types)
        if unknown:
            raise ValidationError(f"Unknown notification types: {', '.join(unknown)}")

    for field in ("quiet_start", "quiet_end"):
        value = update_data.get(field)
        if value is not None and not HHMM_PATTERN.match(value):
            raise ValidationError(f"{field} must use HH:MM format")

    timezone = update_data.get("timezone")
    if timezone is not None:
        if len(timezone) > 50:
            raise ValidationError("Timezone name is too long")
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValidationError(f"Unknown timezone: {timezone}") from e

    preferences = get_or_create_preferences(db, user_id)

    quiet_enabled = update_data.get("quiet_hours_enabled", preferences.quiet_hours_enabled)
    quiet_start = update_data.get("quiet_start", preferences.quiet_start)
    quiet_end = update_data.get("quiet_end", preferences.quiet_end)
    if quiet_enabled and (not quiet_start or not quiet_end):
        raise ValidationError("Quiet hours need both a start and an end time")

    if types is not None:
        # Reassign so the JSON column registers the change
        preferences.types = {**(preferences.types or {}), **types}
    for field, value in update_data.items():
        if field != "types":
            setattr(preferences, field, value)

    db.commit()
    db.refresh(preferences)
    return preferences


def is_type_enabled(preferences: PushPreference, notification_type: str) -> bool:
    """Opt-out model: a type is enabled unless explicitly set to false."""
    return bool((preferences.types or {}).get(notification_type, True))


def is_quiet_hours(preferences: PushPreference, now: datetime) -> bool:
    """Check if now falls inside the user's quiet hours, in the user's timezone."""
    if not preferences.quiet_hours_enabled:
        return False
    if not preferences.quiet_start or not preferences.quiet_end:
        return False

    local_time = now.astimezone(load_zone(preferences.timezone)).strftime("%H:%M")
    start = preferences.quiet_start
    end = preferences.quiet_end

    # Handle overnight quiet hours (e.g., 23:00-07:00)
    if start > end:
        return local_time >= start or local_time < end

    return start <= local_time < end


# --- Publishing ---


def build_push_message(
    notification: Notification,
    dedupe_key: str,
    deep_link: str | None = None,
    ttl_seconds: int | None = None,
) -> dict:
    """Build the JSON-serializable message handed to the delivery worker."""
    body = notification.body or ""
    if len(body) > MAX_BODY_LENGTH:
        body = body[: MAX_BODY_LENGTH - 3] + "..."

    if not deep_link or not deep_link.startswith("/"):
        deep_link = "/"

    message = {
        "message_id": str(uuid.uuid4()),
        "user_id": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "body": body,
        "dedupe_key": dedupe_key,
        "tag": dedupe_key,
        "deep_link": deep_link,
        "data": {"notification_id": notification.id, **(notification.payload or {})},
        "ttl_seconds": ttl_seconds or DEFAULT_TTL_SECONDS,
    }

    if len(json.dumps(build_payload(message)).encode("utf-8")) > MAX_PAYLOAD_BYTES:
        message["data"] = {}
    return message


def build_payload(message: dict) -> dict:
    """Payload the service worker receives."""
    return {
        "title": message["title"],
        "body": message["body"],
        "tag": message["tag"],
        "type": message["type"],
        "url": message["deep_link"],
        "data": message.get("data") or {},
    }


def publish_push(
    notification: Notification,
    dedupe_key: str,
    deep_link: str | None = None,
    ttl_seconds: int | None = None,
) -> dict | None:
    """Queue a push message for a notification. Returns the queued message."""
    if not get_settings().push_enabled:
        logger.debug("VAPID credentials not configured, push disabled")
        return None

    from src.tasks.push import deliver_push

    message = build_push_message(notification, dedupe_key, deep_link, ttl_seconds)
    deliver_push.delay(message)
    logger.debug(f"Queued push {message['message_id']} for user {notification.user_id}")
    return message


# --- Delivery ---


def classify_status(status_code: int) -> tuple[str, bool]:
    """Map a push service response code to (delivery status, retryable).

    404/410 mean the subscription is gone for good; 429 and 5xx are transient.
    """
    if 200 <= status_code < 300:
        return STATUS_SUCCESS, False
    if status_code in (404, 410):
        return STATUS_GONE, False
    if status_code == 429:
        return STATUS_RATE_LIMITED, True
    if status_code >= 500:
        return f"server_error_{status_code}", True
    return f"client_error_{status_code}", False


class PushDeliveryService:
    """Delivers one push message to every active subscription of its user."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.settings = get_settings()

    def send(self, subscription: PushSubscription, payload: dict, ttl_seconds: int) -> int:
        """Send one payload to one subscription and return the HTTP status code."""
        try:
            response = webpush(
                subscription_info={
                    "endpoint": subscription.endpoint,
                    "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
                },
                data=json.dumps(payload),
                vapid_private_key=self.settings.vapid_private_key,
                vapid_claims={"sub": f"mailto:{self.settings.vapid_email}"},
                ttl=ttl_seconds,
            )
        except WebPushException as e:
            if e.response is not None:
                return e.response.status_code
            raise
        return response.status_code

    def deliver(self, message: dict, attempt: int = 0) -> dict:
        """Run the delivery pipeline for a message.

        Returns:
            dict with "status" and, when the worker should try again, "retry" and "countdown"
        """
        user_id = message["user_id"]
        now = datetime.now(UTC)

        preferences = get_preferences(self.db, user_id)
        if preferences is not None:
            if not preferences.push_enabled or not is_type_enabled(preferences, message["type"]):
                return {"status": "disabled"}
            if is_quiet_hours(preferences, now):
                if attempt + 1 < self.settings.push_max_deliveries:
                    return {
                        "status": "quiet_hours",
                        "retry": True,
                        "countdown": QUIET_HOURS_RETRY_SECONDS,
                    }
                logger.info(f"Abandoning push {message['message_id']}: quiet hours")
                return {"status": "abandoned"}

        if self._recently_delivered(message, now):
            return {"status": "duplicate"}

        subscriptions = (
            self.db.query(PushSubscription)
            .filter(
                PushSubscription.user_id == user_id,
                PushSubscription.status == PushSubscriptionStatus.ACTIVE,
            )
            .all()
        )
        if not subscriptions:
            return {"status": "no_subscriptions"}

        payload = build_payload(message)
        sent = 0
        retry = False
        for subscription in subscriptions:
            outcome = self._deliver_to_subscription(message, payload, subscription)
            if outcome == STATUS_SUCCESS:
                sent += 1
            elif outcome is not None and outcome != STATUS_GONE:
                retry = retry or self._is_retryable(outcome)

        logger.info(
            f"Push {message['message_id']} sent to {sent}/{len(subscriptions)} devices "
            f"for user {user_id}"
        )
        result = {"status": "delivered", "sent": sent, "total": len(subscriptions)}
        if retry:
            result["retry"] = True
        return result

    @staticmethod
    def _is_retryable(outcome: str) -> bool:
        return (
            outcome in (STATUS_RATE_LIMITED, STATUS_NETWORK_ERROR)
            or outcome.startswith("server_error_")
        )

    def _recently_delivered(self, message: dict, now: datetime) -> bool:
        """Check for a successful delivery of another message with the same dedupe key."""
        dedupe_key = message.get("dedupe_key")
        if not dedupe_key:
            return False
        window_start = now - timedelta(minutes=self.settings.push_dedupe_window_minutes)
        existing = (
            self.db.query(PushDeliveryLog.id)
            .filter(
                PushDeliveryLog.user_id == message["user_id"],
                PushDeliveryLog.dedupe_key == dedupe_key,
                PushDeliveryLog.status == STATUS_SUCCESS,
                PushDeliveryLog.message_id != message["message_id"],
                PushDeliveryLog.created_at >= window_start,
            )
            .first()
        )
        return existing is not None

    def _deliver_to_subscription(
        self, message: dict, payload: dict, subscription: PushSubscription
    ) -> str | None:
        """Send to one subscription unless this message already reached it.

        Returns the delivery status, or None when the attempt was skipped.
        """
        log = (
            self.db.query(PushDeliveryLog)
            .filter(
                PushDeliveryLog.message_id == message["message_id"],
                PushDeliveryLog.subscription_id == subscription.id,
            )
            .first()
        )
        if log is not None and not self._is_retryable(log.status):
            return None

        started = time.monotonic()
        error = None
        try:
            status_code = self.send(subscription, payload, message.get("ttl_seconds") or 0)
            delivery_status, _ = classify_status(status_code)
        except Exception as e:
            logger.error(f"Push failed for subscription {subscription.id}: {e}")
            status_code = 0
            delivery_status = STATUS_NETWORK_ERROR
            error = str(e)[:500]
        duration_ms = int((time.monotonic() - started) * 1000)

        now = datetime.now(UTC)
        if delivery_status == STATUS_SUCCESS:
            subscription.last_success_at = now
            subscription.failure_count = 0
        elif delivery_status == STATUS_GONE:
            logger.info(f"Marking subscription {subscription.id} as gone")
            subscription.status = PushSubscriptionStatus.GONE
            subscription.last_failure_at = now
            error = error or STATUS_GONE
        elif delivery_status.startswith("client_error_") or delivery_status == STATUS_NETWORK_ERROR:
            subscription.failure_count = (subscription.failure_count or 0) + 1
            subscription.last_failure_at = now
            if subscription.failure_count >= self.settings.push_max_failures:
                logger.info(f"Expiring subscription {subscription.id} after repeated failures")
                subscription.status = PushSubscriptionStatus.EXPIRED
            error = error or delivery_status
        else:
            subscription.last_failure_at = now
            error = error or delivery_status

        if log is None:
            log = PushDeliveryLog(
                message_id=message["message_id"],
                subscription_id=subscription.id,
                user_id=message["user_id"],
                type=message["type"],
                dedupe_key=message.get("dedupe_key"),
            )
            self.db.add(log)
        log.status = delivery_status
        log.status_code = status_code
        log.error = None if delivery_status == STATUS_SUCCESS else error
        log.duration_ms = duration_ms
        self.db.commit()
        return delivery_status


# --- Maintenance ---


def cleanup(db: Session) -> dict:
    """Expire stale subscriptions, drop long-gone ones and prune delivery logs."""
    now = datetime.now(UTC)

    stale_cutoff = now - timedelta(days=STALE_SUBSCRIPTION_DAYS)
    expired = (
        db.query(PushSubscription)
        .filter(
            PushSubscription.status == PushSubscriptionStatus.ACTIVE,
            PushSubscription.created_at < stale_cutoff,
            (PushSubscription.last_success_at.is_(None))
            | (PushSubscription.last_success_at < stale_cutoff),
        )
        .update({PushSubscription.status: PushSubscriptionStatus.EXPIRED}, synchronize_session=False)
    )

    gone_deleted = (
        db.query(PushSubscription)
        .filter(
            PushSubscription.status == PushSubscriptionStatus.GONE,
            PushSubscription.updated_at < now - timedelta(days=GONE_SUBSCRIPTION_DAYS),
        )
        .delete(synchronize_session=False)
    )

    logs_deleted = (
        db.query(PushDeliveryLog)
        .filter(PushDeliveryLog.created_at < now - timedelta(days=DELIVERY_LOG_RETENTION_DAYS))
        .delete(synchronize_session=False)
    )
    db.commit()

    stats = {
        "stale_expired": expired,
        "gone_deleted": gone_deleted,
        "logs_deleted": logs_deleted,
    }
    logger.info(f"Push cleanup complete: {stats}")
    return stats
