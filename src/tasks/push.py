"""Celery tasks for web push delivery."""

import logging

from sqlalchemy.orm import Session

from src.celery_app import app as celery_app
from src.config import get_settings
from src.database import SessionLocal
from src.services.push_service import PushDeliveryService

logger = logging.getLogger(__name__)
settings = get_settings()


@celery_app.task(bind=True, max_retries=settings.push_max_deliveries - 1)
def deliver_push(self, message: dict) -> dict:
    """Deliver a push message to every active device of its user.

    Retries with exponential backoff while any device answered 429, 5xx or
    could not be reached, and during the user's quiet hours.

    Args:
        message: Message built by src.services.push_service.build_push_message

    Returns:
        dict with the delivery status
    """
    db: Session = SessionLocal()

    try:
        result = PushDeliveryService(db).deliver(message, attempt=self.request.retries)
    except Exception as e:
        logger.error(f"Error delivering push {message.get('message_id')}: {e}", exc_info=True)
        db.rollback()
        result = {"status": "error", "error": str(e), "retry": True}
    finally:
        db.close()

    if result.pop("retry", False):
        if self.request.retries < self.max_retries:
            countdown = result.pop("countdown", None) or min(60 * 2**self.request.retries, 3600)
            raise self.retry(countdown=countdown)
        logger.warning(f"Giving up on push {message.get('message_id')} after retries")

    return result
