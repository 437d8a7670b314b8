"""Celery tasks for account emails."""

import asyncio
import logging

from src.celery_app import app as celery_app
from src.services.email_service import EmailService

logger = logging.getLogger(__name__)

VERIFY_EMAIL = "verify_email"
PASSWORD_RESET = "password_reset"


@celery_app.task(bind=True, max_retries=3)
def send_account_email(self, kind: str, email: str, username: str, token: str) -> dict:
    """Send a verification or password reset email with its one-time link.

    Args:
        kind: VERIFY_EMAIL or PASSWORD_RESET
        email: Recipient address
        username: Used in the greeting
        token: Raw token to embed in the link

    Returns:
        dict with whether the email was sent
    """
    email_service = EmailService()
    senders = {
        VERIFY_EMAIL: email_service.send_verification,
        PASSWORD_RESET: email_service.send_password_reset,
    }
    sender = senders.get(kind)
    if sender is None:
        logger.error(f"Unknown account email kind: {kind}")
        return {"sent": False, "error": "unknown kind"}

    sent = asyncio.run(sender(email, username, token))
    if not sent and email_service.is_configured and self.request.retries < self.max_retries:
        raise self.retry(countdown=60 * 2**self.request.retries)

    return {"sent": sent}
