"""Daily scheduled jobs.

Each job claims its (job_name, date) row in the cron job log before doing any
work, so a job runs at most once per calendar day across workers.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date, timedelta

from sqlalchemy.orm import Session

from src.celery_app import app as celery_app
from src.database import SessionLocal
from src.models import User
from src.services import cron_service, push_service
from src.services.dates import today
from src.services.email_service import EmailService
from src.services.follow_service import FollowService
from src.services.notification_service import NotificationService
from src.services.streak_service import StreakService

logger = logging.getLogger(__name__)

DAILY_STREAK = "daily_streak"
STREAK_REMINDER = "streak_reminder"
NOTIFICATION_CLEANUP = "notification_cleanup"
FOLLOW_TOMBSTONE_CLEANUP = "follow_tombstone_cleanup"
PUSH_CLEANUP = "push_cleanup"


def run_claimed_job(
    db: Session, job_name: str, job_date: date, job: Callable[[Session, date], dict]
) -> dict:
    """Run job once for job_date, recording the outcome in the cron job log.

    Args:
        db: Database session
        job_name: Name the job is claimed under
        job_date: Calendar day the run belongs to
        job: Callable doing the work; returns stats, optionally with "users_count"

    Returns:
        dict with the job status and its stats
    """
    if not cron_service.try_claim_job(db, job_name, job_date):
        return {"status": "skipped"}

    try:
        stats = job(db, job_date)
    except Exception as e:
        logger.error(f"Job {job_name} for {job_date} failed: {e}", exc_info=True)
        db.rollback()
        cron_service.fail_job(db, job_name, job_date, str(e))
        return {"status": "failed", "error": str(e)}

    cron_service.complete_job(db, job_name, job_date, stats.get("users_count", 0))
    return {"status": "completed", **stats}


def seed_daily_streaks(db: Session, job_date: date) -> dict:
    """Open a streak row for every user for the new day."""
    streaks = StreakService(db)
    seeded = 0
    user_ids = [user_id for (user_id,) in db.query(User.id).order_by(User.id).all()]
    for user_id in user_ids:
        if streaks.add_streak(user_id, job_date, is_cron=True) is not None:
            seeded += 1
    return {"users_count": len(user_ids), "seeded": seeded}


def send_streak_reminders(db: Session, job_date: date) -> dict:
    """Remind users who logged nothing yesterday, by email and notification."""
    missed_date = job_date - timedelta(days=1)
    users = StreakService(db).find_users_missed(missed_date)

    email_service = EmailService()
    notifications = NotificationService(db)
    emails_sent = 0
    for user in users:
        if asyncio.run(email_service.send_streak_reminder(user.email, user.username)):
            emails_sent += 1
        notifications.notify_streak_reminder(user.id, missed_date)

    return {"users_count": len(users), "emails_sent": emails_sent}


def cleanup_notifications(db: Session, job_date: date) -> dict:
    return {"deleted": NotificationService(db).cleanup_old()}


def cleanup_follow_tombstones(db: Session, job_date: date) -> dict:
    return {"deleted": FollowService(db).cleanup_tombstones()}


def cleanup_push(db: Session, job_date: date) -> dict:
    return push_service.cleanup(db)


def _run(job_name: str, job: Callable[[Session, date], dict]) -> dict:
    db: Session = SessionLocal()
    try:
        return run_claimed_job(db, job_name, today(), job)
    finally:
        db.close()


@celery_app.task
def run_daily_streak() -> dict:
    """Seed today's streak rows. Runs at midnight in the app timezone."""
    return _run(DAILY_STREAK, seed_daily_streaks)


@celery_app.task
def run_streak_reminder() -> dict:
    """Send reminders for yesterday's missed streaks."""
    return _run(STREAK_REMINDER, send_streak_reminders)


@celery_app.task
def run_notification_cleanup() -> dict:
    return _run(NOTIFICATION_CLEANUP, cleanup_notifications)


@celery_app.task
def run_follow_tombstone_cleanup() -> dict:
    return _run(FOLLOW_TOMBSTONE_CLEANUP, cleanup_follow_tombstones)


@celery_app.task
def run_push_cleanup() -> dict:
    return _run(PUSH_CLEANUP, cleanup_push)
