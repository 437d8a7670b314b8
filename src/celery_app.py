"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from src.config import get_settings

settings = get_settings()

app = Celery(
    "growth_tracker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["src.tasks.push", "src.tasks.daily", "src.tasks.emails"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.app_timezone,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=240,  # 4 minutes soft limit
)

# Daily jobs run on the app calendar; each one claims its (job_name, date) row first
app.conf.beat_schedule = {
    "daily-streak": {
        "task": "src.tasks.daily.run_daily_streak",
        "schedule": crontab(hour=0, minute=0),
    },
    "streak-reminder": {
        "task": "src.tasks.daily.run_streak_reminder",
        "schedule": crontab(hour=9, minute=0),
    },
    "notification-cleanup": {
        "task": "src.tasks.daily.run_notification_cleanup",
        "schedule": crontab(hour=3, minute=0),
    },
    "follow-tombstone-cleanup": {
        "task": "src.tasks.daily.run_follow_tombstone_cleanup",
        "schedule": crontab(hour=3, minute=30),
    },
    "push-cleanup": {
        "task": "src.tasks.daily.run_push_cleanup",
        "schedule": crontab(hour=4, minute=0),
    },
}
