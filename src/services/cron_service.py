"""Claiming and recording scheduled job runs.

The (job_name, job_date) unique constraint on CronJobLog lets only one worker
run a job per day, however many beat or worker replicas are up.
"""

import logging
import os
import socket
from datetime import UTC, date, datetime

from sqlalchemy.orm import Session

from src.database import insert_ignore
from src.models import CronJobLog
from src.models.enums import CronJobStatus

logger = logging.getLogger(__name__)


def instance_id() -> str:
    """Identify this worker process in the job log."""
    return f"{socket.gethostname()}-{os.getpid()}"


def try_claim_job(db: Session, job_name: str, job_date: date) -> bool:
    """Insert a running row for the job. Returns True if this instance claimed it."""
    claimed = insert_ignore(
        db,
        CronJobLog,
        {
            "job_name": job_name,
            "job_date": job_date,
            "status": CronJobStatus.RUNNING,
            "instance_id": instance_id(),
            "users_count": 0,
            "started_at": datetime.now(UTC),
        },
        index_elements=["job_name", "job_date"],
    )
    db.commit()

    if claimed:
        logger.info(f"Claimed job {job_name} for {job_date}")
    else:
        logger.info(f"Job {job_name} for {job_date} already claimed, skipping")
    return claimed


def _get_log(db: Session, job_name: str, job_date: date) -> CronJobLog | None:
    return (
        db.query(CronJobLog)
        .filter(CronJobLog.job_name == job_name, CronJobLog.job_date == job_date)
        .first()
    )


def complete_job(db: Session, job_name: str, job_date: date, users_count: int = 0) -> None:
    log = _get_log(db, job_name, job_date)
    if log is None:
        return
    log.status = CronJobStatus.COMPLETED
    log.users_count = users_count
    log.completed_at = datetime.now(UTC)
    db.commit()
    logger.info(f"Job {job_name} for {job_date} completed ({users_count} users)")


def fail_job(db: Session, job_name: str, job_date: date, error: str) -> None:
    log = _get_log(db, job_name, job_date)
    if log is None:
        return
    log.status = CronJobStatus.FAILED
    log.error = error[:2000]
    log.completed_at = datetime.now(UTC)
    db.commit()
