"""Scheduled job audit log."""

from sqlalchemy import Column, Date, DateTime, Enum, Integer, String, Text, UniqueConstraint

from src.database import Base
from src.models.enums import CronJobStatus


class CronJobLog(Base):
    """One row per (job_name, job_date).

    The unique constraint is the lock: the first worker to insert the row owns
    the run for that date.
    """

    __tablename__ = "cron_job_logs"
    __table_args__ = (UniqueConstraint("job_name", "job_date", name="uq_cron_job_name_date"),)

    id = Column(Integer, primary_key=True, index=True)
    job_name = Column(String(100), nullable=False)
    job_date = Column(Date, nullable=False)
    status = Column(
        Enum(
            CronJobStatus,
            name="cronjobstatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    instance_id = Column(String(100), nullable=True)
    users_count = Column(Integer, nullable=False, default=0)
    error = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
