"""
Batch job dispatcher
Single entry point used by the cron endpoint and the arq worker
"""

import logging
import time
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..job_lock import JobLock
from ..scheduling.windows import utcnow
from .appointment_jobs import (
    appointment_reminders,
    auto_cancel_unpaid_deposits,
    cleanup,
    deposit_reminders,
    process_email_queue,
)

logger = logging.getLogger(__name__)

JOBS = {
    "appointment_reminders": appointment_reminders,
    "deposit_reminders": deposit_reminders,
    "auto_cancel_unpaid_deposits": auto_cancel_unpaid_deposits,
    "process_email_queue": process_email_queue,
    "cleanup": cleanup,
}


def validate_job_type(job_type: Optional[str]) -> str:
    if not job_type:
        raise ValidationError("Job type is required")
    if not isinstance(job_type, str) or job_type not in JOBS:
        raise ValidationError("Invalid job type")
    return job_type


async def run_job(
    db: Session,
    job_type: str,
    now: Optional[datetime] = None,
    lock: Optional[JobLock] = None,
) -> dict:
    """
    Run one named job against ``now`` (defaults to the current UTC time)

    Returns:
        dict: Job summary; ``{"skipped": True}`` when another run holds the lock

    Raises:
        ValidationError: Missing or unknown job type
        StorageError: The job's candidate query or final commit failed
    """
    validate_job_type(job_type)
    now = now or utcnow()
    lock = lock or JobLock()

    with lock.hold(job_type) as acquired:
        if not acquired:
            return {"skipped": True, "reason": "Job already running"}

        logger.info(f"🚀 Running job {job_type} at {now.isoformat()}")
        started = time.monotonic()
        summary = await JOBS[job_type](db, now)
        elapsed = time.monotonic() - started
        counts = {k: v for k, v in summary.items() if k != "details"}
        logger.info(f"📊 Job {job_type} finished in {elapsed:.2f}s: {counts}")
        return summary
