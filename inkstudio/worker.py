"""
ARQ Background Worker
Runs the studio batch jobs on a schedule through the same dispatcher as /api/cron
"""

import logging
import os

from arq.connections import RedisSettings
from arq.cron import cron

from . import models  # noqa: F401 - registers tables with Base
from .database import SessionLocal
from .jobs import run_job

logger = logging.getLogger(__name__)


REDIS_CONNECT_TIMEOUT = 15
REDIS_RETRY_DELAY = 1


def get_redis_settings() -> RedisSettings:
    """REDIS_URL wins when set (rediss:// enables TLS); otherwise the REDIS_* pieces"""
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        settings = RedisSettings.from_dsn(redis_url)
    else:
        settings = RedisSettings(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            password=os.getenv("REDIS_PASSWORD"),
            ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
        )
    settings.conn_timeout = REDIS_CONNECT_TIMEOUT
    settings.conn_retry_delay = REDIS_RETRY_DELAY
    return settings


async def run_cron_job_task(ctx, job_type: str) -> dict:
    """
    Run one batch job with its own database session

    Args:
        ctx: ARQ context
        job_type: Name registered in the job table

    Returns:
        dict: The job summary
    """
    logger.info(f"🚀 ARQ Worker: starting {job_type} (job {ctx.get('job_id', 'unknown')})")
    db = SessionLocal()
    try:
        return await run_job(db, job_type)
    except Exception as e:
        logger.error(f"❌ ARQ Worker: {job_type} failed: {e}")
        raise
    finally:
        db.close()


async def appointment_reminders_task(ctx):
    return await run_cron_job_task(ctx, "appointment_reminders")


async def deposit_reminders_task(ctx):
    return await run_cron_job_task(ctx, "deposit_reminders")


async def auto_cancel_unpaid_deposits_task(ctx):
    return await run_cron_job_task(ctx, "auto_cancel_unpaid_deposits")


async def process_email_queue_task(ctx):
    return await run_cron_job_task(ctx, "process_email_queue")


async def cleanup_task(ctx):
    return await run_cron_job_task(ctx, "cleanup")


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [run_cron_job_task]
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "10"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "600"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))

    health_check_interval = 60

    # All times UTC
    cron_jobs = [
        cron(appointment_reminders_task, hour=9, minute=0),
        cron(deposit_reminders_task, hour=10, minute=0),
        cron(auto_cancel_unpaid_deposits_task, minute=0),
        cron(process_email_queue_task, minute=set(range(0, 60, 5))),
        cron(cleanup_task, weekday=6, hour=3, minute=0),
    ]

    logger.info(f"🔧 ARQ Worker configured: max_jobs={max_jobs}, timeout={job_timeout}s")
