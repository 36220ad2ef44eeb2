"""
Cron dispatcher endpoint
Called by an external scheduler (e.g. Vercel Cron, GitHub Actions) with a shared secret
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..errors import AuthorizationError, StorageError, ValidationError
from ..jobs import run_job
from ..scheduling.windows import utcnow
from ..webhook_security import constant_time_compare

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])

CRON_SECRET_HEADER = "x-cron-secret"


def verify_cron_secret(request: Request) -> None:
    """Raise AuthorizationError unless the header matches CRON_SECRET"""
    provided = request.headers.get(CRON_SECRET_HEADER)
    if not config.CRON_SECRET:
        logger.error("❌ CRON_SECRET not configured - rejecting cron request")
        raise AuthorizationError("Cron secret not configured")
    if not constant_time_compare(provided, config.CRON_SECRET):
        logger.warning(f"🚫 Cron request with invalid secret from {request.client.host if request.client else 'unknown'}")
        raise AuthorizationError("Invalid cron secret")


def _unauthorized() -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "Unauthorized"})


@router.post("")
async def dispatch_cron_job(request: Request, db: Session = Depends(get_db)):
    """
    Run one batch job.

    Body: {"jobType": "appointment_reminders" | "deposit_reminders" |
           "auto_cancel_unpaid_deposits" | "process_email_queue" | "cleanup"}
    """
    try:
        verify_cron_secret(request)
    except AuthorizationError:
        return _unauthorized()

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})

    job_type = body.get("jobType") if isinstance(body, dict) else None

    try:
        summary = await run_job(db, job_type)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except StorageError as e:
        logger.error(f"❌ Cron job {job_type} failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process cron job", "details": str(e)},
        )
    except Exception as e:
        logger.exception(f"❌ Unexpected error processing cron job {job_type}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process cron job", "details": str(e)},
        )

    return {"success": True, "job": job_type, **summary}


@router.get("")
async def cron_health(request: Request):
    """Liveness check for the cron caller"""
    try:
        verify_cron_secret(request)
    except AuthorizationError:
        return _unauthorized()

    return {"status": "healthy", "timestamp": utcnow().isoformat() + "Z"}
