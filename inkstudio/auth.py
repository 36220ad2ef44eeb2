import logging
from typing import Optional

from fastapi import Header, HTTPException

from . import config
from .webhook_security import constant_time_compare

logger = logging.getLogger(__name__)


async def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    """
    FastAPI dependency guarding the admin appointment API.
    The key is compared against ADMIN_API_KEY; an unset key locks the API.
    """
    if not config.ADMIN_API_KEY:
        logger.error("❌ ADMIN_API_KEY not configured - admin API disabled")
        raise HTTPException(status_code=403, detail="Unauthorized")

    if not constant_time_compare(x_admin_key, config.ADMIN_API_KEY):
        logger.warning("🚫 Admin request with invalid API key")
        raise HTTPException(status_code=403, detail="Unauthorized")
