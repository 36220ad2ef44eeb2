"""
HMAC checks for the Cal.com webhook receiver and shared-secret headers.

The verifier reads the raw body once and hands it back, so the route can
parse exactly the bytes that were signed. Stripe deliveries are verified
with the stripe SDK in routes/stripe_webhooks.py.
"""

import hashlib
import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

CAL_SIGNATURE_HEADER = "X-Cal-Signature-256"


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """Timing-safe string equality; blank values never match."""
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def _cal_rejection(header: str, secret: str, body: bytes) -> Optional[str]:
    if not header:
        return "Missing webhook signature"
    if not constant_time_compare(compute_hmac_sha256(secret, body), header.removeprefix("sha256=")):
        return "Invalid webhook signature"
    return None


async def verify_cal_webhook(request: Request, secret: str, raise_on_failure: bool = True) -> tuple[bool, bytes]:
    """
    Cal.com signs the raw body with HMAC-SHA256 and sends the hex digest in
    X-Cal-Signature-256, with or without a "sha256=" prefix.

    Returns (is_valid, raw_body); raises 401 instead when raise_on_failure is set.
    """
    body = await request.body()
    rejection = _cal_rejection(request.headers.get(CAL_SIGNATURE_HEADER, ""), secret, body)

    if rejection:
        logger.warning(f"🚫 Cal.com webhook rejected: {rejection}")
        if raise_on_failure:
            raise HTTPException(status_code=401, detail=rejection)
        return False, body

    logger.debug("✅ Cal.com webhook signature verified")
    return True, body


def create_webhook_signature(secret: str, payload: bytes, provider: str = "generic") -> str:
    """Header value a provider would send for payload ('generic' or 'cal')."""
    digest = compute_hmac_sha256(secret, payload)
    return f"sha256={digest}" if provider == "cal" else digest
