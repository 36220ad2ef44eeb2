"""
Stripe Webhook Routes
Tracks deposit payments against appointments.
"""

import json
import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..domain.appointments.repository import AppointmentRepository
from ..models import Notification
from ..scheduling.windows import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks/stripe", tags=["stripe-webhooks"])

STRIPE_SIGNATURE_HEADER = "Stripe-Signature"


def _appointment_id(payment_intent: dict):
    metadata = payment_intent.get("metadata") or {}
    return metadata.get("appointment_id") or metadata.get("appointmentId")


def handle_payment_succeeded(db: Session, payment_intent: dict) -> None:
    appointment_id = _appointment_id(payment_intent)
    if not appointment_id:
        logger.warning(f"⚠️ PaymentIntent {payment_intent.get('id')} has no appointment_id metadata")
        return

    appointment = AppointmentRepository.get_appointment(db, appointment_id)
    if not appointment:
        logger.warning(f"⚠️ Appointment {appointment_id} not found for PaymentIntent {payment_intent.get('id')}")
        return
    if appointment.deposit_paid and appointment.stripe_payment_intent_id == payment_intent.get("id"):
        return

    amount = (payment_intent.get("amount_received") or payment_intent.get("amount") or 0) / 100
    appointment.deposit_paid = True
    appointment.stripe_payment_intent_id = payment_intent.get("id")
    appointment.updated_at = utcnow()
    AppointmentRepository.add_note(db, appointment, f"Deposit of ${amount:.2f} received via Stripe")
    db.commit()
    logger.info(f"💰 Deposit paid for appointment {appointment.id}")


def handle_payment_failed(db: Session, payment_intent: dict) -> None:
    appointment_id = _appointment_id(payment_intent)
    error = (payment_intent.get("last_payment_error") or {}).get("message", "Unknown error")
    logger.warning(f"⚠️ Payment failed for appointment {appointment_id}: {error}")

    db.add(
        Notification(
            recipient_id="admin",
            recipient_type="admin",
            title="Deposit payment failed",
            message=f"Deposit payment for appointment {appointment_id or 'unknown'} failed: {error}",
            action_url=f"{config.FRONTEND_URL}/admin/appointments/{appointment_id}" if appointment_id else None,
            notification_type="payment_failed",
        )
    )
    db.commit()


def handle_charge_refunded(db: Session, charge: dict) -> None:
    payment_intent_id = charge.get("payment_intent")
    if not payment_intent_id:
        return

    appointment = AppointmentRepository.get_by_payment_intent(db, payment_intent_id)
    if not appointment:
        logger.warning(f"⚠️ No appointment linked to refunded PaymentIntent {payment_intent_id}")
        return

    refunded = (charge.get("amount_refunded") or 0) / 100
    appointment.deposit_paid = False
    appointment.updated_at = utcnow()
    AppointmentRepository.add_note(db, appointment, f"Deposit of ${refunded:.2f} refunded via Stripe")
    db.commit()
    logger.info(f"↩️ Deposit refunded for appointment {appointment.id}")


EVENT_HANDLERS = {
    "payment_intent.succeeded": handle_payment_succeeded,
    "payment_intent.payment_failed": handle_payment_failed,
    "charge.refunded": handle_charge_refunded,
}


@router.post("")
async def handle_stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """Handle Stripe webhook events; unknown event types are acknowledged"""
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook not configured")

    body = await request.body()
    signature = request.headers.get(STRIPE_SIGNATURE_HEADER)
    if not signature:
        logger.warning("🚫 Stripe webhook missing signature header")
        raise HTTPException(status_code=401, detail="Missing webhook signature")

    try:
        stripe.Webhook.construct_event(body, signature, config.STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"🚫 Stripe webhook signature rejected: {e}")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    # Handlers work on the plain JSON dicts
    try:
        event = json.loads(body.decode())
        event_type = event["type"]
        data_object = event["data"]["object"]
    except (ValueError, KeyError, TypeError):
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    logger.info(f"📥 Stripe webhook: {event_type} ({event.get('id')})")

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.debug(f"Unhandled Stripe event type: {event_type}")
        return {"received": True}

    try:
        handler(db, data_object)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error processing Stripe {event_type}: {e}")
        logger.exception("Full webhook error traceback:")
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    return {"received": True}
