"""
Cal.com Webhook Routes
Mirrors Cal.com bookings into the appointments table.
Cal.com is the source of truth: its reschedules are applied even when they overlap.
"""

import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from .. import config, email_service
from ..database import get_db
from ..domain.appointments.repository import AppointmentRepository
from ..domain.appointments.schemas import AppointmentCreate
from ..domain.appointments.service import AppointmentService
from ..domain.customers.repository import CustomerRepository
from ..models import Appointment, CalWebhookEvent, Customer
from ..scheduling.windows import to_naive_utc, utcnow
from ..webhook_security import CAL_SIGNATURE_HEADER, verify_cal_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks/cal", tags=["cal-webhooks"])


class CalAttendee(BaseModel):
    email: str
    name: str
    timeZone: Optional[str] = None


class CalOrganizer(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None


class CalEventType(BaseModel):
    id: Optional[int] = None
    title: Optional[str] = None
    slug: Optional[str] = None
    length: Optional[int] = None
    price: Optional[float] = None  # minor units
    currency: Optional[str] = None


class CalPayment(BaseModel):
    id: Optional[int] = None
    success: bool = False
    amount: Optional[float] = None
    currency: Optional[str] = None


class CalBookingPayload(BaseModel):
    uid: str
    title: str
    description: Optional[str] = None
    startTime: str
    endTime: str
    status: Optional[str] = None
    attendees: list[CalAttendee] = []
    organizer: Optional[CalOrganizer] = None
    eventType: Optional[CalEventType] = None
    payment: list[CalPayment] = []
    cancellationReason: Optional[str] = None
    rescheduledFromUid: Optional[str] = None


class CalWebhookPayload(BaseModel):
    triggerEvent: str
    createdAt: Optional[str] = None
    payload: CalBookingPayload


def _parse_time(value: str) -> datetime:
    return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _artist_id(booking: CalBookingPayload) -> str:
    organizer = booking.organizer
    if organizer:
        return organizer.username or organizer.email or str(organizer.id or config.DEFAULT_ARTIST_ID)
    return config.DEFAULT_ARTIST_ID


def _upsert_customer(db: Session, attendee: CalAttendee) -> Customer:
    customer = CustomerRepository.get_by_email(db, attendee.email)
    if customer:
        return customer

    first, _, last = attendee.name.strip().partition(" ")
    customer = CustomerRepository.add_customer(
        db, first_name=first or attendee.name, last_name=last or None, email=attendee.email
    )
    logger.info(f"👤 Customer created from Cal.com booking: {attendee.email}")
    return customer


def _find_booking(db: Session, booking: CalBookingPayload) -> Optional[Appointment]:
    appointment = AppointmentRepository.get_by_cal_uid(db, booking.uid)
    if not appointment and booking.rescheduledFromUid:
        appointment = AppointmentRepository.get_by_cal_uid(db, booking.rescheduledFromUid)
    if not appointment:
        logger.warning(f"⚠️ No appointment found for Cal.com booking {booking.uid}")
    return appointment


def _mirror_status(db: Session, appointment: Appointment, status: str, note: Optional[str] = None) -> None:
    if appointment.status == status:
        return
    if appointment.status in ("cancelled", "completed"):
        logger.warning(
            f"⚠️ Ignoring Cal.com status {status} for {appointment.status} appointment {appointment.id}"
        )
        return

    appointment.status = status
    appointment.updated_at = utcnow()
    if note:
        AppointmentRepository.add_note(db, appointment, note)
    db.commit()
    logger.info(f"✅ Appointment {appointment.id} mirrored from Cal.com: {status}")


def handle_booking_created(db: Session, booking: CalBookingPayload) -> None:
    if AppointmentRepository.get_by_cal_uid(db, booking.uid):
        logger.debug(f"Booking {booking.uid} already mirrored")
        return
    if not booking.attendees:
        raise ValueError(f"Booking {booking.uid} has no attendees")

    customer = _upsert_customer(db, booking.attendees[0])
    price = booking.eventType.price if booking.eventType and booking.eventType.price else 0
    status = "confirmed" if (booking.status or "").upper() in ("ACCEPTED", "CONFIRMED") else "scheduled"

    appointment = AppointmentService(db).create_appointment(
        AppointmentCreate(
            artist_id=_artist_id(booking),
            customer_id=customer.id,
            title=booking.title,
            description=booking.description,
            start_date=_parse_time(booking.startTime),
            end_date=_parse_time(booking.endTime),
            status=status,
            deposit=price / 100,
        ),
        enforce_availability=False,
        cal_booking_uid=booking.uid,
    )

    email_service.queue_new_booking_admin_email(db, appointment)
    db.commit()


def handle_booking_confirmed(db: Session, booking: CalBookingPayload) -> None:
    appointment = _find_booking(db, booking)
    if appointment:
        _mirror_status(db, appointment, "confirmed")


def handle_booking_cancelled(db: Session, booking: CalBookingPayload) -> None:
    appointment = _find_booking(db, booking)
    if appointment:
        reason = booking.cancellationReason
        _mirror_status(db, appointment, "cancelled", f"Cancelled via Cal.com: {reason}" if reason else "Cancelled via Cal.com")


def handle_booking_rejected(db: Session, booking: CalBookingPayload) -> None:
    appointment = _find_booking(db, booking)
    if appointment:
        _mirror_status(db, appointment, "cancelled", "Rejected via Cal.com")


def handle_booking_rescheduled(db: Session, booking: CalBookingPayload) -> None:
    appointment = _find_booking(db, booking)
    if not appointment:
        return

    appointment = AppointmentService(db).reschedule_appointment(
        appointment.id,
        _parse_time(booking.startTime),
        _parse_time(booking.endTime),
        enforce_availability=False,
    )
    if appointment.cal_booking_uid != booking.uid:
        appointment.cal_booking_uid = booking.uid
        db.commit()


def handle_payment_completed(db: Session, booking: CalBookingPayload) -> None:
    appointment = _find_booking(db, booking)
    if not appointment or appointment.deposit_paid:
        return

    payment = booking.payment[0] if booking.payment else None
    appointment.deposit_paid = True
    appointment.updated_at = utcnow()
    if payment and payment.amount:
        AppointmentRepository.add_note(
            db, appointment, f"Deposit paid via Cal.com: {payment.amount / 100:.2f} {payment.currency or 'USD'}"
        )
    db.commit()
    logger.info(f"💰 Deposit marked paid for appointment {appointment.id}")


def handle_meeting_ended(db: Session, booking: CalBookingPayload) -> None:
    appointment = _find_booking(db, booking)
    if appointment:
        _mirror_status(db, appointment, "completed")


EVENT_HANDLERS = {
    "BOOKING_CREATED": handle_booking_created,
    "BOOKING_CONFIRMED": handle_booking_confirmed,
    "BOOKING_CANCELLED": handle_booking_cancelled,
    "BOOKING_REJECTED": handle_booking_rejected,
    "BOOKING_RESCHEDULED": handle_booking_rescheduled,
    "PAYMENT_COMPLETED": handle_payment_completed,
    "MEETING_ENDED": handle_meeting_ended,
}


def _response(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": status < 400, "message": message})


@router.post("")
async def handle_cal_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Handle Cal.com webhook events.

    Processing errors are recorded on the stored event and answered with 200,
    so Cal.com does not retry for internal failures.
    """
    if not config.CAL_WEBHOOK_SECRET:
        logger.warning("⚠️ CAL_WEBHOOK_SECRET not configured - signature verification skipped")
        body = await request.body()
    else:
        is_valid, body = await verify_cal_webhook(request, config.CAL_WEBHOOK_SECRET, raise_on_failure=False)
        if not is_valid:
            return _response(401, "Invalid webhook signature")

    try:
        event = CalWebhookPayload.model_validate(json.loads(body.decode()))
    except (ValueError, PydanticValidationError) as e:
        logger.error(f"❌ Invalid Cal.com webhook payload: {e}")
        return _response(400, "Invalid webhook payload")

    logger.info(f"📥 Cal.com webhook: {event.triggerEvent} for booking {event.payload.uid}")

    record = CalWebhookEvent(
        trigger_event=event.triggerEvent,
        cal_booking_uid=event.payload.uid,
        payload=event.payload.model_dump(),
        signature=request.headers.get(CAL_SIGNATURE_HEADER),
        ip_address=request.headers.get("x-forwarded-for") or (request.client.host if request.client else None),
    )
    db.add(record)
    db.commit()

    handler = EVENT_HANDLERS.get(event.triggerEvent)
    if handler is None:
        logger.debug(f"Unhandled Cal.com event type: {event.triggerEvent}")
        return _response(200, "Event ignored")

    try:
        handler(db, event.payload)
        record.processed = True
        record.processed_at = utcnow()
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error processing Cal.com {event.triggerEvent}: {e}")
        logger.exception("Full webhook error traceback:")
        record.processing_error = str(e)
        record.retry_count = (record.retry_count or 0) + 1
        db.commit()

    return _response(200, "Webhook processed successfully")


@router.get("")
async def cal_webhook_health():
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat() + "Z",
        "webhookEndpoint": "/api/webhooks/cal",
    }
