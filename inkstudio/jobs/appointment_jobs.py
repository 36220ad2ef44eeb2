"""
Time-windowed batch jobs
Each job loads its candidate set in one query, then acts on every record
independently. A failed window query aborts the job; a failed record does not.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from .. import config, email_service
from ..errors import PerRecordError, StorageError
from ..models import Appointment, EmailQueueEntry, Note, Notification
from ..scheduling.windows import retention_cutoff, tomorrow_window, upcoming_window
from .fanout import settle_all, summarize

logger = logging.getLogger(__name__)

DEPOSIT_REMINDER_WINDOW = timedelta(days=7)
DEPOSIT_REMINDER_INTERVAL = timedelta(hours=24)
AUTO_CANCEL_WINDOW = timedelta(hours=48)

AUTO_CANCEL_NOTE = "Appointment auto-cancelled due to unpaid deposit within 48 hours of scheduled time."


def _load(query, job: str) -> list:
    try:
        return query.all()
    except SQLAlchemyError as e:
        logger.error(f"❌ {job}: candidate query failed: {e}")
        raise StorageError(f"{job}: failed to load candidates: {e}") from e


def _commit(db: Session, job: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ {job}: failed to persist results: {e}")
        raise StorageError(f"{job}: failed to persist results: {e}") from e


def _unpaid_deposit_query(db: Session, window_start: datetime, window_end: datetime):
    return (
        db.query(Appointment)
        .options(joinedload(Appointment.customer))
        .filter(
            Appointment.start_date >= window_start,
            Appointment.start_date <= window_end,
            Appointment.status == "scheduled",
            Appointment.deposit_paid.is_(False),
            Appointment.deposit > 0,
        )
    )


async def appointment_reminders(db: Session, now: datetime) -> dict:
    """Remind customers of confirmed appointments starting tomorrow"""
    window = tomorrow_window(now)
    appointments = _load(
        db.query(Appointment)
        .options(joinedload(Appointment.customer))
        .filter(
            Appointment.start_date >= window.start,
            Appointment.start_date <= window.end,
            Appointment.status == "confirmed",
            Appointment.reminder_sent_at.is_(None),
        )
        .order_by(Appointment.start_date.asc()),
        "appointment_reminders",
    )
    logger.info(f"📅 {len(appointments)} confirmed appointments tomorrow ({window.start.date()})")

    outcomes = await settle_all(appointments, lambda appt: email_service.send_appointment_reminder(appt))

    by_id = {appt.id: appt for appt in appointments}
    details = []
    for outcome in outcomes:
        appointment = by_id[outcome.record_id]
        if outcome.success:
            appointment.reminder_sent_at = now
        details.append(
            {
                "appointmentId": outcome.record_id,
                "recipient": appointment.customer.email if appointment.customer else None,
                "success": outcome.success,
                "error": outcome.error,
            }
        )
    _commit(db, "appointment_reminders")

    summary = summarize(outcomes)
    summary["details"] = details
    return summary


async def deposit_reminders(db: Session, now: datetime) -> dict:
    """Chase unpaid deposits for appointments in the next 7 days, at most once a day"""
    window = upcoming_window(now, DEPOSIT_REMINDER_WINDOW)
    last_allowed = now - DEPOSIT_REMINDER_INTERVAL
    appointments = _load(
        _unpaid_deposit_query(db, window.start, window.end)
        .filter(
            (Appointment.deposit_reminder_sent_at.is_(None))
            | (Appointment.deposit_reminder_sent_at <= last_allowed)
        )
        .order_by(Appointment.start_date.asc()),
        "deposit_reminders",
    )
    logger.info(f"💳 {len(appointments)} appointments awaiting deposit in the next 7 days")

    outcomes = await settle_all(appointments, lambda appt: email_service.send_deposit_reminder(appt))

    by_id = {appt.id: appt for appt in appointments}
    for outcome in outcomes:
        if outcome.success:
            by_id[outcome.record_id].deposit_reminder_sent_at = now
    _commit(db, "deposit_reminders")

    return summarize(outcomes)


def _cancel_for_unpaid_deposit(db: Session, appointment: Appointment, now: datetime) -> None:
    appointment.status = "cancelled"
    appointment.updated_at = now
    db.add(
        Note(
            content=AUTO_CANCEL_NOTE,
            type="system",
            customer_id=appointment.customer_id,
            appointment_id=appointment.id,
        )
    )
    db.add(
        Notification(
            recipient_id=appointment.customer_id,
            recipient_type="customer",
            title="Appointment Cancelled",
            message=(
                f"Your appointment on {appointment.start_date.strftime('%m/%d/%Y')} "
                "has been cancelled due to unpaid deposit."
            ),
            action_url=f"/appointments/{appointment.id}",
            notification_type="cancellation",
        )
    )
    email_service.queue_cancellation_email(db, appointment)
    db.flush()


async def auto_cancel_unpaid_deposits(db: Session, now: datetime) -> dict:
    """Release appointments starting within 48 hours whose deposit is still unpaid"""
    window = upcoming_window(now, AUTO_CANCEL_WINDOW)
    appointments = _load(
        _unpaid_deposit_query(db, window.start, window.end).order_by(Appointment.start_date.asc()),
        "auto_cancel_unpaid_deposits",
    )

    cancelled = 0
    failed = 0
    for appointment in appointments:
        # One savepoint per record: a bad row rolls back only itself
        try:
            with db.begin_nested():
                _cancel_for_unpaid_deposit(db, appointment, now)
            cancelled += 1
            logger.info(f"🚫 Appointment {appointment.id} auto-cancelled (unpaid deposit)")
        except Exception as e:
            failed += 1
            logger.error(f"❌ Record {PerRecordError(appointment.id, str(e))}")
    _commit(db, "auto_cancel_unpaid_deposits")

    return {
        "totalProcessed": len(appointments),
        "totalCancelled": cancelled,
        "successful": cancelled,
        "failed": failed,
    }


async def process_email_queue(db: Session, now: datetime) -> dict:
    """Drain pending queued emails, oldest first"""
    entries = _load(
        db.query(EmailQueueEntry)
        .filter(
            EmailQueueEntry.status == "pending",
            EmailQueueEntry.attempts < config.EMAIL_QUEUE_MAX_ATTEMPTS,
        )
        .order_by(EmailQueueEntry.created_at.asc(), EmailQueueEntry.id.asc())
        .limit(config.EMAIL_QUEUE_BATCH_SIZE),
        "process_email_queue",
    )

    outcomes = await settle_all(
        entries,
        lambda entry: email_service.send_html_email(entry.to_email, entry.subject, entry.html_content),
    )

    by_id = {str(entry.id): entry for entry in entries}
    for outcome in outcomes:
        entry = by_id[outcome.record_id]
        entry.attempts += 1
        if outcome.success:
            entry.status = "sent"
            entry.sent_at = now
            entry.last_error = None
        else:
            entry.last_error = outcome.error
            if entry.attempts >= config.EMAIL_QUEUE_MAX_ATTEMPTS:
                entry.status = "failed"
                logger.warning(f"⚠️ Queued email {entry.id} gave up after {entry.attempts} attempts")
    _commit(db, "process_email_queue")

    return summarize(outcomes)


async def cleanup(db: Session, now: datetime) -> dict:
    """Delete read notifications past the retention period"""
    cutoff = retention_cutoff(now, config.NOTIFICATION_RETENTION_DAYS)
    try:
        deleted = (
            db.query(Notification)
            .filter(Notification.is_read.is_(True), Notification.created_at < cutoff)
            .delete(synchronize_session=False)
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ cleanup: delete failed: {e}")
        raise StorageError(f"cleanup: failed to delete notifications: {e}") from e
    _commit(db, "cleanup")

    logger.info(f"🧹 Deleted {deleted} read notifications older than {cutoff.date()}")
    return {"deletedNotifications": deleted}
