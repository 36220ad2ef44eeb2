"""Appointment service - Business logic for appointment operations"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...cache import cached, invalidate_appointment_cache
from ...errors import (
    AppointmentConflictError,
    AppointmentNotFoundError,
    CustomerNotFoundError,
    StorageError,
    ValidationError,
)
from ...models import APPOINTMENT_STATUSES, Appointment
from ...scheduling.availability import check_availability, find_conflicts
from ...scheduling.windows import to_naive_utc, utcnow, validate_interval
from ..customers.repository import CustomerRepository
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate

logger = logging.getLogger(__name__)

# Manual transitions; 'cancelled' and 'completed' are terminal
VALID_TRANSITIONS = {
    "scheduled": ["confirmed", "cancelled", "completed"],
    "confirmed": ["cancelled", "completed"],
    "cancelled": [],
    "completed": [],
}

RESCHEDULABLE_STATUSES = ("scheduled", "confirmed")

# Nullable columns an admin may reset to null on update
CLEARABLE_FIELDS = ("description", "total_price")


def validate_status_transition(current_status: str, new_status: str) -> bool:
    """Same-status transitions are allowed as no-ops"""
    if current_status == new_status:
        return True
    return new_status in VALID_TRANSITIONS.get(current_status, [])


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    def list_appointments(
        self,
        status: Optional[str] = None,
        artist_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Appointment], int]:
        if status and status != "all" and status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Unknown status: {status}")
        return self.repo.list_appointments(
            self.db,
            status=status,
            artist_id=artist_id,
            customer_id=customer_id,
            start_date=to_naive_utc(start_date) if start_date else None,
            end_date=to_naive_utc(end_date) if end_date else None,
            page=page,
            limit=limit,
        )

    def availability(
        self,
        artist_id: str,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> tuple[bool, list[Appointment]]:
        start, end = to_naive_utc(start), to_naive_utc(end)
        if check_availability(self.db, artist_id, start, end, exclude_appointment_id):
            return True, []
        return False, find_conflicts(self.db, artist_id, start, end, exclude_appointment_id)

    def _ensure_free(
        self,
        artist_id: str,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[str] = None,
        enforce: bool = True,
    ) -> None:
        """Lock the artist's calendar for this transaction, then check for overlaps"""
        self.repo.lock_artist_schedule(self.db, artist_id)
        conflicts = find_conflicts(self.db, artist_id, start, end, exclude_appointment_id)
        if not conflicts:
            return

        conflicting_ids = [c.id for c in conflicts]
        if enforce:
            raise AppointmentConflictError(artist_id, conflicting_ids)
        logger.warning(
            f"⚠️ Artist {artist_id} double-booked [{start.isoformat()}, {end.isoformat()}) "
            f"against {conflicting_ids} - keeping external scheduler's decision"
        )

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to commit appointment change: {e}")
            raise StorageError(f"Failed to save appointment: {e}") from e
        invalidate_appointment_cache()

    def create_appointment(self, data: AppointmentCreate, enforce_availability: bool = True, **extra) -> Appointment:
        """Check and insert inside one transaction"""
        start, end = to_naive_utc(data.start_date), to_naive_utc(data.end_date)
        validate_interval(start, end)

        if not CustomerRepository.get_customer(self.db, data.customer_id):
            raise CustomerNotFoundError(f"Customer {data.customer_id} not found")

        try:
            self._ensure_free(data.artist_id, start, end, enforce=enforce_availability)
            appointment = self.repo.add_appointment(
                self.db,
                artist_id=data.artist_id,
                customer_id=data.customer_id,
                title=data.title,
                description=data.description,
                start_date=start,
                end_date=end,
                status=data.status,
                deposit=data.deposit,
                total_price=data.total_price,
                **extra,
            )
        except Exception:
            self.db.rollback()
            raise
        self._commit()

        logger.info(f"✅ Appointment {appointment.id} created for artist {data.artist_id} at {start.isoformat()}")
        return appointment

    def reschedule_appointment(
        self,
        appointment_id: str,
        new_start: datetime,
        new_end: datetime,
        enforce_availability: bool = True,
    ) -> Appointment:
        """Move an appointment; the check excludes the appointment itself"""
        new_start, new_end = to_naive_utc(new_start), to_naive_utc(new_end)
        validate_interval(new_start, new_end)

        appointment = self.get_appointment(appointment_id)
        if appointment.status not in RESCHEDULABLE_STATUSES:
            raise ValidationError(f"Cannot reschedule a {appointment.status} appointment")

        try:
            self._ensure_free(
                appointment.artist_id,
                new_start,
                new_end,
                exclude_appointment_id=appointment.id,
                enforce=enforce_availability,
            )
            old_start = appointment.start_date
            appointment.start_date = new_start
            appointment.end_date = new_end
            appointment.updated_at = utcnow()
            # New date needs its own reminder
            appointment.reminder_sent_at = None
            self.repo.add_note(
                self.db,
                appointment,
                f"Rescheduled from {old_start.isoformat()} to {new_start.isoformat()}",
            )
        except Exception:
            self.db.rollback()
            raise
        self._commit()

        logger.info(f"🔁 Appointment {appointment.id} rescheduled to {new_start.isoformat()}")
        return appointment

    def update_appointment(self, appointment_id: str, data: AppointmentUpdate) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if value is None and key not in CLEARABLE_FIELDS:
                raise ValidationError(f"{key} cannot be cleared")
        for key, value in changes.items():
            setattr(appointment, key, value)
        appointment.updated_at = utcnow()
        self._commit()
        return appointment

    def change_status(self, appointment_id: str, new_status: str, note: Optional[str] = None) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if not validate_status_transition(appointment.status, new_status):
            raise ValidationError(f"Cannot change status from {appointment.status} to {new_status}")
        if appointment.status == new_status:
            return appointment

        previous = appointment.status
        appointment.status = new_status
        appointment.updated_at = utcnow()
        if note:
            self.repo.add_note(self.db, appointment, note)
        self._commit()

        logger.info(f"✅ Appointment {appointment.id} transitioned: {previous} → {new_status}")
        return appointment

    def confirm_appointment(self, appointment_id: str) -> Appointment:
        return self.change_status(appointment_id, "confirmed")

    def cancel_appointment(self, appointment_id: str, reason: Optional[str] = None) -> Appointment:
        return self.change_status(
            appointment_id,
            "cancelled",
            note=f"Cancelled: {reason}" if reason else "Cancelled",
        )

    def complete_appointment(self, appointment_id: str) -> Appointment:
        return self.change_status(appointment_id, "completed")

    @cached("appointments:stats", ttl=60)
    def get_status_summary(self) -> dict:
        counts = self.repo.count_by_status(self.db)
        summary = {status: counts.get(status, 0) for status in APPOINTMENT_STATUSES}
        summary["total"] = sum(summary.values())
        return summary
