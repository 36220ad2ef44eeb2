"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, text
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Note
from ...scheduling.availability import BLOCKING_STATUSES


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointment(db: Session, appointment_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.customer))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_by_cal_uid(db: Session, cal_booking_uid: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.cal_booking_uid == cal_booking_uid).first()

    @staticmethod
    def get_by_payment_intent(db: Session, payment_intent_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.stripe_payment_intent_id == payment_intent_id)
            .first()
        )

    @staticmethod
    def list_appointments(
        db: Session,
        status: Optional[str] = None,
        artist_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Appointment], int]:
        """Filtered, newest-first page of appointments plus the unpaginated total"""
        query = db.query(Appointment)
        if status and status != "all":
            query = query.filter(Appointment.status == status)
        if artist_id:
            query = query.filter(Appointment.artist_id == artist_id)
        if customer_id:
            query = query.filter(Appointment.customer_id == customer_id)
        if start_date:
            query = query.filter(Appointment.start_date >= start_date)
        if end_date:
            query = query.filter(Appointment.start_date <= end_date)

        total = query.count()
        items = (
            query.options(joinedload(Appointment.customer))
            .order_by(Appointment.start_date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def lock_artist_schedule(db: Session, artist_id: str) -> None:
        """
        Serialize writers for one artist until the current transaction ends.
        PostgreSQL takes a transaction-scoped advisory lock (covers inserts into an
        empty calendar); other dialects lock the artist's active rows.
        """
        if db.get_bind().dialect.name == "postgresql":
            db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:artist_id))"), {"artist_id": artist_id})
            return

        (
            db.query(Appointment.id)
            .filter(Appointment.artist_id == artist_id, Appointment.status.in_(BLOCKING_STATUSES))
            .with_for_update()
            .all()
        )

    @staticmethod
    def add_appointment(db: Session, **appointment_data) -> Appointment:
        """Stage a new appointment; caller commits"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def add_note(db: Session, appointment: Appointment, content: str, note_type: str = "system") -> Note:
        note = Note(
            content=content,
            type=note_type,
            customer_id=appointment.customer_id,
            appointment_id=appointment.id,
        )
        db.add(note)
        return note

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        rows = (
            db.query(Appointment.status, func.count(Appointment.id))
            .group_by(Appointment.status)
            .all()
        )
        return {status: count for status, count in rows}
