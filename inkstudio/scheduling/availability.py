"""
Appointment overlap checking.

An artist's calendar must never hold two active appointments whose
[start_date, end_date) intervals intersect. The checker answers the question
for a candidate interval; callers decide what to do with the answer.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import StorageError, ValidationError
from ..models import Appointment
from .windows import intervals_overlap, validate_interval

logger = logging.getLogger(__name__)

# Statuses that occupy the artist's calendar
BLOCKING_STATUSES = ("scheduled", "confirmed")


def _validate(artist_id: str, start: datetime, end: datetime) -> None:
    if not artist_id or not str(artist_id).strip():
        raise ValidationError("artist_id is required")
    validate_interval(start, end)


def overlapping(
    candidates: Iterable[Appointment],
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[str] = None,
) -> list[Appointment]:
    """In-memory counterpart of the range query in find_conflicts"""
    return [
        appt
        for appt in candidates
        if appt.id != exclude_appointment_id
        and intervals_overlap(appt.start_date, appt.end_date, start, end)
    ]


def conflict_query(
    db: Session,
    artist_id: str,
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[str] = None,
    statuses: Optional[Sequence[str]] = BLOCKING_STATUSES,
):
    query = db.query(Appointment).filter(
        Appointment.artist_id == artist_id,
        Appointment.start_date < end,
        Appointment.end_date > start,
    )
    if exclude_appointment_id:
        query = query.filter(Appointment.id != exclude_appointment_id)
    if statuses is not None:
        query = query.filter(Appointment.status.in_(list(statuses)))
    return query


def find_conflicts(
    db: Session,
    artist_id: str,
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[str] = None,
    statuses: Optional[Sequence[str]] = BLOCKING_STATUSES,
) -> list[Appointment]:
    """
    Return appointments of ``artist_id`` that overlap [start, end).

    Args:
        statuses: Only rows in these statuses are considered; None considers every row
    """
    _validate(artist_id, start, end)
    try:
        return (
            conflict_query(db, artist_id, start, end, exclude_appointment_id, statuses)
            .order_by(Appointment.start_date.asc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"❌ Availability query failed for artist {artist_id}: {e}")
        raise StorageError(f"Failed to load appointments for artist {artist_id}: {e}") from e


def check_availability(
    db: Session,
    artist_id: str,
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[str] = None,
    statuses: Optional[Sequence[str]] = BLOCKING_STATUSES,
) -> bool:
    """True when no appointment of ``artist_id`` overlaps [start, end)"""
    _validate(artist_id, start, end)
    try:
        hit = (
            conflict_query(db, artist_id, start, end, exclude_appointment_id, statuses)
            .with_entities(Appointment.id)
            .first()
        )
    except SQLAlchemyError as e:
        logger.error(f"❌ Availability check failed for artist {artist_id}: {e}")
        raise StorageError(f"Failed to check availability for artist {artist_id}: {e}") from e

    available = hit is None
    logger.debug(
        f"🔍 Availability {artist_id} [{start.isoformat()}, {end.isoformat()}): "
        f"{'free' if available else 'taken'}"
    )
    return available
