"""Appointment router - FastAPI endpoints for the studio admin"""

import logging
import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...errors import (
    AppointmentConflictError,
    AppointmentNotFoundError,
    CustomerNotFoundError,
    StorageError,
    ValidationError,
)
from .schemas import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentUpdate,
    AvailabilityResponse,
    CancelRequest,
    ConflictingAppointment,
    RescheduleRequest,
    StatusSummary,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"], dependencies=[Depends(require_admin)])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def to_http_error(e: Exception) -> HTTPException:
    """Map domain errors onto HTTP status codes"""
    if isinstance(e, AppointmentNotFoundError):
        return HTTPException(status_code=404, detail="Appointment not found")
    if isinstance(e, CustomerNotFoundError):
        return HTTPException(status_code=400, detail="Customer not found")
    if isinstance(e, AppointmentConflictError):
        return HTTPException(
            status_code=409,
            detail={"message": str(e), "conflicting_appointments": e.conflicting_ids},
        )
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"❌ Appointment operation failed: {e}")
    return HTTPException(status_code=500, detail="Failed to access appointments")


DOMAIN_ERRORS = (
    AppointmentNotFoundError,
    CustomerNotFoundError,
    AppointmentConflictError,
    ValidationError,
    StorageError,
)


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    status: Optional[str] = Query(None),
    artist_id: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get appointments with optional filtering, newest first"""
    try:
        items, total = service.list_appointments(
            status=status,
            artist_id=artist_id,
            customer_id=customer_id,
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit,
        )
    except DOMAIN_ERRORS as e:
        raise to_http_error(e) from e

    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(a) for a in items],
        total=total,
        page=page,
        limit=limit,
        pageCount=math.ceil(total / limit),
    )


@router.get("/stats", response_model=StatusSummary)
async def get_status_summary(service: AppointmentService = Depends(get_appointment_service)):
    """Count of appointments by status"""
    return StatusSummary(**service.get_status_summary())


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    artist_id: str,
    start_date: datetime,
    end_date: datetime,
    exclude_appointment_id: Optional[str] = None,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Check whether an artist is free for [start_date, end_date)"""
    try:
        available, conflicts = service.availability(artist_id, start_date, end_date, exclude_appointment_id)
    except DOMAIN_ERRORS as e:
        raise to_http_error(e) from e

    return AvailabilityResponse(
        available=available,
        conflicting_appointments=[ConflictingAppointment.model_validate(c) for c in conflicts],
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(appointment_id: str, service: AppointmentService = Depends(get_appointment_service)):
    try:
        return service.get_appointment(appointment_id)
    except DOMAIN_ERRORS as e:
        raise to_http_error(e) from e


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate, service: AppointmentService = Depends(get_appointment_service)
):
    """Create an appointment; 409 when the artist is already booked for that time"""
    try:
        return service.create_appointment(data)
    except DOMAIN_ERRORS as e:
        raise to_http_error(e) from e


@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return service.update_appointment(appointment_id, data)
    except DOMAIN_ERRORS as e:
        raise to_http_error(e) from e


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: str,
    data: RescheduleRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return service.reschedule_appointment(appointment_id, data.start_date, data.end_date)
    except DOMAIN_ERRORS as e:
        raise to_http_error(e) from e


@router.post("/{appointment_id}/confirm", response_model=AppointmentResponse)
async def confirm_appointment(appointment_id: str, service: AppointmentService = Depends(get_appointment_service)):
    try:
        return service.confirm_appointment(appointment_id)
    except DOMAIN_ERRORS as e:
        raise to_http_error(e) from e


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: str,
    data: Optional[CancelRequest] = None,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return service.cancel_appointment(appointment_id, reason=data.reason if data else None)
    except DOMAIN_ERRORS as e:
        raise to_http_error(e) from e


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(appointment_id: str, service: AppointmentService = Depends(get_appointment_service)):
    try:
        return service.complete_appointment(appointment_id)
    except DOMAIN_ERRORS as e:
        raise to_http_error(e) from e
