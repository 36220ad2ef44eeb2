"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppointmentCreate(BaseModel):
    """Schema for creating a new appointment"""

    artist_id: str = Field(min_length=1)
    customer_id: str
    title: str = Field(min_length=1)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: Literal["scheduled", "confirmed"] = "scheduled"
    deposit: float = Field(default=0, ge=0)
    total_price: Optional[float] = Field(default=None, ge=0)

    @field_validator("artist_id")
    @classmethod
    def strip_artist(cls, v):
        return v.strip()


class AppointmentUpdate(BaseModel):
    """Schema for updating non-time fields of an appointment"""

    title: Optional[str] = None
    description: Optional[str] = None
    deposit: Optional[float] = Field(default=None, ge=0)
    deposit_paid: Optional[bool] = None
    total_price: Optional[float] = Field(default=None, ge=0)


class RescheduleRequest(BaseModel):
    start_date: datetime
    end_date: datetime


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class CustomerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    artist_id: str
    customer_id: str
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: str
    deposit: float
    deposit_paid: bool
    total_price: Optional[float] = None
    cal_booking_uid: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    customer: Optional[CustomerSummary] = None


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    total: int
    page: int
    limit: int
    pageCount: int


class ConflictingAppointment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    artist_id: str
    customer_id: str
    start_date: datetime
    end_date: datetime
    status: str


class AvailabilityResponse(BaseModel):
    available: bool
    conflicting_appointments: list[ConflictingAppointment] = []


class StatusSummary(BaseModel):
    scheduled: int
    confirmed: int
    cancelled: int
    completed: int
    total: int
