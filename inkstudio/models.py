import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

APPOINTMENT_STATUSES = ("scheduled", "confirmed", "cancelled", "completed")


def generate_id():
    return str(uuid.uuid4())


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone = Column(String(50), nullable=True)
    personal_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="customer")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def last_appointment_at(self):
        """Start of the most recent appointment, whatever its status"""
        return max((a.start_date for a in self.appointments), default=None)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_id)
    artist_id = Column(String(100), nullable=False, index=True)  # owner whose calendar must not overlap
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    # Half-open interval [start_date, end_date), naive UTC
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False)
    status = Column(String(20), default="scheduled", nullable=False, index=True)
    deposit = Column(Float, default=0, nullable=False)
    deposit_paid = Column(Boolean, default=False, nullable=False)
    total_price = Column(Float, nullable=True)

    # External mirrors
    cal_booking_uid = Column(String(255), unique=True, nullable=True)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)

    # Batch job dedup stamps
    reminder_sent_at = Column(DateTime, nullable=True)
    deposit_reminder_sent_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="appointments")

    __table_args__ = (Index("ix_appointments_artist_range", "artist_id", "start_date", "end_date"),)

    def __repr__(self) -> str:
        return f"<Appointment {self.id} {self.artist_id} {self.start_date} ({self.status})>"


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True, index=True)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=True, index=True)
    content = Column(Text, nullable=False)
    type = Column(String(20), default="system", nullable=False)  # system, admin
    created_at = Column(DateTime, server_default=func.now())


class Notification(Base):
    __tablename__ = "notification_queue"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(String(36), nullable=True, index=True)
    recipient_type = Column(String(20), nullable=False)  # customer, admin
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    notification_type = Column(String(50), nullable=False)  # cancellation, payment, booking
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), index=True)


class EmailQueueEntry(Base):
    __tablename__ = "email_queue"

    id = Column(Integer, primary_key=True, index=True)
    to_email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    html_content = Column(Text, nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)  # pending, sent, failed
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    sent_at = Column(DateTime, nullable=True)


class CalWebhookEvent(Base):
    __tablename__ = "cal_webhook_events"

    id = Column(Integer, primary_key=True, index=True)
    trigger_event = Column(String(50), nullable=False)
    cal_booking_uid = Column(String(255), nullable=True, index=True)
    payload = Column(JSON, nullable=False)
    signature = Column(String(255), nullable=True)
    ip_address = Column(String(100), nullable=True)
    processed = Column(Boolean, default=False, nullable=False)
    processed_at = Column(DateTime, nullable=True)
    processing_error = Column(Text, nullable=True)
    retry_count = Column(Integer, default=0, nullable=False)
    received_at = Column(DateTime, server_default=func.now())
