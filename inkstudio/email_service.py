"""
Email Service using Resend
Templates are MJML, compiled to HTML before sending or queueing
"""

import asyncio
import logging
from typing import Union

import resend
from mjml import mjml_to_html
from sqlalchemy.orm import Session

from . import config
from .email_templates import (
    appointment_cancelled_template,
    appointment_reminder_template,
    deposit_reminder_template,
    new_booking_admin_template,
)
from .models import Appointment, EmailQueueEntry

logger = logging.getLogger(__name__)


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_html_email(to: Union[str, list[str]], subject: str, html_content: str) -> dict:
    """Send already-rendered HTML through Resend"""
    if not config.RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    recipients = [to] if isinstance(to, str) else to
    resend.api_key = config.RESEND_API_KEY

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        # The Resend SDK is blocking; keep it off the event loop so fan-out stays concurrent
        response = await asyncio.to_thread(
            resend.Emails.send,
            {
                "from": config.EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            },
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


async def send_email(to: Union[str, list[str]], subject: str, mjml_content: str) -> dict:
    """Compile an MJML template and send it"""
    html_content = compile_mjml_to_html(mjml_content)
    return await send_html_email(to, subject, html_content)


def enqueue_email(db: Session, to: str, subject: str, mjml_content: str) -> EmailQueueEntry:
    """Store a rendered email for the process_email_queue job; caller commits"""
    entry = EmailQueueEntry(
        to_email=to,
        subject=subject,
        html_content=compile_mjml_to_html(mjml_content),
        status="pending",
        attempts=0,
    )
    db.add(entry)
    return entry


def _format_date(appointment: Appointment) -> str:
    return appointment.start_date.strftime("%A, %B %d, %Y")


def _format_time(appointment: Appointment) -> str:
    return f"{appointment.start_date.strftime('%I:%M %p')} - {appointment.end_date.strftime('%I:%M %p')} UTC"


# ============================================
# Pre-built emails for appointment events
# ============================================


async def send_appointment_reminder(appointment: Appointment) -> dict:
    """Day-before reminder for a confirmed appointment"""
    customer = appointment.customer
    if not customer or not customer.email:
        raise Exception(f"Appointment {appointment.id} has no customer email")

    mjml_content = appointment_reminder_template(
        customer_name=customer.first_name,
        appointment_title=appointment.title,
        appointment_date=_format_date(appointment),
        appointment_time=_format_time(appointment),
    )
    return await send_email(
        to=customer.email,
        subject=f"Reminder: Your appointment tomorrow - {config.STUDIO_NAME}",
        mjml_content=mjml_content,
    )


async def send_deposit_reminder(appointment: Appointment) -> dict:
    customer = appointment.customer
    if not customer or not customer.email:
        raise Exception(f"Appointment {appointment.id} has no customer email")

    mjml_content = deposit_reminder_template(
        customer_name=customer.first_name,
        appointment_title=appointment.title,
        appointment_date=_format_date(appointment),
        deposit_amount=appointment.deposit or 0,
        appointment_id=appointment.id,
    )
    return await send_email(
        to=customer.email,
        subject=f"Deposit required for your appointment - {config.STUDIO_NAME}",
        mjml_content=mjml_content,
    )


def queue_cancellation_email(db: Session, appointment: Appointment) -> None:
    customer = appointment.customer
    if not customer or not customer.email:
        logger.debug(f"⚠️ No email for cancelled appointment {appointment.id}, skipping")
        return

    enqueue_email(
        db,
        to=customer.email,
        subject=f"Your appointment has been cancelled - {config.STUDIO_NAME}",
        mjml_content=appointment_cancelled_template(
            customer_name=customer.first_name,
            appointment_title=appointment.title,
            appointment_date=_format_date(appointment),
        ),
    )


def queue_new_booking_admin_email(db: Session, appointment: Appointment) -> None:
    if not config.ADMIN_EMAIL:
        return

    customer = appointment.customer
    enqueue_email(
        db,
        to=config.ADMIN_EMAIL,
        subject=f"New booking: {appointment.title}",
        mjml_content=new_booking_admin_template(
            customer_name=customer.full_name if customer else "Unknown",
            customer_email=customer.email if customer else "",
            appointment_title=appointment.title,
            appointment_date=f"{_format_date(appointment)} {_format_time(appointment)}",
            artist_id=appointment.artist_id,
        ),
    )
