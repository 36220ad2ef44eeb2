"""Tests for the Resend/MJML email layer."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from inkstudio import config, email_service
from inkstudio.email_service import compile_mjml_to_html
from inkstudio.email_templates import (
    appointment_cancelled_template,
    appointment_reminder_template,
    deposit_reminder_template,
    new_booking_admin_template,
)
from inkstudio.models import Appointment, Customer, EmailQueueEntry


def appointment_with(email="alex@example.com") -> Appointment:
    customer = Customer(id="cust-1", first_name="Alex", last_name="Rivera", email=email)
    return Appointment(
        id="appt-1",
        artist_id="artist-1",
        customer_id=customer.id,
        customer=customer,
        title="Sleeve session",
        start_date=datetime(2024, 6, 11, 14, 0),
        end_date=datetime(2024, 6, 11, 17, 0),
        deposit=150.0,
    )


class TestTemplates:
    def test_reminder_mentions_details(self):
        mjml = appointment_reminder_template("Alex", "Sleeve session", "Tuesday, June 11, 2024", "02:00 PM")

        assert mjml.strip().startswith("<mjml>")
        assert "Alex" in mjml
        assert "Sleeve session" in mjml
        assert "Tuesday, June 11, 2024" in mjml

    def test_deposit_reminder_links_to_appointment(self):
        mjml = deposit_reminder_template("Alex", "Sleeve session", "Tuesday", 150.0, "appt-1")

        assert "appt-1" in mjml
        assert "150.00" in mjml

    def test_cancelled_and_admin_templates(self):
        assert "Sleeve session" in appointment_cancelled_template("Alex", "Sleeve session", "Tuesday")
        admin = new_booking_admin_template("Alex Rivera", "alex@example.com", "Sleeve session", "Tuesday", "artist-1")
        assert "alex@example.com" in admin
        assert "artist-1" in admin


class TestCompile:
    def test_returns_html_from_result_dict(self):
        with patch.object(email_service, "mjml_to_html", return_value={"html": "<p>hi</p>", "errors": []}):
            assert compile_mjml_to_html("<mjml></mjml>") == "<p>hi</p>"

    def test_compile_failure_raises(self):
        with patch.object(email_service, "mjml_to_html", side_effect=ValueError("bad xml")):
            with pytest.raises(Exception, match="Failed to compile MJML template"):
                compile_mjml_to_html("<mjml>")


class TestSend:
    @pytest.mark.asyncio
    async def test_missing_api_key_raises(self, monkeypatch):
        monkeypatch.setattr(config, "RESEND_API_KEY", None)

        with pytest.raises(Exception, match="Email service not configured"):
            await email_service.send_html_email("alex@example.com", "Hi", "<p>hi</p>")

    @pytest.mark.asyncio
    async def test_sends_through_resend(self, monkeypatch):
        monkeypatch.setattr(config, "RESEND_API_KEY", "re_test")
        send = MagicMock(return_value={"id": "email-1"})
        monkeypatch.setattr(email_service.resend.Emails, "send", send)

        result = await email_service.send_html_email("alex@example.com", "Hi", "<p>hi</p>")

        assert result == {"id": "email-1"}
        params = send.call_args.args[0]
        assert params["to"] == ["alex@example.com"]
        assert params["subject"] == "Hi"
        assert params["from"] == config.EMAIL_FROM_ADDRESS

    @pytest.mark.asyncio
    async def test_resend_error_is_wrapped(self, monkeypatch):
        monkeypatch.setattr(config, "RESEND_API_KEY", "re_test")
        monkeypatch.setattr(email_service.resend.Emails, "send", MagicMock(side_effect=RuntimeError("429")))

        with pytest.raises(Exception, match="Failed to send email"):
            await email_service.send_html_email("alex@example.com", "Hi", "<p>hi</p>")

    @pytest.mark.asyncio
    async def test_reminder_goes_to_customer(self):
        with patch.object(email_service, "send_email", new=AsyncMock(return_value={"id": "x"})) as send:
            await email_service.send_appointment_reminder(appointment_with())

        assert send.call_args.kwargs["to"] == "alex@example.com"
        assert "Reminder" in send.call_args.kwargs["subject"]

    @pytest.mark.asyncio
    async def test_reminder_without_email_raises(self):
        with pytest.raises(Exception, match="no customer email"):
            await email_service.send_deposit_reminder(appointment_with(email=None))


class TestQueue:
    def test_enqueue_stores_rendered_html(self):
        db = MagicMock()

        entry = email_service.enqueue_email(db, "alex@example.com", "Subject", "<mjml></mjml>")

        db.add.assert_called_once_with(entry)
        assert isinstance(entry, EmailQueueEntry)
        assert entry.status == "pending"
        assert entry.attempts == 0
        assert entry.html_content.startswith("<html>")

    def test_cancellation_email_skipped_without_address(self):
        db = MagicMock()
        email_service.queue_cancellation_email(db, appointment_with(email=None))
        db.add.assert_not_called()

    def test_admin_notice_requires_admin_email(self, monkeypatch):
        db = MagicMock()
        email_service.queue_new_booking_admin_email(db, appointment_with())
        db.add.assert_not_called()

        monkeypatch.setattr(config, "ADMIN_EMAIL", "studio@example.com")
        email_service.queue_new_booking_admin_email(db, appointment_with())
        assert db.add.call_args.args[0].to_email == "studio@example.com"
