"""
MJML Email Templates
Appointment lifecycle emails for studio customers and staff
"""

from typing import Optional

from .config import FRONTEND_URL, STUDIO_NAME

# Studio theme colors - black/red
THEME = {
    "primary": "#e53e3e",
    "background": "#f4f4f4",
    "text_primary": "#111111",
    "text_secondary": "#333333",
    "text_muted": "#666666",
    "border": "#e2e2e2",
    "panel": "#f9f9f9",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="#ffffff" padding="0 40px 32px 40px">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="4px"
              padding="12px 32px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#000000" padding="20px">
          <mj-column>
            <mj-text align="center" font-size="24px" font-weight="bold" color="{THEME['primary']}">
              {STUDIO_NAME}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="32px 40px 16px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="16px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="{THEME['text_muted']}">
              This is an automated message from {STUDIO_NAME}.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _details_panel(rows: list[tuple[str, str]]) -> str:
    lines = "<br/>".join(f"<strong>{label}:</strong> {value}" for label, value in rows)
    return f"""
    <mj-text container-background-color="{THEME['panel']}" padding="16px">
      {lines}
    </mj-text>
    """


def appointment_reminder_template(
    customer_name: str, appointment_title: str, appointment_date: str, appointment_time: str
) -> str:
    """Day-before reminder for a confirmed appointment"""
    content = f"""
    <mj-text>Hi {customer_name},</mj-text>
    <mj-text>
      This is a friendly reminder that your appointment is tomorrow.
      Please arrive 10 minutes early, well rested and hydrated.
    </mj-text>
    {_details_panel([("Session", appointment_title), ("Date", appointment_date), ("Time", appointment_time)])}
    <mj-text>Need to reschedule? Reply to this email as soon as possible.</mj-text>
    """
    return get_base_template(
        title="Your Appointment Is Tomorrow",
        preview_text=f"Reminder: {appointment_title} on {appointment_date}",
        content_sections=content,
    )


def deposit_reminder_template(
    customer_name: str,
    appointment_title: str,
    appointment_date: str,
    deposit_amount: float,
    appointment_id: str,
) -> str:
    """Reminder for an unpaid deposit on an upcoming appointment"""
    content = f"""
    <mj-text>Hi {customer_name},</mj-text>
    <mj-text>
      We still need your deposit to hold your spot. Appointments without a paid
      deposit are released 48 hours before the scheduled time.
    </mj-text>
    {_details_panel([
        ("Session", appointment_title),
        ("Date", appointment_date),
        ("Deposit due", f"${deposit_amount:,.2f}"),
    ])}
    """
    return get_base_template(
        title="Deposit Required",
        preview_text=f"Your deposit of ${deposit_amount:,.2f} is still outstanding",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/appointments/{appointment_id}/deposit",
        cta_label="Pay Deposit",
    )


def appointment_cancelled_template(customer_name: str, appointment_title: str, appointment_date: str) -> str:
    """Notice that an appointment was released for an unpaid deposit"""
    content = f"""
    <mj-text>Hi {customer_name},</mj-text>
    <mj-text>
      Your appointment on {appointment_date} has been cancelled because the
      deposit was not received within 48 hours of the scheduled time.
    </mj-text>
    {_details_panel([("Session", appointment_title), ("Date", appointment_date)])}
    <mj-text>If you'd still like to get tattooed with us, book a new time below.</mj-text>
    """
    return get_base_template(
        title="Appointment Cancelled",
        preview_text=f"Your appointment on {appointment_date} was cancelled",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/booking",
        cta_label="Book Again",
    )


def new_booking_admin_template(
    customer_name: str, customer_email: str, appointment_title: str, appointment_date: str, artist_id: str
) -> str:
    content = f"""
    <mj-text>A new booking just came in from Cal.com.</mj-text>
    {_details_panel([
        ("Customer", f"{customer_name} ({customer_email})"),
        ("Session", appointment_title),
        ("Date", appointment_date),
        ("Artist", artist_id),
    ])}
    """
    return get_base_template(
        title="New Booking",
        preview_text=f"{customer_name} booked {appointment_title}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/admin/appointments",
        cta_label="Open Dashboard",
    )
