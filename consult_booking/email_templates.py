"""
MJML Email Templates
Booking emails for clients and staff, compiled to HTML by email_service
"""

from typing import Optional

from .config import SITE_URL

# Firm theme colors - Turquoise/Slate
THEME = {
    "primary": "#40E0D0",
    "primary_dark": "#2bb5a8",
    "success_bg": "#E8F5E9",
    "success_border": "#4CAF50",
    "meet": "#0F9D58",
    "background": "#f8fafc",
    "text_primary": "#111827",
    "text_secondary": "#4b5563",
    "text_muted": "#6b7280",
    "border": "#e2e8f0",
}

FIRM_NAME = "Hamilton Bailey Law"


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
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary_dark']}"
              color="#ffffff"
              font-weight="600"
              border-radius="6px"
              padding="18px 40px"
              font-size="16px">
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
          <mj-all font-family="Arial, 'Helvetica Neue', sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="20px">
          <mj-column>
            <mj-text align="center" font-size="24px" font-weight="700" color="#ffffff" padding="0">
              {title}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="30px 30px 40px 30px">
          <mj-column>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              {FIRM_NAME} · 147 Pirie Street, Adelaide SA 5000
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_row(label: str, value: str) -> str:
    return f"""
    <mj-text font-size="15px" color="{THEME['text_primary']}" padding="0 0 6px 0">
      <strong>{label}:</strong> {value}
    </mj-text>
    """


def _meet_section(meeting_link: Optional[str]) -> str:
    if not meeting_link:
        return ""
    return f"""
    <mj-button href="{meeting_link}" background-color="{THEME['meet']}" color="#ffffff"
      border-radius="6px" font-weight="600" padding="20px 0 8px 0">
      Join Google Meet
    </mj-button>
    <mj-text align="center" font-size="12px" color="{THEME['text_muted']}" padding="0">
      {meeting_link}
    </mj-text>
    """


def booking_confirmation_template(
    client_name: str,
    consultation_type: str,
    appointment_date: str,
    appointment_time: str,
    duration_minutes: int,
    confirmation_number: str,
    meeting_link: Optional[str] = None,
) -> str:
    """Booking received confirmation sent to the client"""
    content = f"""
    <mj-text>
      Dear {client_name},
    </mj-text>

    <mj-text>
      Thank you for booking a consultation with {FIRM_NAME}. Here are your appointment details:
    </mj-text>

    {_detail_row("Confirmation Number", confirmation_number)}
    {_detail_row("Consultation", consultation_type)}
    {_detail_row("Date", appointment_date)}
    {_detail_row("Time", f"{appointment_time} (Adelaide time)")}
    {_detail_row("Duration", f"{duration_minutes} minutes")}

    {_meet_section(meeting_link)}

    <mj-text color="{THEME['text_muted']}" font-size="14px" padding="20px 0 0 0">
      Your booking will be confirmed once payment has been received. If you need to
      reschedule, simply reply to this email.
    </mj-text>
    """

    return get_base_template(
        title="Booking Received",
        preview_text=f"Your consultation on {appointment_date}",
        content_sections=content,
    )


def staff_booking_notification_template(
    client_name: str,
    client_email: str,
    client_phone: Optional[str],
    consultation_type: str,
    appointment_date: str,
    appointment_time: str,
    duration_minutes: int,
    booking_id: str,
    practice_type: Optional[str] = None,
    practice_website: Optional[str] = None,
    notes: Optional[str] = None,
    uploaded_files: Optional[list[str]] = None,
    meeting_link: Optional[str] = None,
    slot_reserved: bool = False,
) -> str:
    """New booking notification for firm staff"""
    files_section = ""
    if uploaded_files:
        files_section = _detail_row("Uploaded Documents", ", ".join(uploaded_files))

    content = f"""
    <mj-text font-size="16px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 12px 0">
      📅 {consultation_type} - {client_name}
    </mj-text>

    {_detail_row("Date", appointment_date)}
    {_detail_row("Time", appointment_time)}
    {_detail_row("Duration", f"{duration_minutes} minutes")}
    {_detail_row("Availability Slot", "Reserved" if slot_reserved else "None selected")}

    <mj-divider border-color="{THEME['border']}" border-width="1px" padding="16px 0" />

    {_detail_row("Client", client_name)}
    {_detail_row("Email", client_email)}
    {_detail_row("Phone", client_phone or "Not provided")}
    {_detail_row("Practice Type", practice_type or "Not specified")}
    {_detail_row("Practice Website", practice_website or "Not provided")}
    {files_section}

    <mj-text font-size="14px" color="{THEME['text_muted']}" padding="16px 0 0 0">
      <strong>Notes:</strong><br/>
      {notes or "No additional notes"}
    </mj-text>

    {_meet_section(meeting_link)}

    <mj-text font-size="12px" color="{THEME['text_muted']}" padding="20px 0 0 0">
      Booking ID: {booking_id} · Status: awaiting payment
    </mj-text>
    """

    return get_base_template(
        title="New Booking Request",
        preview_text=f"{consultation_type} with {client_name} on {appointment_date}",
        content_sections=content,
        cta_url=f"{SITE_URL}/admin/appointments",
        cta_label="View Appointments",
    )


__all__ = [
    "THEME",
    "get_base_template",
    "booking_confirmation_template",
    "staff_booking_notification_template",
]
