"""
MJML email and SMS templates for engagement notifications
Every user-supplied value is HTML-escaped before it reaches MJML
"""

from dataclasses import dataclass
from typing import Optional

from ...utils.sanitization import sanitize_string
from .events import EngagementEvent

THEME = {
    "primary": "#4f46e5",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "panel": "#f1f5f9",
}


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    mjml: str
    text: str


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    business_name: str,
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
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
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
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="#94a3b8" padding="0">
              You received this email because you contacted {business_name}.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _details_panel(rows: list[tuple[str, Optional[str]]]) -> str:
    lines = "".join(
        f"<strong>{label}:</strong> {value}<br/>" for label, value in rows if value
    )
    return f"""
    <mj-text background-color="{THEME['panel']}" padding="16px" color="{THEME['text_secondary']}">
      {lines}
    </mj-text>
    """


def welcome_email(event: EngagementEvent) -> RenderedEmail:
    name = sanitize_string(event.contact_name) or "there"
    business = sanitize_string(event.business_name)
    content = f"""
    <mj-text>Hi {name},</mj-text>
    <mj-text>
      Thanks for reaching out to <strong>{business}</strong>. We have received your inquiry
      and a member of our team will get back to you shortly.
    </mj-text>
    """
    return RenderedEmail(
        subject=f"We've received your message - {event.business_name}",
        mjml=get_base_template(
            title=f"Welcome to {business}",
            preview_text="We have received your inquiry",
            content_sections=content,
            business_name=business,
        ),
        text=(
            f"Hi {event.contact_name or 'there'},\n\nThanks for reaching out to {event.business_name}. "
            "We have received your inquiry and a member of our team will get back to you shortly.\n\n"
            f"Best regards,\n{event.business_name} Team"
        ),
    )


def booking_confirmation_email(event: EngagementEvent) -> RenderedEmail:
    name = sanitize_string(event.contact_name) or "there"
    business = sanitize_string(event.business_name)
    service = sanitize_string(event.service_name)
    duration = f"{event.duration_minutes} minutes" if event.duration_minutes else None
    content = f"""
    <mj-text>Hi {name},</mj-text>
    <mj-text>
      Your booking for <strong>{service}</strong> with <strong>{business}</strong> has been scheduled.
    </mj-text>
    {_details_panel([
        ("Date", sanitize_string(event.booking_date)),
        ("Time", sanitize_string(event.booking_time)),
        ("Service", service),
        ("Duration", duration),
        ("Location", sanitize_string(event.location)),
    ])}
    <mj-text>We look forward to seeing you!</mj-text>
    """
    return RenderedEmail(
        subject=f"Booking Confirmed: {event.service_name} with {event.business_name}",
        mjml=get_base_template(
            title="Booking Confirmed!",
            preview_text=f"{service} on {sanitize_string(event.booking_date)}",
            content_sections=content,
            business_name=business,
        ),
        text=(
            f"Hi {event.contact_name or 'there'},\n\nYour booking for {event.service_name} with "
            f"{event.business_name} is confirmed for {event.booking_date} at {event.booking_time}.\n\n"
            "See you soon!"
        ),
    )


def booking_reminder_email(event: EngagementEvent) -> RenderedEmail:
    name = sanitize_string(event.contact_name) or "there"
    business = sanitize_string(event.business_name)
    service = sanitize_string(event.service_name)
    content = f"""
    <mj-text>Hi {name},</mj-text>
    <mj-text>This is a reminder of your upcoming <strong>{service}</strong> appointment.</mj-text>
    {_details_panel([
        ("Date", sanitize_string(event.booking_date)),
        ("Time", sanitize_string(event.booking_time)),
        ("Location", sanitize_string(event.location)),
    ])}
    """
    return RenderedEmail(
        subject=f"Reminder: {event.service_name} with {event.business_name}",
        mjml=get_base_template(
            title="Appointment Reminder",
            preview_text=f"{service} at {sanitize_string(event.booking_time)}",
            content_sections=content,
            business_name=business,
        ),
        text=(
            f"Hi {event.contact_name or 'there'},\n\nReminder: your {event.service_name} appointment "
            f"with {event.business_name} is on {event.booking_date} at {event.booking_time}."
        ),
    )


def form_request_email(event: EngagementEvent) -> RenderedEmail:
    name = sanitize_string(event.contact_name) or "there"
    business = sanitize_string(event.business_name)
    form_name = sanitize_string(event.form_name)
    content = f"""
    <mj-text>Hi {name},</mj-text>
    <mj-text>
      Please complete the <strong>{form_name}</strong> form for {business} before your appointment.
    </mj-text>
    """
    return RenderedEmail(
        subject=f"Please complete: {event.form_name} - {event.business_name}",
        mjml=get_base_template(
            title="One more step",
            preview_text=f"Please complete {form_name}",
            content_sections=content,
            business_name=business,
            cta_url=event.form_link,
            cta_label="Complete Form",
        ),
        text=(
            f"Hi {event.contact_name or 'there'},\n\nPlease complete the {event.form_name} form for "
            f"{event.business_name}: {event.form_link}"
        ),
    )


def welcome_sms(event: EngagementEvent) -> str:
    return (
        f"Hi {event.contact_name or 'there'}! Welcome to {event.business_name}. "
        "We've received your inquiry and will get back to you soon. Reply STOP to unsubscribe."
    )


def booking_confirmation_sms(event: EngagementEvent) -> str:
    message = (
        f"Hi {event.contact_name or 'there'}! Your {event.service_name} booking at "
        f"{event.business_name} is confirmed for {event.booking_date} at {event.booking_time}."
    )
    if event.location:
        message += f" Location: {event.location}."
    return message + " See you there!"


def booking_reminder_sms(event: EngagementEvent) -> str:
    message = (
        f"Reminder: {event.contact_name or 'Hi there'}, you have a {event.service_name} "
        f"appointment tomorrow at {event.booking_time}."
    )
    if event.location:
        message += f" Location: {event.location}."
    return f"{message} {event.business_name}"


def form_request_sms(event: EngagementEvent) -> str:
    return (
        f"Hi {event.contact_name or 'there'}! Please complete the {event.form_name} form "
        f"for {event.business_name}: {event.form_link}"
    )


EMAIL_TEMPLATES = {
    "welcome": welcome_email,
    "booking_confirmation": booking_confirmation_email,
    "booking_reminder": booking_reminder_email,
    "form_request": form_request_email,
}

SMS_TEMPLATES = {
    "welcome": welcome_sms,
    "booking_confirmation": booking_confirmation_sms,
    "booking_reminder": booking_reminder_sms,
    "form_request": form_request_sms,
}


def render_email(event: EngagementEvent) -> RenderedEmail:
    return EMAIL_TEMPLATES[event.kind](event)


def render_sms(event: EngagementEvent) -> str:
    return SMS_TEMPLATES[event.kind](event)
