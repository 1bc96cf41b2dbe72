"""Engagement events handed to the notification dispatcher after commit"""

from typing import Literal, Optional

from pydantic import BaseModel

EventKind = Literal["welcome", "booking_confirmation", "booking_reminder", "form_request"]


class EngagementEvent(BaseModel):
    """Everything a channel needs to notify a contact, detached from the DB session"""

    kind: EventKind
    workspace_id: str
    entity_id: str
    contact_name: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    business_name: str
    reply_to: Optional[str] = None

    # booking_confirmation / booking_reminder
    service_name: Optional[str] = None
    booking_date: Optional[str] = None
    booking_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    location: Optional[str] = None

    # form_request
    form_name: Optional[str] = None
    form_link: Optional[str] = None


class EventLogFields(BaseModel):
    event_type: str
    entity_type: str
    email_action: str
    sms_action: str


EVENT_KINDS: dict[str, EventLogFields] = {
    "welcome": EventLogFields(
        event_type="contact_created",
        entity_type="contact",
        email_action="welcome_email_sent",
        sms_action="welcome_sms_sent",
    ),
    "booking_confirmation": EventLogFields(
        event_type="booking_created",
        entity_type="booking",
        email_action="confirmation_email_sent",
        sms_action="confirmation_sms_sent",
    ),
    "booking_reminder": EventLogFields(
        event_type="booking_reminder",
        entity_type="booking",
        email_action="reminder_email_sent",
        sms_action="reminder_sms_sent",
    ),
    "form_request": EventLogFields(
        event_type="form_assigned",
        entity_type="form_submission",
        email_action="form_request_email_sent",
        sms_action="form_request_sms_sent",
    ),
}
