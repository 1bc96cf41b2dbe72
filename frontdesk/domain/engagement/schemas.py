"""Engagement domain schemas - public booking, contact and form payloads"""

from datetime import date, time
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import normalize_phone, validate_email
from ...utils.sanitization import clean_text


class ContactIdentity(BaseModel):
    """Who is reaching out; email and phone are normalized before lookup"""

    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def clean_names(cls, v):
        return clean_text(v, max_length=100) or None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v and v.strip():
            return normalize_phone(v)
        return None


class BookingPayload(BaseModel):
    service_type_id: str
    booking_date: date
    booking_time: time
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("notes")
    @classmethod
    def clean_notes(cls, v):
        return clean_text(v, max_length=1000) or None


class FormPayload(BaseModel):
    form_id: str
    submission_data: dict[str, Any] = Field(default_factory=dict)
    message: Optional[str] = None

    @field_validator("message")
    @classmethod
    def clean_message(cls, v):
        return clean_text(v) or None


class ContactFormPayload(BaseModel):
    message: Optional[str] = Field(None, max_length=2000)

    @field_validator("message")
    @classmethod
    def clean_message(cls, v):
        return clean_text(v, max_length=2000) or None


EngagementPayload = Union[BookingPayload, FormPayload, ContactFormPayload]


def require_name(value: str) -> str:
    """Clean a mandatory name; whitespace-only input is rejected"""
    cleaned = clean_text(value, max_length=100)
    if not cleaned:
        raise ValueError("Name must not be blank")
    return cleaned


# ============================================================================
# REQUEST BODIES
# ============================================================================


class PublicBookingRequest(ContactIdentity, BookingPayload):
    """Schema for public booking page submissions"""

    workspace_id: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("first_name", "last_name")
    @classmethod
    def clean_names(cls, v):
        return require_name(v)

    def identity(self) -> ContactIdentity:
        return ContactIdentity(
            first_name=self.first_name, last_name=self.last_name, email=self.email, phone=self.phone
        )

    def payload(self) -> BookingPayload:
        return BookingPayload(
            service_type_id=self.service_type_id,
            booking_date=self.booking_date,
            booking_time=self.booking_time,
            notes=self.notes,
        )


class PublicContactRequest(ContactIdentity, ContactFormPayload):
    """Schema for the default website contact form"""

    workspace_id: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("first_name", "last_name")
    @classmethod
    def clean_names(cls, v):
        return require_name(v)

    def identity(self) -> ContactIdentity:
        return ContactIdentity(
            first_name=self.first_name, last_name=self.last_name, email=self.email, phone=self.phone
        )

    def payload(self) -> ContactFormPayload:
        return ContactFormPayload(message=self.message)


class PublicFormSubmissionRequest(ContactIdentity):
    """Schema for a custom form submission; answers go in `data`"""

    data: dict[str, Any] = Field(default_factory=dict)
    message: Optional[str] = None

    def identity(self) -> ContactIdentity:
        return ContactIdentity(
            first_name=self.first_name, last_name=self.last_name, email=self.email, phone=self.phone
        )

    def payload(self, form_id: str) -> FormPayload:
        return FormPayload(form_id=form_id, submission_data=self.data, message=self.message)
