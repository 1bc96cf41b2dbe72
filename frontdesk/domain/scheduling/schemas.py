"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime, time
from typing import Literal, Optional

from pydantic import BaseModel

BookingStatus = Literal["pending", "confirmed", "completed", "no_show", "cancelled"]


class BookingUpdate(BaseModel):
    """
    Partial update for a booking.

    Only fields the caller actually sent are applied (`model_fields_set`), so
    `{"notes": null}` clears notes while an omitted `notes` leaves it alone.
    """

    status: Optional[BookingStatus] = None
    notes: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(include=self.model_fields_set)


class ServiceTypeResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    duration_minutes: int
    location: Optional[str] = None

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    id: str
    day_of_week: int
    day_name: str
    start_time: time
    end_time: time
    is_active: bool

    class Config:
        from_attributes = True


class SlotsResponse(BaseModel):
    workspace_id: str
    service_type_id: str
    booking_date: date
    duration_minutes: int
    slots: list[str]


class BookingContact(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class BookingResponse(BaseModel):
    id: str
    booking_date: date
    booking_time: time
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    contact: Optional[BookingContact] = None
    service_type: Optional[ServiceTypeResponse] = None
