"""Scheduling router - public booking page, slot lookup and booking management"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...database import get_db
from ...models import Booking
from .planner import DAY_NAMES
from .schemas import (
    AvailabilityResponse,
    BookingContact,
    BookingResponse,
    BookingUpdate,
    ServiceTypeResponse,
    SlotsResponse,
)
from .service import SchedulingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


def _booking_response(booking: Booking) -> BookingResponse:
    contact = booking.contact
    return BookingResponse(
        id=booking.id,
        booking_date=booking.booking_date,
        booking_time=booking.booking_time,
        status=booking.status,
        notes=booking.notes,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        contact=(
            BookingContact(
                id=contact.id,
                first_name=contact.first_name,
                last_name=contact.last_name,
                email=contact.email,
                phone=contact.phone,
            )
            if contact
            else None
        ),
        service_type=(
            ServiceTypeResponse.model_validate(booking.service_type) if booking.service_type else None
        ),
    )


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================


@router.get("/public/workspaces/{workspace_id}/booking-page")
async def get_booking_page(
    workspace_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Public booking page data (no authentication)"""
    page = service.get_booking_page(workspace_id)
    return {
        "success": True,
        "data": {
            "workspace": page["workspace"],
            "service_types": [ServiceTypeResponse.model_validate(st) for st in page["service_types"]],
            "availability": page["availability"],
        },
    }


@router.get("/public/workspaces/{workspace_id}/slots", response_model=SlotsResponse)
async def get_slots(
    workspace_id: str,
    service_type_id: str = Query(...),
    booking_date: date = Query(..., alias="date"),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Bookable start times for one service on one date"""
    slots = service.get_slots(workspace_id, service_type_id, booking_date)
    service_type = service.get_bookable_service_type(workspace_id, service_type_id)
    return SlotsResponse(
        workspace_id=workspace_id,
        service_type_id=service_type_id,
        booking_date=booking_date,
        duration_minutes=service_type.duration_minutes,
        slots=slots,
    )


# ============================================================================
# OWNER / STAFF ENDPOINTS
# ============================================================================


@router.get("/workspaces/{workspace_id}/schedules")
async def get_schedules(
    workspace_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SchedulingService = Depends(get_scheduling_service),
):
    schedules = service.get_schedules(workspace_id, user_id)
    items = [
        AvailabilityResponse(
            id=s.id,
            day_of_week=s.day_of_week,
            day_name=DAY_NAMES[s.day_of_week],
            start_time=s.start_time,
            end_time=s.end_time,
            is_active=s.is_active,
        )
        for s in schedules
    ]
    return {"success": True, "data": {"schedules": items, "count": len(items)}}


@router.get("/workspaces/{workspace_id}/bookings")
async def get_bookings(
    workspace_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SchedulingService = Depends(get_scheduling_service),
):
    bookings = [_booking_response(b) for b in service.get_bookings(workspace_id, user_id)]
    return {"success": True, "data": {"bookings": bookings, "count": len(bookings)}}


@router.patch("/bookings/{booking_id}")
async def update_booking(
    booking_id: str,
    data: BookingUpdate,
    user_id: str = Depends(get_current_user_id),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Change a booking's status and/or notes; terminal statuses cannot be left"""
    booking = service.update_booking(booking_id, data, user_id)
    return {
        "success": True,
        "message": "Booking updated successfully",
        "data": {"booking": _booking_response(booking)},
    }
