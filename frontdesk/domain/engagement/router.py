"""Engagement router - public booking, contact form and custom form submissions"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ..notifications.queue import NotificationQueue, get_notification_queue
from .schemas import PublicBookingRequest, PublicContactRequest, PublicFormSubmissionRequest
from .service import EngagementResult, EngagementTransaction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["Public Engagement"])


def get_engagement_transaction(db: Session = Depends(get_db)) -> EngagementTransaction:
    """Dependency injection for EngagementTransaction"""
    return EngagementTransaction(db)


async def _enqueue_events(queue: NotificationQueue, result: EngagementResult) -> None:
    for event in result.events:
        await queue.enqueue(event)


@router.post("/bookings", status_code=201)
async def create_public_booking(
    data: PublicBookingRequest,
    engagement: EngagementTransaction = Depends(get_engagement_transaction),
    queue: NotificationQueue = Depends(get_notification_queue),
):
    """Book a slot from the public booking page (no authentication)"""
    result = engagement.submit(data.workspace_id, data.identity(), data.payload())
    await _enqueue_events(queue, result)

    booking = result.primary_record
    return {
        "success": True,
        "message": "Booking created successfully! You will receive a confirmation shortly.",
        "data": {
            "booking": {
                "id": booking.id,
                "service_type": booking.service_type.name,
                "booking_date": booking.booking_date,
                "booking_time": booking.booking_time,
                "duration_minutes": booking.service_type.duration_minutes,
                "location": booking.service_type.location,
                "status": booking.status,
            },
            "contact": {
                "id": result.contact.id,
                "name": result.contact.full_name,
            },
        },
    }


@router.post("/contact", status_code=201)
async def submit_contact_form(
    data: PublicContactRequest,
    engagement: EngagementTransaction = Depends(get_engagement_transaction),
    queue: NotificationQueue = Depends(get_notification_queue),
):
    """Default website contact form"""
    result = engagement.submit(data.workspace_id, data.identity(), data.payload())
    await _enqueue_events(queue, result)
    return {
        "success": True,
        "message": "Message sent successfully",
        "data": {"contact_id": result.contact.id, "conversation_id": result.conversation.id},
    }


@router.post("/forms/{form_id}/submissions", status_code=201)
async def submit_public_form(
    form_id: str,
    data: PublicFormSubmissionRequest,
    engagement: EngagementTransaction = Depends(get_engagement_transaction),
    queue: NotificationQueue = Depends(get_notification_queue),
):
    """Custom form submission; the workspace is taken from the form"""
    workspace_id = engagement.workspace_for_form(form_id)
    result = engagement.submit(workspace_id, data.identity(), data.payload(form_id))
    await _enqueue_events(queue, result)
    return {
        "success": True,
        "message": "Form submitted successfully",
        "data": {"submission_id": result.primary_record.id, "contact_id": result.contact.id},
    }
