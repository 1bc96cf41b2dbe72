"""Engagement repository - forms, bookings and submissions written by public flows.

Like the contact repository, nothing here commits.
"""

from datetime import date, datetime, time
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, Form, FormSubmission


class EngagementRepository:
    @staticmethod
    def get_form(db: Session, form_id: str) -> Optional[Form]:
        return db.query(Form).filter(Form.id == form_id).first()

    @staticmethod
    def get_linked_forms(db: Session, workspace_id: str, service_type_id: str) -> list[Form]:
        """Active forms to send out whenever `service_type_id` is booked"""
        return (
            db.query(Form)
            .filter(
                Form.workspace_id == workspace_id,
                Form.linked_service_type_id == service_type_id,
                Form.is_active.is_(True),
            )
            .order_by(Form.created_at)
            .all()
        )

    @staticmethod
    def create_booking(
        db: Session,
        workspace_id: str,
        contact_id: str,
        service_type_id: str,
        booking_date: date,
        booking_time: time,
        notes: Optional[str] = None,
    ) -> Booking:
        booking = Booking(
            workspace_id=workspace_id,
            contact_id=contact_id,
            service_type_id=service_type_id,
            booking_date=booking_date,
            booking_time=booking_time,
            status="pending",
            notes=notes,
        )
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def create_form_submission(
        db: Session,
        form_id: str,
        contact_id: str,
        submission_data: Optional[dict] = None,
        booking_id: Optional[str] = None,
        submitted_at: Optional[datetime] = None,
    ) -> FormSubmission:
        submission = FormSubmission(
            form_id=form_id,
            contact_id=contact_id,
            booking_id=booking_id,
            submission_data=submission_data or {},
            status="pending",
            submitted_at=submitted_at,
        )
        db.add(submission)
        db.flush()
        return submission
