"""
Engagement transaction - turns a public booking, contact form or custom form
submission into a Contact, a Conversation, the primary record and one Message.

Everything is written in a single unit of work. Notification events are
returned to the caller and must only be dispatched after the commit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from ...config import FRONTEND_URL
from ...exceptions import Forbidden, InvalidInput, NotFound
from ...models import Booking, Contact, Conversation, Form, FormSubmission, Message, ServiceType, Workspace
from ..contacts.repository import ContactRepository
from ..contacts.service import ContactDirectory
from ..notifications.events import EngagementEvent
from ..scheduling.planner import format_slot, is_slot_available
from ..scheduling.repository import SchedulingRepository
from ..workspaces.repository import WorkspaceRepository
from .repository import EngagementRepository
from .schemas import BookingPayload, ContactFormPayload, ContactIdentity, EngagementPayload, FormPayload

logger = logging.getLogger(__name__)


@dataclass
class EngagementResult:
    contact: Contact
    conversation: Conversation
    message: Message
    # Booking, FormSubmission, or None for a plain contact form
    primary_record: Optional[object] = None
    conversation_created: bool = False
    events: list[EngagementEvent] = field(default_factory=list)


def workspace_now(workspace: Workspace) -> datetime:
    """Current wall-clock time in the workspace timezone (naive)"""
    tz = timezone.utc
    if workspace.timezone and workspace.timezone != "UTC":
        try:
            tz = ZoneInfo(workspace.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"⚠️ Unknown timezone {workspace.timezone!r} for workspace {workspace.id}, using UTC")
    return datetime.now(tz).replace(tzinfo=None)


def format_booking_date(value) -> str:
    return value.strftime("%A, %B %d, %Y")


class EngagementTransaction:
    """Atomic write path shared by every public engagement flow"""

    def __init__(self, db: Session):
        self.db = db
        self.contacts = ContactDirectory(db)
        self.repo = EngagementRepository()

    # ------------------------------------------------------------------
    # Pre-checks (no writes)
    # ------------------------------------------------------------------

    def _load_workspace(self, workspace_id: str, inactive_message: str) -> Workspace:
        workspace = WorkspaceRepository.get_workspace(self.db, workspace_id)
        if not workspace:
            raise NotFound("Workspace not found")
        if not workspace.is_active:
            raise Forbidden(inactive_message)
        return workspace

    def _check_booking(
        self, workspace: Workspace, identity: ContactIdentity, payload: BookingPayload
    ) -> ServiceType:
        service_type = SchedulingRepository.get_service_type(self.db, workspace.id, payload.service_type_id)
        if not service_type:
            raise NotFound("Service type not found")
        if not service_type.is_active:
            raise Forbidden("This service is not currently available for booking")

        if not identity.email and not identity.phone:
            raise InvalidInput("Either email or phone number is required")

        requested = datetime.combine(payload.booking_date, payload.booking_time)
        if requested < workspace_now(workspace):
            raise InvalidInput("Cannot book a time in the past")

        schedules = SchedulingRepository.get_active_schedules(self.db, workspace.id)
        if not is_slot_available(
            schedules, payload.booking_date, payload.booking_time, service_type.duration_minutes
        ):
            raise InvalidInput("The selected time slot is not available")

        return service_type

    def _check_form(self, workspace: Workspace, payload: FormPayload) -> Form:
        form = self.repo.get_form(self.db, payload.form_id)
        if not form or form.workspace_id != workspace.id or not form.is_active:
            raise NotFound("Form not found")
        return form

    def workspace_for_form(self, form_id: str) -> str:
        form = self.repo.get_form(self.db, form_id)
        if not form:
            raise NotFound("Form not found")
        return form.workspace_id

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def submit(self, workspace_id: str, identity: ContactIdentity, payload: EngagementPayload) -> EngagementResult:
        """
        Validate, then write contact, conversation, record and message atomically.

        Raises:
            NotFound: Workspace, service type or form missing
            Forbidden: Workspace or service type inactive
            InvalidInput: Booking without email/phone, in the past, or outside the offered slots
        """
        if isinstance(payload, BookingPayload):
            workspace = self._load_workspace(workspace_id, "Bookings are not currently available")
            service_type = self._check_booking(workspace, identity, payload)
            form = None
            source = "booking"
        elif isinstance(payload, FormPayload):
            workspace = self._load_workspace(workspace_id, "This workspace is not currently accepting inquiries")
            form = self._check_form(workspace, payload)
            service_type = None
            source = "form"
        elif isinstance(payload, ContactFormPayload):
            workspace = self._load_workspace(workspace_id, "This workspace is not currently accepting inquiries")
            form = service_type = None
            source = "form"
        else:
            raise InvalidInput(f"Unsupported engagement payload: {type(payload).__name__}")

        try:
            contact = self.contacts.resolve(
                workspace.id,
                email=identity.email,
                phone=identity.phone,
                first_name=identity.first_name,
                last_name=identity.last_name,
                source=source,
            )
            conversation, created = self.contacts.ensure_conversation(workspace.id, contact)

            linked_submissions: list[FormSubmission] = []
            if service_type is not None:
                primary = self.repo.create_booking(
                    self.db,
                    workspace.id,
                    contact.id,
                    service_type.id,
                    payload.booking_date,
                    payload.booking_time,
                    notes=payload.notes,
                )
                for linked_form in self.repo.get_linked_forms(self.db, workspace.id, service_type.id):
                    submission = self.repo.create_form_submission(
                        self.db, linked_form.id, contact.id, booking_id=primary.id
                    )
                    linked_submissions.append(submission)
                message = ContactRepository.add_message(
                    self.db,
                    conversation,
                    sender_type="system",
                    channel="system",
                    content=(
                        f"New booking created: {service_type.name} on "
                        f"{payload.booking_date.isoformat()} at {format_slot(payload.booking_time)}"
                    ),
                )
            elif form is not None:
                primary = self.repo.create_form_submission(
                    self.db,
                    form.id,
                    contact.id,
                    submission_data=payload.submission_data,
                    submitted_at=datetime.utcnow(),
                )
                message = ContactRepository.add_message(
                    self.db,
                    conversation,
                    sender_type="contact",
                    sender_id=contact.id,
                    channel="system",
                    content=payload.message or f"Submitted form: {form.name}",
                )
            else:
                primary = None
                message = ContactRepository.add_message(
                    self.db,
                    conversation,
                    sender_type="contact",
                    sender_id=contact.id,
                    channel="system",
                    content=payload.message or "New inquiry",
                )

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Engagement rolled back for workspace {workspace.id}: {e}")
            raise

        logger.info(f"✅ {source.capitalize()} engagement recorded for contact {contact.id} in workspace {workspace.id}")

        if service_type is not None:
            events = [self._booking_event(workspace, contact, service_type, primary)]
            events.extend(
                self._form_request_event(workspace, contact, submission, primary)
                for submission in linked_submissions
            )
        else:
            events = [self._welcome_event(workspace, contact, identity)]

        return EngagementResult(
            contact=contact,
            conversation=conversation,
            message=message,
            primary_record=primary,
            conversation_created=created,
            events=events,
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _base_event(self, workspace: Workspace, contact: Contact) -> dict:
        return {
            "workspace_id": workspace.id,
            "contact_name": contact.full_name,
            "contact_email": contact.email,
            "contact_phone": contact.phone,
            "business_name": workspace.business_name,
            "reply_to": workspace.contact_email,
        }

    def _welcome_event(self, workspace: Workspace, contact: Contact, identity: ContactIdentity) -> EngagementEvent:
        data = self._base_event(workspace, contact)
        # Greet with the name just submitted, falling back to the stored one
        data["contact_name"] = identity.first_name or contact.first_name or ""
        return EngagementEvent(kind="welcome", entity_id=contact.id, **data)

    def _booking_event(
        self, workspace: Workspace, contact: Contact, service_type: ServiceType, booking: Booking
    ) -> EngagementEvent:
        return EngagementEvent(
            kind="booking_confirmation",
            entity_id=booking.id,
            service_name=service_type.name,
            booking_date=format_booking_date(booking.booking_date),
            booking_time=format_slot(booking.booking_time),
            duration_minutes=service_type.duration_minutes,
            location=service_type.location,
            **self._base_event(workspace, contact),
        )

    def _form_request_event(
        self, workspace: Workspace, contact: Contact, submission: FormSubmission, booking: Booking
    ) -> EngagementEvent:
        return EngagementEvent(
            kind="form_request",
            entity_id=submission.id,
            form_name=submission.form.name,
            form_link=f"{FRONTEND_URL}/forms/{submission.form_id}?submission={submission.id}",
            booking_date=format_booking_date(booking.booking_date),
            booking_time=format_slot(booking.booking_time),
            **self._base_event(workspace, contact),
        )
