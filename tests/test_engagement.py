"""Tests for the engagement transaction: bookings, contact forms and form submissions."""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from conftest import make_form, make_service_type, make_workspace
from frontdesk.domain.contacts.repository import ContactRepository
from frontdesk.domain.engagement.schemas import (
    BookingPayload,
    ContactFormPayload,
    ContactIdentity,
    FormPayload,
)
from frontdesk.domain.engagement.service import EngagementTransaction, workspace_now
from frontdesk.exceptions import Forbidden, InvalidInput, NotFound
from frontdesk.models import Booking, Contact, Conversation, FormSubmission, Message, Workspace

ANA = ContactIdentity(first_name="Ana", last_name="Silva", email="ana@example.com")


def _booking(service_type, day, at=time(9, 0), **extra) -> BookingPayload:
    return BookingPayload(service_type_id=service_type.id, booking_date=day, booking_time=at, **extra)


def _counts(db) -> tuple[int, int, int, int]:
    return (
        db.query(Contact).count(),
        db.query(Conversation).count(),
        db.query(Booking).count(),
        db.query(Message).count(),
    )


class TestBooking:
    def test_booking_creates_contact_conversation_booking_and_system_message(
        self, db, workspace, service_type, monday_schedule, next_monday
    ):
        result = EngagementTransaction(db).submit(workspace.id, ANA, _booking(service_type, next_monday))

        assert _counts(db) == (1, 1, 1, 1)
        booking = result.primary_record
        assert booking.status == "pending"
        assert booking.contact_id == result.contact.id
        assert result.conversation_created is True
        assert result.message.sender_type == "system"
        assert result.message.content == (
            f"New booking created: Consultation on {next_monday.isoformat()} at 09:00"
        )

    def test_second_booking_reuses_contact_and_conversation(
        self, db, workspace, service_type, monday_schedule, next_monday
    ):
        engagement = EngagementTransaction(db)
        first = engagement.submit(workspace.id, ANA, _booking(service_type, next_monday, time(9, 0)))
        second = engagement.submit(workspace.id, ANA, _booking(service_type, next_monday, time(9, 30)))

        assert second.contact.id == first.contact.id
        assert second.conversation.id == first.conversation.id
        assert second.conversation_created is False
        assert _counts(db) == (1, 1, 2, 2)

    def test_same_slot_can_be_booked_twice(self, db, workspace, service_type, monday_schedule, next_monday):
        engagement = EngagementTransaction(db)
        engagement.submit(workspace.id, ANA, _booking(service_type, next_monday))
        other = ContactIdentity(first_name="Bo", last_name="Chen", phone="5550002222")
        engagement.submit(workspace.id, other, _booking(service_type, next_monday))

        assert db.query(Booking).count() == 2

    def test_booking_event_describes_the_appointment(
        self, db, workspace, service_type, monday_schedule, next_monday
    ):
        result = EngagementTransaction(db).submit(workspace.id, ANA, _booking(service_type, next_monday))

        [event] = result.events
        assert event.kind == "booking_confirmation"
        assert event.entity_id == result.primary_record.id
        assert event.contact_email == "ana@example.com"
        assert event.contact_name == "Ana Silva"
        assert event.service_name == "Consultation"
        assert event.booking_time == "09:00"
        assert event.booking_date == next_monday.strftime("%A, %B %d, %Y")
        assert event.reply_to == workspace.contact_email

    def test_linked_forms_get_pending_submissions_and_requests(
        self, db, workspace, service_type, monday_schedule, next_monday
    ):
        form = make_form(db, workspace, linked_service_type_id=service_type.id)
        make_form(db, workspace, name="Unlinked")

        result = EngagementTransaction(db).submit(workspace.id, ANA, _booking(service_type, next_monday))

        [submission] = db.query(FormSubmission).all()
        assert submission.form_id == form.id
        assert submission.booking_id == result.primary_record.id
        assert submission.status == "pending"

        kinds = [e.kind for e in result.events]
        assert kinds == ["booking_confirmation", "form_request"]
        assert result.events[1].entity_id == submission.id
        assert f"/forms/{form.id}?submission={submission.id}" in result.events[1].form_link

    def test_unknown_workspace(self, db, service_type, next_monday):
        with pytest.raises(NotFound):
            EngagementTransaction(db).submit("missing", ANA, _booking(service_type, next_monday))

    def test_inactive_workspace(self, db, next_monday):
        workspace = make_workspace(db, is_active=False)
        service_type = make_service_type(db, workspace)
        with pytest.raises(Forbidden, match="Bookings are not currently available"):
            EngagementTransaction(db).submit(workspace.id, ANA, _booking(service_type, next_monday))

    def test_unknown_service_type(self, db, workspace, next_monday):
        payload = BookingPayload(service_type_id="missing", booking_date=next_monday, booking_time=time(9, 0))
        with pytest.raises(NotFound, match="Service type not found"):
            EngagementTransaction(db).submit(workspace.id, ANA, payload)

    def test_inactive_service_type(self, db, workspace, monday_schedule, next_monday):
        service_type = make_service_type(db, workspace, is_active=False)
        with pytest.raises(Forbidden):
            EngagementTransaction(db).submit(workspace.id, ANA, _booking(service_type, next_monday))

    def test_email_or_phone_is_required(self, db, workspace, service_type, monday_schedule, next_monday):
        anonymous = ContactIdentity(first_name="Ana", last_name="Silva")
        with pytest.raises(InvalidInput, match="Either email or phone number is required"):
            EngagementTransaction(db).submit(workspace.id, anonymous, _booking(service_type, next_monday))
        assert _counts(db) == (0, 0, 0, 0)

    def test_slot_outside_availability_is_rejected(
        self, db, workspace, service_type, monday_schedule, next_monday
    ):
        with pytest.raises(InvalidInput):
            EngagementTransaction(db).submit(workspace.id, ANA, _booking(service_type, next_monday, time(9, 45)))
        with pytest.raises(InvalidInput):
            tuesday = next_monday + timedelta(days=1)
            EngagementTransaction(db).submit(workspace.id, ANA, _booking(service_type, tuesday))
        assert _counts(db) == (0, 0, 0, 0)

    def test_past_booking_is_rejected(self, db, workspace, service_type, monday_schedule):
        last_monday = date.today() - timedelta(days=date.today().weekday() + 7)
        with pytest.raises(InvalidInput, match="past"):
            EngagementTransaction(db).submit(workspace.id, ANA, _booking(service_type, last_monday))

    def test_failure_after_contact_resolution_leaves_nothing_behind(
        self, db, workspace, service_type, monday_schedule, next_monday, monkeypatch
    ):
        def broken_add_message(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(ContactRepository, "add_message", staticmethod(broken_add_message))

        with pytest.raises(RuntimeError):
            EngagementTransaction(db).submit(workspace.id, ANA, _booking(service_type, next_monday))

        assert _counts(db) == (0, 0, 0, 0)


class TestContactForm:
    def test_contact_form_records_message_and_welcome_event(self, db, workspace):
        identity = ContactIdentity(first_name="Ana", email="ana@example.com")
        result = EngagementTransaction(db).submit(
            workspace.id, identity, ContactFormPayload(message="Do you take new patients?")
        )

        assert result.primary_record is None
        assert result.message.sender_type == "contact"
        assert result.message.sender_id == result.contact.id
        assert result.message.content == "Do you take new patients?"
        assert result.contact.source == "form"
        [event] = result.events
        assert event.kind == "welcome"
        assert event.entity_id == result.contact.id
        assert event.contact_name == "Ana"

    def test_empty_message_defaults_to_new_inquiry(self, db, workspace):
        result = EngagementTransaction(db).submit(workspace.id, ANA, ContactFormPayload())
        assert result.message.content == "New inquiry"

    def test_contact_form_on_inactive_workspace(self, db):
        workspace = make_workspace(db, is_active=False)
        with pytest.raises(Forbidden, match="not currently accepting inquiries"):
            EngagementTransaction(db).submit(workspace.id, ANA, ContactFormPayload())

    def test_closed_conversation_is_reopened(self, db, workspace):
        engagement = EngagementTransaction(db)
        first = engagement.submit(workspace.id, ANA, ContactFormPayload(message="Hello"))
        first.conversation.status = "closed"
        db.commit()

        second = engagement.submit(workspace.id, ANA, ContactFormPayload(message="Hello again"))

        assert second.conversation.id == first.conversation.id
        assert second.conversation.status == "active"
        assert db.query(Message).filter(Message.conversation_id == first.conversation.id).count() == 2


class TestFormSubmission:
    def test_form_submission_is_stored_with_answers(self, db, workspace):
        form = make_form(db, workspace)
        payload = FormPayload(form_id=form.id, submission_data={"allergies": "none"})

        result = EngagementTransaction(db).submit(workspace.id, ANA, payload)

        submission = result.primary_record
        assert submission.form_id == form.id
        assert submission.submission_data == {"allergies": "none"}
        assert submission.status == "pending"
        assert submission.submitted_at is not None
        assert result.message.content == "Submitted form: Intake Form"
        assert [e.kind for e in result.events] == ["welcome"]

    def test_submitted_message_wins_over_default(self, db, workspace):
        form = make_form(db, workspace)
        payload = FormPayload(form_id=form.id, message="See attached answers")
        result = EngagementTransaction(db).submit(workspace.id, ANA, payload)
        assert result.message.content == "See attached answers"

    def test_inactive_form_is_not_found(self, db, workspace):
        form = make_form(db, workspace, is_active=False)
        with pytest.raises(NotFound, match="Form not found"):
            EngagementTransaction(db).submit(workspace.id, ANA, FormPayload(form_id=form.id))

    def test_form_from_another_workspace_is_not_found(self, db, workspace):
        other = make_workspace(db, business_name="Other Co")
        form = make_form(db, other)
        with pytest.raises(NotFound):
            EngagementTransaction(db).submit(workspace.id, ANA, FormPayload(form_id=form.id))


class TestWorkspaceClock:
    def _utc_now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def test_named_zone_is_used(self):
        workspace = Workspace(id="ws-nz", timezone="Pacific/Auckland")

        local = workspace_now(workspace)

        expected = datetime.now(ZoneInfo("Pacific/Auckland")).replace(tzinfo=None)
        assert abs(local - expected) < timedelta(seconds=5)
        # Auckland is UTC+12 or UTC+13
        assert abs(local - self._utc_now()) > timedelta(hours=11)

    def test_unknown_zone_falls_back_to_utc(self):
        workspace = Workspace(id="ws-x", timezone="Mars/Olympus_Mons")

        assert abs(workspace_now(workspace) - self._utc_now()) < timedelta(seconds=5)

    def test_missing_zone_is_utc(self):
        workspace = Workspace(id="ws-y", timezone=None)

        assert abs(workspace_now(workspace) - self._utc_now()) < timedelta(seconds=5)
