import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key usable in public URLs"""
    return str(uuid.uuid4())


class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(String(36), nullable=False, index=True)
    business_name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=True)
    address = Column(Text, nullable=True)
    timezone = Column(String(100), default="UTC")
    contact_email = Column(String(255), nullable=True)
    # Flipped to true only by the activation gate
    is_active = Column(Boolean, default=False, nullable=False)
    setup_completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    staff = relationship("WorkspaceStaff", back_populates="workspace", cascade="all, delete-orphan")
    service_types = relationship("ServiceType", back_populates="workspace", cascade="all, delete-orphan")
    availability_schedules = relationship(
        "AvailabilitySchedule", back_populates="workspace", cascade="all, delete-orphan"
    )
    contacts = relationship("Contact", back_populates="workspace", cascade="all, delete-orphan")
    integrations = relationship("Integration", back_populates="workspace", cascade="all, delete-orphan")
    forms = relationship("Form", back_populates="workspace", cascade="all, delete-orphan")


class WorkspaceStaff(Base):
    __tablename__ = "workspace_staff"
    __table_args__ = (UniqueConstraint("workspace_id", "user_id", name="uq_workspace_staff_user"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), nullable=False, index=True)
    added_at = Column(DateTime, server_default=func.now())

    workspace = relationship("Workspace", back_populates="staff")


class ServiceType(Base):
    __tablename__ = "service_types"
    __table_args__ = (CheckConstraint("duration_minutes > 0", name="ck_service_types_duration"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    location = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    workspace = relationship("Workspace", back_populates="service_types")


class AvailabilitySchedule(Base):
    __tablename__ = "availability_schedules"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_availability_window"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    workspace = relationship("Workspace", back_populates="availability_schedules")


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(50), nullable=True, index=True)
    source = Column(String(50), default="form")  # form, booking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    workspace = relationship("Workspace", back_populates="contacts")
    conversations = relationship("Conversation", back_populates="contact", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="contact", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part).strip()


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    contact_id = Column(
        String(36), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(String(50), default="active", nullable=False)  # active, closed, archived
    last_message_at = Column(DateTime, server_default=func.now())
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    contact = relationship("Contact", back_populates="conversations")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_id)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_type = Column(String(20), nullable=False)  # contact, staff, system
    sender_id = Column(String(36), nullable=True)
    channel = Column(String(20), nullable=False)  # email, sms, system
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    sent_at = Column(DateTime, server_default=func.now())
    created_at = Column(DateTime, server_default=func.now())

    conversation = relationship("Conversation", back_populates="messages")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    contact_id = Column(
        String(36), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_type_id = Column(
        String(36), ForeignKey("service_types.id", ondelete="CASCADE"), nullable=False
    )
    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(Time, nullable=False)
    # pending -> confirmed | completed | no_show | cancelled
    status = Column(String(50), default="pending", nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    contact = relationship("Contact", back_populates="bookings")
    service_type = relationship("ServiceType")


class Form(Base):
    __tablename__ = "forms"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    form_fields = Column(JSON, default=list, nullable=False)
    linked_service_type_id = Column(
        String(36), ForeignKey("service_types.id", ondelete="SET NULL"), nullable=True
    )
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    workspace = relationship("Workspace", back_populates="forms")


class FormSubmission(Base):
    __tablename__ = "form_submissions"

    id = Column(String(36), primary_key=True, default=generate_id)
    form_id = Column(String(36), ForeignKey("forms.id", ondelete="CASCADE"), nullable=False)
    booking_id = Column(
        String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=True, index=True
    )
    contact_id = Column(
        String(36), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    submission_data = Column(JSON, default=dict, nullable=False)
    status = Column(String(50), default="pending", nullable=False)  # pending, completed, overdue
    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    form = relationship("Form")


class Integration(Base):
    """Per-workspace channel configuration; secret values in `config` are Fernet-encrypted"""

    __tablename__ = "integrations"
    __table_args__ = (UniqueConstraint("workspace_id", "type", name="uq_integrations_workspace_type"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(50), nullable=False)  # email, sms, calendar, storage, webhook
    provider = Column(String(100), nullable=False)  # resend, smtp, twilio
    config = Column(JSON, default=dict, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    workspace = relationship("Workspace", back_populates="integrations")


class AutomationLog(Base):
    """Append-only record of one notification attempt"""

    __tablename__ = "automation_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    workspace_id = Column(
        String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type = Column(String(100), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(36), nullable=False)
    action_taken = Column(String(255), nullable=False)
    status = Column(String(50), default="success", nullable=False)  # success, failed, skipped
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
