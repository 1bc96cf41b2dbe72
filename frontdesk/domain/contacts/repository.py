"""Contact repository - Database operations for contacts and conversations.

Nothing here commits: callers own the unit of work and decide when to
commit or roll back.
"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Contact, Conversation, Message


class ContactRepository:
    """Repository for contact database operations"""

    @staticmethod
    def find_by_email_or_phone(
        db: Session, workspace_id: str, email: Optional[str], phone: Optional[str]
    ) -> Optional[Contact]:
        """First contact matching email OR phone; a None input never matches"""
        criteria = []
        if email:
            criteria.append(Contact.email == email)
        if phone:
            criteria.append(Contact.phone == phone)
        if not criteria:
            return None

        return (
            db.query(Contact)
            .filter(Contact.workspace_id == workspace_id, or_(*criteria))
            .order_by(Contact.created_at)
            .first()
        )

    @staticmethod
    def create_contact(db: Session, workspace_id: str, **contact_data) -> Contact:
        contact = Contact(workspace_id=workspace_id, **contact_data)
        db.add(contact)
        db.flush()
        return contact

    @staticmethod
    def get_contacts(db: Session, workspace_id: str) -> list[Contact]:
        return (
            db.query(Contact)
            .filter(Contact.workspace_id == workspace_id)
            .order_by(Contact.created_at.desc())
            .all()
        )

    @staticmethod
    def get_conversation(db: Session, workspace_id: str, contact_id: str) -> Optional[Conversation]:
        return (
            db.query(Conversation)
            .filter(Conversation.workspace_id == workspace_id, Conversation.contact_id == contact_id)
            .order_by(Conversation.created_at)
            .first()
        )

    @staticmethod
    def create_conversation(db: Session, workspace_id: str, contact_id: str, **fields) -> Conversation:
        conversation = Conversation(workspace_id=workspace_id, contact_id=contact_id, **fields)
        db.add(conversation)
        db.flush()
        return conversation

    @staticmethod
    def add_message(db: Session, conversation: Conversation, **message_data) -> Message:
        message = Message(conversation_id=conversation.id, **message_data)
        db.add(message)
        db.flush()
        return message
