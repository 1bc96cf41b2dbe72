"""Contact directory - workspace-scoped customer identity resolution.

resolve() is find-or-create without compare-and-swap: two concurrent first
submissions with the same new email can both miss the lookup and insert
two contacts. The same holds for ensure_conversation(). Neither is backed by
a uniqueness constraint; duplicates are tolerated by LIMIT 1 lookups.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Contact, Conversation
from .repository import ContactRepository

logger = logging.getLogger(__name__)

PLACEHOLDER_FIRST_NAME = "Unknown"
PLACEHOLDER_LAST_NAME = "User"


def is_placeholder_name(first_name: Optional[str]) -> bool:
    return not first_name or first_name.strip() == PLACEHOLDER_FIRST_NAME


class ContactDirectory:
    """Resolves contacts and owns the one-conversation-per-contact rule"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ContactRepository()

    def resolve(
        self,
        workspace_id: str,
        email: Optional[str],
        phone: Optional[str],
        first_name: Optional[str],
        last_name: Optional[str],
        source: str,
    ) -> Contact:
        """
        Find the workspace contact matching email OR phone, or create one.

        A match is refreshed only when a real (non-placeholder) first name is
        supplied: the name is overwritten and missing email/phone are filled.
        Existing email/phone values are never replaced with None.
        """
        contact = self.repo.find_by_email_or_phone(self.db, workspace_id, email, phone)

        if contact:
            if not is_placeholder_name(first_name):
                contact.first_name = first_name
                contact.last_name = last_name
                contact.email = contact.email or email
                contact.phone = contact.phone or phone
                self.db.flush()
            logger.info(f"👤 Reusing contact {contact.id} in workspace {workspace_id}")
            return contact

        contact = self.repo.create_contact(
            self.db,
            workspace_id,
            first_name=first_name or PLACEHOLDER_FIRST_NAME,
            last_name=last_name or PLACEHOLDER_LAST_NAME,
            email=email,
            phone=phone,
            source=source,
        )
        logger.info(f"👤 Created contact {contact.id} ({source}) in workspace {workspace_id}")
        return contact

    def ensure_conversation(self, workspace_id: str, contact: Contact) -> tuple[Conversation, bool]:
        """
        Return the contact's single conversation, creating it when absent.

        Re-engagement reopens a closed conversation and bumps last_message_at
        so it resurfaces at the top of the inbox. Archived threads keep their
        status but still move to the top.
        """
        now = datetime.utcnow()
        conversation = self.repo.get_conversation(self.db, workspace_id, contact.id)

        if conversation is None:
            conversation = self.repo.create_conversation(
                self.db, workspace_id, contact.id, status="active", last_message_at=now
            )
            return conversation, True

        if conversation.status == "closed":
            logger.info(f"💬 Reopening conversation {conversation.id}")
            conversation.status = "active"
        conversation.last_message_at = now
        conversation.updated_at = now
        self.db.flush()
        return conversation, False
