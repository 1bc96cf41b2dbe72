"""
Notification dispatcher - delivers an engagement event over every enabled
channel and records one AutomationLog row per attempt.

Dispatch runs after the engagement transaction has committed. A failing
channel never stops the next one and nothing propagates to the caller.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ...exceptions import ChannelUnavailable
from ...models import AutomationLog
from ..workspaces.repository import WorkspaceRepository
from .channels import EmailChannel, IntegrationSettings, SmsChannel
from .events import EVENT_KINDS, EngagementEvent

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fan an event out to the workspace's active email and SMS integrations"""

    def __init__(
        self,
        session_factory: sessionmaker,
        email_channel: Optional[EmailChannel] = None,
        sms_channel: Optional[SmsChannel] = None,
    ):
        self.session_factory = session_factory
        self.channels = {
            "email": email_channel or EmailChannel(),
            "sms": sms_channel or SmsChannel(),
        }

    def _load_integrations(self, workspace_id: str) -> dict[str, IntegrationSettings]:
        db = self.session_factory()
        try:
            integrations = WorkspaceRepository.get_active_communication_integrations(db, workspace_id)
            # First active integration per type wins
            settings: dict[str, IntegrationSettings] = {}
            for integration in integrations:
                settings.setdefault(integration.type, IntegrationSettings.from_model(integration))
            return settings
        finally:
            db.close()

    async def dispatch(self, event: EngagementEvent) -> list[str]:
        """
        Attempt delivery on each enabled channel.

        Returns the status recorded per attempt ("success", "failed" or
        "skipped"); channels without an integration or without a contact
        address for the recipient are not attempted and leave no log.
        """
        kind_info = EVENT_KINDS[event.kind]
        integrations = self._load_integrations(event.workspace_id)
        if not integrations:
            logger.info(f"📭 No communication integrations for workspace {event.workspace_id}, skipping {event.kind}")
            return []

        statuses = []
        targets = (
            ("email", event.contact_email, kind_info.email_action),
            ("sms", event.contact_phone, kind_info.sms_action),
        )
        for channel_name, address, action in targets:
            settings = integrations.get(channel_name)
            if settings is None or not address:
                continue
            status, error = await self._attempt(channel_name, settings, event)
            self._record(event, kind_info.event_type, kind_info.entity_type, action, status, error)
            statuses.append(status)
        return statuses

    async def _attempt(
        self, channel_name: str, settings: IntegrationSettings, event: EngagementEvent
    ) -> tuple[str, Optional[str]]:
        channel = self.channels[channel_name]
        try:
            await channel.send(settings, event)
        except ChannelUnavailable as e:
            logger.warning(f"⚠️ {channel_name} unavailable for workspace {event.workspace_id}: {e}")
            return "skipped", str(e)
        except Exception as e:
            logger.error(f"❌ {channel_name} delivery failed for {event.kind} ({event.entity_id}): {e}")
            return "failed", str(e)
        return "success", None

    def _record(
        self,
        event: EngagementEvent,
        event_type: str,
        entity_type: str,
        action: str,
        status: str,
        error: Optional[str],
    ) -> None:
        db = self.session_factory()
        try:
            db.add(
                AutomationLog(
                    workspace_id=event.workspace_id,
                    event_type=event_type,
                    entity_type=entity_type,
                    entity_id=event.entity_id,
                    action_taken=action,
                    status=status,
                    error_message=error,
                )
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to write automation log {action} for {event.entity_id}: {e}")
        finally:
            db.close()
