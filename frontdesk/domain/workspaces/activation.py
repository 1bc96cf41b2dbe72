"""
Activation gate - a workspace goes live only when it can take bookings.

Communication channels are not required: a workspace without email or SMS
integrations still activates, it just sends no notifications.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ...exceptions import Conflict, Forbidden, NotFound, SetupIncomplete
from ...models import Workspace
from .repository import WorkspaceRepository

logger = logging.getLogger(__name__)

MISSING_SERVICE_TYPE = "At least one service/booking type must be created"
MISSING_AVAILABILITY = "Availability schedule must be defined"


@dataclass
class ActivationReport:
    ready: bool
    missing: list[str]
    progress: dict[str, bool] = field(default_factory=dict)

    @property
    def completion_percentage(self) -> int:
        if not self.progress:
            return 0
        completed = sum(1 for done in self.progress.values() if done)
        return round(completed / len(self.progress) * 100)


class ActivationGate:
    def __init__(self, db: Session):
        self.db = db
        self.repo = WorkspaceRepository()

    def evaluate(self, workspace_id: str) -> ActivationReport:
        """Check activation requirements without changing anything"""
        has_service_type = self.repo.count_active_service_types(self.db, workspace_id) > 0
        has_availability = self.repo.count_active_schedules(self.db, workspace_id) > 0

        missing = []
        if not has_service_type:
            missing.append(MISSING_SERVICE_TYPE)
        if not has_availability:
            missing.append(MISSING_AVAILABILITY)

        progress = {
            "workspace_created": True,
            "communication_configured": bool(
                self.repo.get_active_communication_integrations(self.db, workspace_id)
            ),
            "booking_types_created": has_service_type,
            "availability_defined": has_availability,
            "forms_uploaded": self.repo.count_active_forms(self.db, workspace_id) > 0,
            "staff_added": self.repo.count_staff(self.db, workspace_id) > 0,
        }
        return ActivationReport(ready=not missing, missing=missing, progress=progress)

    def activate(self, workspace_id: str, user_id: str) -> Workspace:
        """
        Move a workspace from setup to active. One-way.

        Raises:
            NotFound: Workspace does not exist
            Forbidden: Caller is not the owner
            Conflict: Workspace is already active
            SetupIncomplete: Requirements unmet; nothing is written
        """
        workspace = self.repo.get_workspace(self.db, workspace_id)
        if not workspace:
            raise NotFound("Workspace not found")
        if workspace.owner_id != user_id:
            raise Forbidden("Only the workspace owner can activate the workspace")
        if workspace.is_active:
            raise Conflict("Workspace is already active")

        report = self.evaluate(workspace_id)
        if not report.ready:
            logger.info(f"🚫 Activation rejected for workspace {workspace_id}: {report.missing}")
            raise SetupIncomplete(report.missing)

        workspace.is_active = True
        workspace.setup_completed = True
        self.db.commit()
        self.db.refresh(workspace)

        logger.info(f"🚀 Workspace {workspace_id} activated by {user_id}")
        return workspace
