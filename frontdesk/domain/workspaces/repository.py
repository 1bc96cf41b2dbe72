"""Workspace repository - Database reads shared by every domain"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import (
    AvailabilitySchedule,
    Form,
    Integration,
    ServiceType,
    Workspace,
    WorkspaceStaff,
)

COMMUNICATION_TYPES = ("email", "sms")


class WorkspaceRepository:
    """Repository for workspace database operations"""

    @staticmethod
    def get_workspace(db: Session, workspace_id: str) -> Optional[Workspace]:
        return db.query(Workspace).filter(Workspace.id == workspace_id).first()

    @staticmethod
    def is_staff_member(db: Session, workspace_id: str, user_id: str) -> bool:
        return (
            db.query(WorkspaceStaff.id)
            .filter(WorkspaceStaff.workspace_id == workspace_id, WorkspaceStaff.user_id == user_id)
            .first()
            is not None
        )

    @staticmethod
    def count_active_service_types(db: Session, workspace_id: str) -> int:
        return (
            db.query(func.count(ServiceType.id))
            .filter(ServiceType.workspace_id == workspace_id, ServiceType.is_active.is_(True))
            .scalar()
        )

    @staticmethod
    def count_active_schedules(db: Session, workspace_id: str) -> int:
        return (
            db.query(func.count(AvailabilitySchedule.id))
            .filter(
                AvailabilitySchedule.workspace_id == workspace_id,
                AvailabilitySchedule.is_active.is_(True),
            )
            .scalar()
        )

    @staticmethod
    def count_active_forms(db: Session, workspace_id: str) -> int:
        return (
            db.query(func.count(Form.id))
            .filter(Form.workspace_id == workspace_id, Form.is_active.is_(True))
            .scalar()
        )

    @staticmethod
    def count_staff(db: Session, workspace_id: str) -> int:
        return (
            db.query(func.count(WorkspaceStaff.id))
            .filter(WorkspaceStaff.workspace_id == workspace_id)
            .scalar()
        )

    @staticmethod
    def get_active_communication_integrations(db: Session, workspace_id: str) -> list[Integration]:
        return (
            db.query(Integration)
            .filter(
                Integration.workspace_id == workspace_id,
                Integration.is_active.is_(True),
                Integration.type.in_(COMMUNICATION_TYPES),
            )
            .all()
        )
