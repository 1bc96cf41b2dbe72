"""Automation log reads for the owner dashboard"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import AutomationLog


class NotificationRepository:
    @staticmethod
    def get_automation_logs(
        db: Session,
        workspace_id: str,
        status: Optional[str] = None,
        limit: int = 100,
    ) -> list[AutomationLog]:
        query = db.query(AutomationLog).filter(AutomationLog.workspace_id == workspace_id)
        if status:
            query = query.filter(AutomationLog.status == status)
        return query.order_by(AutomationLog.created_at.desc()).limit(limit).all()
