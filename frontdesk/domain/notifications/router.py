"""Notifications router - automation log for owners and staff"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user_id, require_workspace_member
from ...database import get_db
from .repository import NotificationRepository
from .schemas import AutomationLogResponse, AutomationStatus

router = APIRouter(tags=["Notifications"])


@router.get("/workspaces/{workspace_id}/automation-logs")
async def get_automation_logs(
    workspace_id: str,
    status: Optional[AutomationStatus] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Every notification attempt recorded for the workspace, newest first"""
    require_workspace_member(db, workspace_id, user_id)
    logs = NotificationRepository.get_automation_logs(db, workspace_id, status=status, limit=limit)
    items = [AutomationLogResponse.model_validate(log) for log in logs]
    return {"success": True, "data": {"logs": items, "count": len(items)}}
