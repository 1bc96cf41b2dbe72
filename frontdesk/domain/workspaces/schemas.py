"""Workspace domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class WorkspaceResponse(BaseModel):
    id: str
    owner_id: str
    business_name: str
    address: Optional[str] = None
    timezone: Optional[str] = None
    contact_email: Optional[str] = None
    is_active: bool
    setup_completed: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WorkspaceStatusResponse(BaseModel):
    workspace: WorkspaceResponse
    setup_progress: dict[str, bool]
    completion_percentage: int
    can_activate: bool
    missing: list[str]
