"""Workspace router - setup status and activation"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user_id, require_workspace_member
from ...database import get_db
from .activation import ActivationGate
from .schemas import WorkspaceResponse, WorkspaceStatusResponse

router = APIRouter(prefix="/workspaces", tags=["Workspaces"])


def get_activation_gate(db: Session = Depends(get_db)) -> ActivationGate:
    """Dependency injection for ActivationGate"""
    return ActivationGate(db)


@router.get("/{workspace_id}/status")
async def get_workspace_status(
    workspace_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    gate: ActivationGate = Depends(get_activation_gate),
):
    """Setup progress and whether the workspace can be activated"""
    workspace = require_workspace_member(db, workspace_id, user_id)
    report = gate.evaluate(workspace_id)
    status = WorkspaceStatusResponse(
        workspace=WorkspaceResponse.model_validate(workspace),
        setup_progress=report.progress,
        completion_percentage=report.completion_percentage,
        can_activate=report.ready and not workspace.is_active,
        missing=report.missing,
    )
    return {"success": True, "data": status}


@router.post("/{workspace_id}/activate")
async def activate_workspace(
    workspace_id: str,
    user_id: str = Depends(get_current_user_id),
    gate: ActivationGate = Depends(get_activation_gate),
):
    workspace = gate.activate(workspace_id, user_id)
    return {
        "success": True,
        "message": "Workspace activated successfully",
        "data": {"workspace": WorkspaceResponse.model_validate(workspace)},
    }
