"""Bearer-token identity for owner and staff endpoints.

Tokens are HS256 JWTs whose `sub` claim is the user id. Account management
lives outside this service; it only verifies and, for tooling, mints tokens.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_HOURS, SECRET_KEY
from .domain.workspaces.repository import WorkspaceRepository
from .exceptions import Forbidden, NotFound
from .models import Workspace

logger = logging.getLogger(__name__)

security = HTTPBearer()


def create_access_token(user_id: str, expires_hours: int = ACCESS_TOKEN_EXPIRE_HOURS) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(hours=expires_hours),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"⚠️ Rejected bearer token: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_id


def require_workspace_member(db: Session, workspace_id: str, user_id: str) -> Workspace:
    """Return the workspace when the user is its owner or a staff member"""
    workspace = WorkspaceRepository.get_workspace(db, workspace_id)
    if not workspace:
        raise NotFound("Workspace not found")
    if workspace.owner_id != user_id and not WorkspaceRepository.is_staff_member(
        db, workspace_id, user_id
    ):
        raise Forbidden("You do not have access to this workspace")
    return workspace
