from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

AutomationStatus = Literal["success", "failed", "skipped"]


class AutomationLogResponse(BaseModel):
    id: str
    event_type: str
    entity_type: str
    entity_id: str
    action_taken: str
    status: str
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
