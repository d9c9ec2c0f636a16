from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict


class AuditLogResponse(BaseModel):
    id: int
    appointment_id: int
    user_id: Optional[int]
    action: str
    old_data: Optional[Any]
    new_data: Optional[Any]
    changed_fields: List[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
