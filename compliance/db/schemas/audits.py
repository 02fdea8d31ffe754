import uuid
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict

from .common import UtcDateTime


class AuditLog(BaseModel):
    id: uuid.UUID
    practice_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    entity_type: str
    entity_id: uuid.UUID
    action: str
    before_data: Optional[Any] = None
    after_data: Optional[Any] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)
