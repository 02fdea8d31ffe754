import uuid
from typing import Optional, Dict, List, Literal
from pydantic import BaseModel, ConfigDict

from .common import UtcDateTime

RequestType = Literal["insurance", "medical_report", "letter", "copy_notes", "solicitor_request", "other"]
RequestStatus = Literal["received", "assigned", "in_progress", "sent"]


class MedicalRequestBase(BaseModel):
    request_type: RequestType
    notes: Optional[str] = None
    emis_hash: Optional[str] = None


class MedicalRequestCreate(MedicalRequestBase):
    received_at: Optional[UtcDateTime] = None
    assigned_gp_id: Optional[uuid.UUID] = None


class MedicalRequestUpdate(BaseModel):
    request_type: Optional[RequestType] = None
    status: Optional[RequestStatus] = None
    assigned_gp_id: Optional[uuid.UUID] = None
    sent_at: Optional[UtcDateTime] = None
    notes: Optional[str] = None


class MedicalRequest(MedicalRequestBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    status: str
    received_at: UtcDateTime
    assigned_gp_id: Optional[uuid.UUID] = None
    sent_at: Optional[UtcDateTime] = None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class MonthlyTrendPoint(BaseModel):
    month: str
    count: int
    avg_days: int


class TurnaroundMetrics(BaseModel):
    average_days: int
    pending_over_7_days: int
    total_received: int
    total_completed: int
    by_type: Dict[str, int]
    monthly_trend: List[MonthlyTrendPoint]
