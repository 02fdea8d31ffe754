import uuid
from datetime import date
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, ConfigDict, model_validator

from .common import UtcDateTime


class BaselineCreate(BaseModel):
    baseline_name: str
    start_date: date
    end_date: date
    replaces_baseline_id: Optional[uuid.UUID] = None
    rebaseline_reason: Optional[str] = None

    @model_validator(mode="after")
    def _check_window(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class BaselineSnapshot(BaseModel):
    id: uuid.UUID
    practice_id: uuid.UUID
    baseline_name: str
    start_date: date
    end_date: date
    compliance_score: float
    fit_for_audit_score: float
    driver_details: Dict[str, Any]
    red_flags: List[Dict[str, Any]]
    status: str
    replaces_baseline_id: Optional[uuid.UUID] = None
    rebaseline_reason: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    model_version: str
    created_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class ScorePeriod(BaseModel):
    start: date
    end: date
    compliance_score: float
    fit_for_audit_score: float


class ScoreDelta(BaseModel):
    compliance_absolute: float
    compliance_percent: float
    fit_for_audit_absolute: float
    fit_for_audit_percent: float


class DriverChange(BaseModel):
    driver: str
    impact: float
    reason: str
    baseline_score: float
    current_score: float


class BaselineDelta(BaseModel):
    baseline_id: uuid.UUID
    baseline: ScorePeriod
    current: ScorePeriod
    delta: ScoreDelta
    drivers: List[DriverChange]
    narrative: str


class ComplianceSummary(BaseModel):
    start: date
    end: date
    compliance_score: float
    fit_for_audit_score: float
    rag: str
    rag_label: str
    drivers: Dict[str, Any]
    red_flags: List[Dict[str, Any]]
