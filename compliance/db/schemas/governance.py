import uuid
from typing import Optional, Dict, Any, List, Literal
from pydantic import BaseModel, ConfigDict

from .common import UtcDateTime

Severity = Literal["low", "medium", "high", "major", "critical"]
IncidentStatus = Literal["open", "investigating", "resolved", "closed"]
PolicyStatus = Literal["draft", "pending_approval", "active", "archived"]
ApprovalDecision = Literal["approved", "rejected", "pending_changes"]


class IncidentBase(BaseModel):
    category: str
    severity: Severity = "low"
    description: str
    date_occurred: UtcDateTime
    location: Optional[str] = None
    immediate_actions: Optional[str] = None


class IncidentCreate(IncidentBase):
    pass


class IncidentUpdate(BaseModel):
    category: Optional[str] = None
    severity: Optional[Severity] = None
    description: Optional[str] = None
    location: Optional[str] = None
    immediate_actions: Optional[str] = None
    root_cause: Optional[str] = None
    preventive_actions: Optional[str] = None
    status: Optional[IncidentStatus] = None


class Incident(IncidentBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    reported_by_id: Optional[uuid.UUID] = None
    root_cause: Optional[str] = None
    preventive_actions: Optional[str] = None
    status: str
    closed_at: Optional[UtcDateTime] = None
    closed_by_id: Optional[uuid.UUID] = None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class ComplaintBase(BaseModel):
    received_at: UtcDateTime
    channel: Optional[str] = None
    description: str
    assigned_to: Optional[uuid.UUID] = None
    emis_hash: Optional[str] = None


class ComplaintCreate(ComplaintBase):
    ack_due: Optional[UtcDateTime] = None
    final_due: Optional[UtcDateTime] = None


class ComplaintUpdate(BaseModel):
    channel: Optional[str] = None
    description: Optional[str] = None
    assigned_to: Optional[uuid.UUID] = None
    ack_due: Optional[UtcDateTime] = None
    ack_sent_at: Optional[UtcDateTime] = None
    final_due: Optional[UtcDateTime] = None
    final_sent_at: Optional[UtcDateTime] = None
    status: Optional[str] = None


class Complaint(ComplaintBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    ack_due: Optional[UtcDateTime] = None
    ack_sent_at: Optional[UtcDateTime] = None
    final_due: Optional[UtcDateTime] = None
    final_sent_at: Optional[UtcDateTime] = None
    status: str
    sla_status: str
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class PolicyDocumentBase(BaseModel):
    title: str
    category: Optional[str] = None
    version: str = "1.0"
    content: Optional[str] = None
    owner_id: Optional[uuid.UUID] = None
    next_review_date: Optional[UtcDateTime] = None


class PolicyDocumentCreate(PolicyDocumentBase):
    status: PolicyStatus = "draft"


class PolicyDocumentUpdate(BaseModel):
    title: Optional[str] = None
    category: Optional[str] = None
    version: Optional[str] = None
    status: Optional[PolicyStatus] = None
    content: Optional[str] = None
    owner_id: Optional[uuid.UUID] = None
    next_review_date: Optional[UtcDateTime] = None
    last_reviewed_at: Optional[UtcDateTime] = None


class PolicyDocument(PolicyDocumentBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    status: str
    last_reviewed_at: Optional[UtcDateTime] = None
    last_reviewed_by: Optional[uuid.UUID] = None
    approved_at: Optional[UtcDateTime] = None
    approved_by: Optional[uuid.UUID] = None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class PolicyAcknowledgmentCreate(BaseModel):
    policy_id: uuid.UUID


class PolicyAcknowledgment(BaseModel):
    id: uuid.UUID
    policy_id: uuid.UUID
    user_id: uuid.UUID
    acknowledged_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class ApprovalRequest(BaseModel):
    urgency: Literal["normal", "high"] = "normal"


class ApprovalDecisionIn(BaseModel):
    decision: ApprovalDecision
    notes: Optional[str] = None


class IpcAuditBase(BaseModel):
    audit_date: UtcDateTime
    audit_type: str = "six_monthly"
    overall_score: Optional[float] = None
    overall_result: Optional[Literal["pass", "fail"]] = None
    status: str = "draft"
    findings: List[Dict[str, Any]] = []


class IpcAuditCreate(IpcAuditBase):
    auditor_id: Optional[uuid.UUID] = None


class IpcAuditUpdate(BaseModel):
    audit_date: Optional[UtcDateTime] = None
    overall_score: Optional[float] = None
    overall_result: Optional[Literal["pass", "fail"]] = None
    status: Optional[str] = None
    findings: Optional[List[Dict[str, Any]]] = None
    completed_at: Optional[UtcDateTime] = None


class IpcAudit(IpcAuditBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    auditor_id: Optional[uuid.UUID] = None
    completed_at: Optional[UtcDateTime] = None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)
