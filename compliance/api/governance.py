"""
Incident, complaint and IPC audit endpoints.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from compliance.api.deps import require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import governance as governance_repo
from compliance.utils.role_permissions import (
    CAP_MANAGE_COMPLAINTS,
    CAP_MANAGE_INCIDENTS,
    CAP_MANAGE_IPC,
    CAP_VIEW_COMPLAINTS,
    CAP_VIEW_INCIDENTS,
    CAP_VIEW_IPC,
)

router = APIRouter(prefix="/api/practices/{practice_id}", tags=["governance"])


@router.get("/incidents", response_model=List[schemas.Incident])
def list_incidents(
    practice_id: uuid.UUID,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_INCIDENTS)),
):
    return governance_repo.get_incidents(db, practice_id, status=status)


@router.post("/incidents", response_model=schemas.Incident, status_code=status.HTTP_201_CREATED)
def create_incident(
    practice_id: uuid.UUID,
    incident: schemas.IncidentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_INCIDENTS)),
):
    user, _ = user_context
    return governance_repo.create_incident(db, practice_id, incident, reported_by_id=user.id)


@router.patch("/incidents/{incident_id}", response_model=schemas.Incident)
def update_incident(
    practice_id: uuid.UUID,
    incident_id: uuid.UUID,
    incident: schemas.IncidentUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_INCIDENTS)),
):
    user, _ = user_context
    db_incident = governance_repo.get_incident(db, practice_id, incident_id)
    if db_incident is None:
        raise HTTPException(status_code=404, detail="Incident not found")
    return governance_repo.update_incident(db, db_incident, incident, user_id=user.id)


@router.get("/complaints", response_model=List[schemas.Complaint])
def list_complaints(
    practice_id: uuid.UUID,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_COMPLAINTS)),
):
    return governance_repo.get_complaints(db, practice_id, status=status)


@router.post("/complaints", response_model=schemas.Complaint, status_code=status.HTTP_201_CREATED)
def create_complaint(
    practice_id: uuid.UUID,
    complaint: schemas.ComplaintCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_COMPLAINTS)),
):
    return governance_repo.create_complaint(db, practice_id, complaint)


@router.patch("/complaints/{complaint_id}", response_model=schemas.Complaint)
def update_complaint(
    practice_id: uuid.UUID,
    complaint_id: uuid.UUID,
    complaint: schemas.ComplaintUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_COMPLAINTS)),
):
    db_complaint = governance_repo.get_complaint(db, practice_id, complaint_id)
    if db_complaint is None:
        raise HTTPException(status_code=404, detail="Complaint not found")
    return governance_repo.update_complaint(db, db_complaint, complaint)


@router.get("/ipc-audits", response_model=List[schemas.IpcAudit])
def list_ipc_audits(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_IPC)),
):
    return governance_repo.get_ipc_audits(db, practice_id)


@router.post("/ipc-audits", response_model=schemas.IpcAudit, status_code=status.HTTP_201_CREATED)
def create_ipc_audit(
    practice_id: uuid.UUID,
    audit: schemas.IpcAuditCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_IPC)),
):
    user, _ = user_context
    if audit.auditor_id is None:
        audit = audit.model_copy(update={"auditor_id": user.id})
    return governance_repo.create_ipc_audit(db, practice_id, audit)


@router.patch("/ipc-audits/{audit_id}", response_model=schemas.IpcAudit)
def update_ipc_audit(
    practice_id: uuid.UUID,
    audit_id: uuid.UUID,
    audit: schemas.IpcAuditUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_IPC)),
):
    db_audit = governance_repo.get_ipc_audit(db, practice_id, audit_id)
    if db_audit is None:
        raise HTTPException(status_code=404, detail="IPC audit not found")
    return governance_repo.update_ipc_audit(db, db_audit, audit)
