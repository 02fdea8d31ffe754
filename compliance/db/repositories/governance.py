"""
Incident, complaint, policy and IPC audit repository functions.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from compliance.db import models, schemas
from compliance.db.models import now_utc
from compliance.utils.dates import as_utc
from .common import add_and_refresh, apply_changes, get_scoped

INCIDENT_CLOSED_STATES = ("closed", "resolved")
ACK_WINDOW = timedelta(hours=48)
FINAL_RESPONSE_WINDOW = timedelta(days=30)


def get_incidents(db: Session, practice_id: uuid.UUID, status: Optional[str] = None):
    query = db.query(models.Incident).filter(models.Incident.practice_id == practice_id)
    if status:
        query = query.filter(models.Incident.status == status)
    return query.order_by(models.Incident.date_occurred.desc()).all()


def get_incident(db: Session, practice_id: uuid.UUID, incident_id: uuid.UUID):
    return get_scoped(db, models.Incident, practice_id, incident_id)


def create_incident(db: Session, practice_id: uuid.UUID, incident: schemas.IncidentCreate, reported_by_id: uuid.UUID):
    db_incident = models.Incident(**incident.model_dump(), practice_id=practice_id, reported_by_id=reported_by_id)
    return add_and_refresh(db, db_incident)


def update_incident(db: Session, db_incident: models.Incident, incident: schemas.IncidentUpdate, user_id: uuid.UUID):
    changes = incident.model_dump(exclude_unset=True)
    new_status = changes.get("status")
    if new_status in INCIDENT_CLOSED_STATES and db_incident.closed_at is None:
        changes["closed_at"] = now_utc()
        changes["closed_by_id"] = user_id
    elif new_status is not None and new_status not in INCIDENT_CLOSED_STATES:
        changes["closed_at"] = None
        changes["closed_by_id"] = None
    return apply_changes(db, db_incident, changes)


def get_complaints(db: Session, practice_id: uuid.UUID, status: Optional[str] = None):
    query = db.query(models.Complaint).filter(models.Complaint.practice_id == practice_id)
    if status:
        query = query.filter(models.Complaint.status == status)
    return query.order_by(models.Complaint.received_at.desc()).all()


def get_complaints_received_between(db: Session, practice_id: uuid.UUID, start: datetime, end: datetime):
    """Complaints received in ``[start, end)``, oldest first."""
    return (
        db.query(models.Complaint)
        .filter(
            models.Complaint.practice_id == practice_id,
            models.Complaint.received_at >= start,
            models.Complaint.received_at < end,
        )
        .order_by(models.Complaint.received_at.asc())
        .all()
    )


def get_complaint(db: Session, practice_id: uuid.UUID, complaint_id: uuid.UUID):
    return get_scoped(db, models.Complaint, practice_id, complaint_id)


def create_complaint(db: Session, practice_id: uuid.UUID, complaint: schemas.ComplaintCreate):
    data = complaint.model_dump()
    if data.get("ack_due") is None:
        data["ack_due"] = data["received_at"] + ACK_WINDOW
    if data.get("final_due") is None:
        data["final_due"] = data["received_at"] + FINAL_RESPONSE_WINDOW
    return add_and_refresh(db, models.Complaint(**data, practice_id=practice_id))


def update_complaint(db: Session, db_complaint: models.Complaint, complaint: schemas.ComplaintUpdate):
    changes = complaint.model_dump(exclude_unset=True)
    final_sent_at = changes.get("final_sent_at")
    if final_sent_at is not None:
        final_due = as_utc(changes.get("final_due") or db_complaint.final_due)
        met = final_due is None or as_utc(final_sent_at) <= final_due
        changes["sla_status"] = "met" if met else "breached"
        changes.setdefault("status", "resolved")
    return apply_changes(db, db_complaint, changes)


def get_policies(db: Session, practice_id: uuid.UUID, status: Optional[str] = None):
    query = db.query(models.PolicyDocument).filter(models.PolicyDocument.practice_id == practice_id)
    if status:
        query = query.filter(models.PolicyDocument.status == status)
    return query.order_by(models.PolicyDocument.title.asc()).all()


def get_policy(db: Session, practice_id: uuid.UUID, policy_id: uuid.UUID):
    return get_scoped(db, models.PolicyDocument, practice_id, policy_id)


def create_policy(db: Session, practice_id: uuid.UUID, policy: schemas.PolicyDocumentCreate):
    return add_and_refresh(db, models.PolicyDocument(**policy.model_dump(), practice_id=practice_id))


def update_policy(db: Session, db_policy: models.PolicyDocument, policy: schemas.PolicyDocumentUpdate, user_id: uuid.UUID):
    changes = policy.model_dump(exclude_unset=True)
    if changes.get("last_reviewed_at") is not None:
        changes["last_reviewed_by"] = user_id
    return apply_changes(db, db_policy, changes)


def record_policy_decision(db: Session, db_policy: models.PolicyDocument, decision: str, approver_id: uuid.UUID):
    if decision == "approved":
        changes = {"status": "active", "approved_at": now_utc(), "approved_by": approver_id}
    else:
        changes = {"status": "draft"}
    return apply_changes(db, db_policy, changes)


def get_policies_due_for_review(db: Session, cutoff: datetime):
    """Active policies (all practices) with a review date on or before the cutoff."""
    return (
        db.query(models.PolicyDocument)
        .filter(
            models.PolicyDocument.status == "active",
            models.PolicyDocument.next_review_date.isnot(None),
            models.PolicyDocument.next_review_date <= cutoff,
        )
        .order_by(models.PolicyDocument.next_review_date.asc())
        .all()
    )


def _policy_in_force_from():
    """When a policy took effect: its approval, or creation for policies never put through sign-off."""
    return func.coalesce(models.PolicyDocument.approved_at, models.PolicyDocument.created_at)


def get_policies_in_force_since(db: Session, cutoff: datetime):
    """Active policies (all practices) that took effect on or before the cutoff."""
    in_force_from = _policy_in_force_from()
    return (
        db.query(models.PolicyDocument)
        .filter(models.PolicyDocument.status == "active", in_force_from <= cutoff)
        .order_by(in_force_from.asc())
        .all()
    )


def get_acknowledged_user_ids(db: Session, policy_id: uuid.UUID) -> Set[uuid.UUID]:
    rows = db.query(models.PolicyAcknowledgment.user_id).filter(models.PolicyAcknowledgment.policy_id == policy_id)
    return {user_id for (user_id,) in rows}


def acknowledge_policy(db: Session, policy_id: uuid.UUID, user_id: uuid.UUID):
    """Idempotent: a second acknowledgment returns the existing row."""
    existing = (
        db.query(models.PolicyAcknowledgment)
        .filter(
            models.PolicyAcknowledgment.policy_id == policy_id,
            models.PolicyAcknowledgment.user_id == user_id,
        )
        .first()
    )
    if existing:
        return existing
    return add_and_refresh(db, models.PolicyAcknowledgment(policy_id=policy_id, user_id=user_id))


def get_policy_acknowledgments(db: Session, policy_id: uuid.UUID):
    return (
        db.query(models.PolicyAcknowledgment)
        .filter(models.PolicyAcknowledgment.policy_id == policy_id)
        .order_by(models.PolicyAcknowledgment.acknowledged_at.asc())
        .all()
    )


def get_ipc_audits(db: Session, practice_id: uuid.UUID):
    return (
        db.query(models.IpcAudit)
        .filter(models.IpcAudit.practice_id == practice_id)
        .order_by(models.IpcAudit.audit_date.desc())
        .all()
    )


def get_ipc_audit(db: Session, practice_id: uuid.UUID, audit_id: uuid.UUID):
    return get_scoped(db, models.IpcAudit, practice_id, audit_id)


def create_ipc_audit(db: Session, practice_id: uuid.UUID, audit: schemas.IpcAuditCreate):
    return add_and_refresh(db, models.IpcAudit(**audit.model_dump(), practice_id=practice_id))


def update_ipc_audit(db: Session, db_audit: models.IpcAudit, audit: schemas.IpcAuditUpdate):
    return apply_changes(db, db_audit, audit.model_dump(exclude_unset=True))
