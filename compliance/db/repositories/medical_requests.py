"""
Medical request repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from compliance.db import models, schemas
from compliance.db.models import now_utc
from .common import add_and_refresh, apply_changes, get_scoped


def get_medical_requests(
    db: Session,
    practice_id: uuid.UUID,
    status: Optional[str] = None,
    request_type: Optional[str] = None,
):
    query = db.query(models.MedicalRequest).filter(models.MedicalRequest.practice_id == practice_id)
    if status:
        query = query.filter(models.MedicalRequest.status == status)
    if request_type:
        query = query.filter(models.MedicalRequest.request_type == request_type)
    return query.order_by(models.MedicalRequest.received_at.desc()).all()


def get_medical_request(db: Session, practice_id: uuid.UUID, request_id: uuid.UUID):
    return get_scoped(db, models.MedicalRequest, practice_id, request_id)


def create_medical_request(db: Session, practice_id: uuid.UUID, request: schemas.MedicalRequestCreate):
    data = request.model_dump()
    if data.get("received_at") is None:
        data["received_at"] = now_utc()
    data["status"] = "assigned" if data.get("assigned_gp_id") else "received"
    return add_and_refresh(db, models.MedicalRequest(**data, practice_id=practice_id))


def update_medical_request(db: Session, db_request: models.MedicalRequest, request: schemas.MedicalRequestUpdate):
    changes = request.model_dump(exclude_unset=True)
    if changes.get("assigned_gp_id") and db_request.status == "received" and "status" not in changes:
        changes["status"] = "assigned"
    if changes.get("status") == "sent" and changes.get("sent_at") is None and db_request.sent_at is None:
        changes["sent_at"] = now_utc()
    return apply_changes(db, db_request, changes)
