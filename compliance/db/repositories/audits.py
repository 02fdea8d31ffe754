"""
Audit log repository functions.

Audit rows are append-only: there is no update or delete here.
"""
from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from compliance.db import models


def create_audit_log(
    db: Session,
    *,
    practice_id: uuid.UUID,
    entity_type: str,
    entity_id: uuid.UUID,
    action: str,
    user_id: Optional[uuid.UUID] = None,
    before_data: Any = None,
    after_data: Any = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
):
    db_audit_log = models.AuditLog(
        practice_id=practice_id,
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        before_data=before_data,
        after_data=after_data,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(db_audit_log)
    db.commit()
    db.refresh(db_audit_log)
    return db_audit_log


def get_audit_logs(
    db: Session,
    practice_id: uuid.UUID,
    entity_type: Optional[str] = None,
    entity_id: Optional[uuid.UUID] = None,
    user_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(models.AuditLog).filter(models.AuditLog.practice_id == practice_id)
    if entity_type:
        query = query.filter(models.AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(models.AuditLog.entity_id == entity_id)
    if user_id:
        query = query.filter(models.AuditLog.user_id == user_id)
    return query.order_by(models.AuditLog.created_at.desc()).offset(skip).limit(limit).all()
