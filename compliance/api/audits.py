"""
Audit log endpoints.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from compliance.api.deps import require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import audits as audit_repo
from compliance.utils.role_permissions import CAP_VIEW_REPORTS

router = APIRouter(prefix="/api/practices/{practice_id}/audit-logs", tags=["audit-logs"])


@router.get("", response_model=List[schemas.AuditLog])
def list_audit_logs(
    practice_id: uuid.UUID,
    entity_type: Optional[str] = None,
    entity_id: Optional[uuid.UUID] = None,
    user_id: Optional[uuid.UUID] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_REPORTS)),
):
    """
    List audit log entries for the practice, newest first.

    Filter by `entity_type` (the URL segment, e.g. `tasks`), `entity_id` or
    the acting `user_id`.
    """
    return audit_repo.get_audit_logs(
        db,
        practice_id,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        skip=skip,
        limit=limit,
    )
