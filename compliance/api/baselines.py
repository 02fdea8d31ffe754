"""
Compliance baseline and scoring endpoints.

Baselines freeze the practice's scores over a date window; the delta
endpoint compares one against the trailing comparison window.
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from compliance.api.deps import require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import baselines as baseline_repo
from compliance.services import compliance_scoring
from compliance.utils.role_permissions import CAP_RUN_REPORTS, CAP_VIEW_REPORTS

router = APIRouter(prefix="/api/practices/{practice_id}", tags=["baselines"])


def _get_baseline_or_404(db: Session, practice_id: uuid.UUID, baseline_id: uuid.UUID):
    baseline = baseline_repo.get_baseline(db, practice_id, baseline_id)
    if baseline is None:
        raise HTTPException(status_code=404, detail="Baseline not found")
    return baseline


@router.get("/baselines", response_model=List[schemas.BaselineSnapshot])
def list_baselines(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_REPORTS)),
):
    return baseline_repo.get_baselines(db, practice_id)


@router.post("/baselines", response_model=schemas.BaselineSnapshot, status_code=status.HTTP_201_CREATED)
def create_baseline(
    practice_id: uuid.UUID,
    baseline: schemas.BaselineCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_RUN_REPORTS)),
):
    user, _ = user_context
    if baseline.replaces_baseline_id is not None:
        _get_baseline_or_404(db, practice_id, baseline.replaces_baseline_id)
    return compliance_scoring.create_baseline(
        db,
        practice_id,
        baseline_name=baseline.baseline_name,
        start_date=baseline.start_date,
        end_date=baseline.end_date,
        created_by=user.id,
        replaces_baseline_id=baseline.replaces_baseline_id,
        rebaseline_reason=baseline.rebaseline_reason,
    )


@router.get("/baselines/{baseline_id}", response_model=schemas.BaselineSnapshot)
def get_baseline(
    practice_id: uuid.UUID,
    baseline_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_REPORTS)),
):
    return _get_baseline_or_404(db, practice_id, baseline_id)


@router.get("/baselines/{baseline_id}/delta", response_model=schemas.BaselineDelta)
def get_baseline_delta(
    practice_id: uuid.UUID,
    baseline_id: uuid.UUID,
    window_days: int = Query(default=compliance_scoring.DEFAULT_COMPARISON_WINDOW_DAYS, ge=1, le=730),
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_REPORTS)),
):
    """
    Compare a baseline with the last `window_days` days (default 90).
    """
    baseline = _get_baseline_or_404(db, practice_id, baseline_id)
    return compliance_scoring.compute_delta(db, baseline, comparison_window_days=window_days)


@router.get("/compliance/summary", response_model=schemas.ComplianceSummary)
def get_compliance_summary(
    practice_id: uuid.UUID,
    days: int = Query(default=90, ge=1, le=730),
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_REPORTS)),
):
    return compliance_scoring.compliance_summary(db, practice_id, days)
