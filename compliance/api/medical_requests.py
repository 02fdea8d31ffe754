"""
Medical request endpoints and turnaround analytics.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from compliance.api.deps import get_practice_context
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import medical_requests as medical_request_repo
from compliance.db.repositories import workforce as workforce_repo
from compliance.services.analytics import medical_request_analytics

router = APIRouter(prefix="/api/practices/{practice_id}/medical-requests", tags=["medical-requests"])


def _check_gp(db: Session, practice_id: uuid.UUID, gp_id: Optional[uuid.UUID]) -> None:
    if gp_id and workforce_repo.get_employee(db, practice_id, gp_id) is None:
        raise HTTPException(status_code=404, detail="Assigned GP not found")


@router.get("", response_model=List[schemas.MedicalRequest])
def list_medical_requests(
    practice_id: uuid.UUID,
    status: Optional[str] = None,
    request_type: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    return medical_request_repo.get_medical_requests(db, practice_id, status=status, request_type=request_type)


@router.get("/analytics", response_model=schemas.TurnaroundMetrics)
def get_medical_request_analytics(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    return medical_request_analytics(db, practice_id)


@router.get("/{request_id}", response_model=schemas.MedicalRequest)
def get_medical_request(
    practice_id: uuid.UUID,
    request_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    request = medical_request_repo.get_medical_request(db, practice_id, request_id)
    if request is None:
        raise HTTPException(status_code=404, detail="Medical request not found")
    return request


@router.post("", response_model=schemas.MedicalRequest, status_code=status.HTTP_201_CREATED)
def create_medical_request(
    practice_id: uuid.UUID,
    request: schemas.MedicalRequestCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    _check_gp(db, practice_id, request.assigned_gp_id)
    return medical_request_repo.create_medical_request(db, practice_id, request)


@router.patch("/{request_id}", response_model=schemas.MedicalRequest)
def update_medical_request(
    practice_id: uuid.UUID,
    request_id: uuid.UUID,
    request: schemas.MedicalRequestUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    db_request = medical_request_repo.get_medical_request(db, practice_id, request_id)
    if db_request is None:
        raise HTTPException(status_code=404, detail="Medical request not found")
    _check_gp(db, practice_id, request.assigned_gp_id)
    return medical_request_repo.update_medical_request(db, db_request, request)
