"""
Employee and training record endpoints.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from compliance.api.deps import get_practice_context, require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.models import now_utc
from compliance.db.repositories import workforce as workforce_repo
from compliance.utils.role_permissions import CAP_MANAGE_HR, CAP_VIEW_HR

router = APIRouter(prefix="/api/practices/{practice_id}", tags=["workforce"])


@router.get("/employees", response_model=List[schemas.Employee])
def list_employees(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    return workforce_repo.get_employees(db, practice_id)


@router.get("/employees/active", response_model=List[schemas.Employee])
def list_active_employees(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    return workforce_repo.get_employees(db, practice_id, active_only=True)


@router.post("/employees", response_model=schemas.Employee, status_code=status.HTTP_201_CREATED)
def create_employee(
    practice_id: uuid.UUID,
    employee: schemas.EmployeeCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_HR)),
):
    return workforce_repo.create_employee(db, practice_id, employee)


@router.patch("/employees/{employee_id}", response_model=schemas.Employee)
def update_employee(
    practice_id: uuid.UUID,
    employee_id: uuid.UUID,
    employee: schemas.EmployeeUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_HR)),
):
    db_employee = workforce_repo.get_employee(db, practice_id, employee_id)
    if db_employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return workforce_repo.update_employee(db, db_employee, employee)


@router.get("/training-records", response_model=List[schemas.TrainingRecord])
def list_training_records(
    practice_id: uuid.UUID,
    employee_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_HR)),
):
    return workforce_repo.get_training_records(db, practice_id, employee_id=employee_id)


@router.get("/training-records/expiring", response_model=List[schemas.TrainingRecord])
def list_expiring_training(
    practice_id: uuid.UUID,
    days: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_HR)),
):
    return workforce_repo.get_expiring_training(db, practice_id, now_utc(), days=days)


@router.post("/training-records", response_model=schemas.TrainingRecord, status_code=status.HTTP_201_CREATED)
def create_training_record(
    practice_id: uuid.UUID,
    record: schemas.TrainingRecordCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_HR)),
):
    if workforce_repo.get_employee(db, practice_id, record.employee_id) is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return workforce_repo.create_training_record(db, practice_id, record)


@router.patch("/training-records/{record_id}", response_model=schemas.TrainingRecord)
def update_training_record(
    practice_id: uuid.UUID,
    record_id: uuid.UUID,
    record: schemas.TrainingRecordUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_HR)),
):
    db_record = workforce_repo.get_training_record(db, practice_id, record_id)
    if db_record is None:
        raise HTTPException(status_code=404, detail="Training record not found")
    return workforce_repo.update_training_record(db, db_record, record)
