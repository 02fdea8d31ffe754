"""
Employee and training record repository functions.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from compliance.db import models, schemas
from .common import add_and_refresh, apply_changes, get_scoped


def get_employees(db: Session, practice_id: uuid.UUID, active_only: bool = False):
    query = db.query(models.Employee).filter(models.Employee.practice_id == practice_id)
    if active_only:
        query = query.filter(models.Employee.end_date.is_(None))
    return query.order_by(models.Employee.name.asc()).all()


def get_employee(db: Session, practice_id: uuid.UUID, employee_id: uuid.UUID):
    return get_scoped(db, models.Employee, practice_id, employee_id)


def create_employee(db: Session, practice_id: uuid.UUID, employee: schemas.EmployeeCreate):
    return add_and_refresh(db, models.Employee(**employee.model_dump(), practice_id=practice_id))


def update_employee(db: Session, db_employee: models.Employee, employee: schemas.EmployeeUpdate):
    return apply_changes(db, db_employee, employee.model_dump(exclude_unset=True))


def get_training_records(db: Session, practice_id: uuid.UUID, employee_id: uuid.UUID | None = None):
    query = db.query(models.TrainingRecord).filter(models.TrainingRecord.practice_id == practice_id)
    if employee_id:
        query = query.filter(models.TrainingRecord.employee_id == employee_id)
    return query.order_by(models.TrainingRecord.expiry_date.asc()).all()


def get_expiring_training(db: Session, practice_id: uuid.UUID, now: datetime, days: int = 30):
    """Records whose expiry falls between now and now + days."""
    return (
        db.query(models.TrainingRecord)
        .filter(
            models.TrainingRecord.practice_id == practice_id,
            models.TrainingRecord.expiry_date.isnot(None),
            models.TrainingRecord.expiry_date >= now,
            models.TrainingRecord.expiry_date <= now + timedelta(days=days),
        )
        .order_by(models.TrainingRecord.expiry_date.asc())
        .all()
    )


def get_training_record(db: Session, practice_id: uuid.UUID, record_id: uuid.UUID):
    return get_scoped(db, models.TrainingRecord, practice_id, record_id)


def create_training_record(db: Session, practice_id: uuid.UUID, record: schemas.TrainingRecordCreate):
    return add_and_refresh(db, models.TrainingRecord(**record.model_dump(), practice_id=practice_id))


def update_training_record(db: Session, db_record: models.TrainingRecord, record: schemas.TrainingRecordUpdate):
    changes = record.model_dump(exclude_unset=True)
    if "expiry_date" in changes:
        # a renewed certificate earns a fresh reminder cycle
        changes["reminder_sent_at"] = None
    return apply_changes(db, db_record, changes)
