"""
Fridge unit and temperature reading repository functions.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from compliance.db import models, schemas
from .common import add_and_refresh, apply_changes, get_scoped


def get_fridges(db: Session, practice_id: uuid.UUID, active_only: bool = False):
    query = db.query(models.FridgeUnit).filter(models.FridgeUnit.practice_id == practice_id)
    if active_only:
        query = query.filter(models.FridgeUnit.is_active.is_(True))
    return query.order_by(models.FridgeUnit.name.asc()).all()


def get_fridge(db: Session, practice_id: uuid.UUID, fridge_id: uuid.UUID):
    return get_scoped(db, models.FridgeUnit, practice_id, fridge_id)


def create_fridge(db: Session, practice_id: uuid.UUID, fridge: schemas.FridgeUnitCreate):
    return add_and_refresh(db, models.FridgeUnit(**fridge.model_dump(), practice_id=practice_id))


def update_fridge(db: Session, db_fridge: models.FridgeUnit, fridge: schemas.FridgeUnitUpdate):
    return apply_changes(db, db_fridge, fridge.model_dump(exclude_unset=True))


def get_readings(
    db: Session,
    practice_id: uuid.UUID,
    fridge_id: Optional[uuid.UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
):
    query = db.query(models.FridgeReading).filter(models.FridgeReading.practice_id == practice_id)
    if fridge_id:
        query = query.filter(models.FridgeReading.fridge_id == fridge_id)
    if start:
        query = query.filter(models.FridgeReading.reading_date >= start)
    if end:
        query = query.filter(models.FridgeReading.reading_date <= end)
    return query.order_by(models.FridgeReading.reading_date.desc()).all()


def get_reading(db: Session, practice_id: uuid.UUID, reading_id: uuid.UUID):
    return get_scoped(db, models.FridgeReading, practice_id, reading_id)


def create_reading(
    db: Session,
    practice_id: uuid.UUID,
    fridge: models.FridgeUnit,
    reading: schemas.FridgeReadingCreate,
    recorded_by: uuid.UUID,
):
    out_of_range = not (fridge.min_temp <= reading.temperature <= fridge.max_temp)
    db_reading = models.FridgeReading(
        **reading.model_dump(),
        practice_id=practice_id,
        recorded_by=recorded_by,
        is_out_of_range=out_of_range,
    )
    return add_and_refresh(db, db_reading)


def update_reading(db: Session, db_reading: models.FridgeReading, reading: schemas.FridgeReadingUpdate):
    return apply_changes(db, db_reading, reading.model_dump(exclude_unset=True))
