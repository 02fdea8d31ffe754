"""
Fridge unit, temperature reading and fridge compliance endpoints.

Out-of-range readings raise an urgent alert to the practice managers.
"""
from datetime import datetime
from typing import List, Optional
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from compliance.api.deps import require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import fridges as fridge_repo
from compliance.services.analytics import fridge_stats
from compliance.services.notification_service import NotificationService, TYPE_FRIDGE_TEMP_ALERT
from compliance.utils.role_permissions import CAP_MANAGE_FRIDGE, CAP_VIEW_FRIDGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/practices/{practice_id}", tags=["fridges"])


@router.get("/fridges", response_model=List[schemas.FridgeUnit])
def list_fridges(
    practice_id: uuid.UUID,
    active_only: bool = False,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_FRIDGE)),
):
    return fridge_repo.get_fridges(db, practice_id, active_only=active_only)


@router.get("/fridges/stats", response_model=schemas.FridgeStatsResponse)
def get_fridge_stats(
    practice_id: uuid.UUID,
    days: int = Query(default=30, ge=1, le=366),
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_FRIDGE)),
):
    return fridge_stats(db, practice_id, days=days)


@router.post("/fridges", response_model=schemas.FridgeUnit, status_code=status.HTTP_201_CREATED)
def create_fridge(
    practice_id: uuid.UUID,
    fridge: schemas.FridgeUnitCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_FRIDGE)),
):
    if fridge.min_temp >= fridge.max_temp:
        raise HTTPException(status_code=422, detail="min_temp must be below max_temp")
    return fridge_repo.create_fridge(db, practice_id, fridge)


@router.patch("/fridges/{fridge_id}", response_model=schemas.FridgeUnit)
def update_fridge(
    practice_id: uuid.UUID,
    fridge_id: uuid.UUID,
    fridge: schemas.FridgeUnitUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_FRIDGE)),
):
    db_fridge = fridge_repo.get_fridge(db, practice_id, fridge_id)
    if db_fridge is None:
        raise HTTPException(status_code=404, detail="Fridge not found")
    min_temp = db_fridge.min_temp if fridge.min_temp is None else fridge.min_temp
    max_temp = db_fridge.max_temp if fridge.max_temp is None else fridge.max_temp
    if min_temp >= max_temp:
        raise HTTPException(status_code=422, detail="min_temp must be below max_temp")
    return fridge_repo.update_fridge(db, db_fridge, fridge)


@router.get("/fridge-readings", response_model=List[schemas.FridgeReading])
def list_fridge_readings(
    practice_id: uuid.UUID,
    fridge_id: Optional[uuid.UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_FRIDGE)),
):
    return fridge_repo.get_readings(db, practice_id, fridge_id=fridge_id, start=start, end=end)


@router.post("/fridge-readings", response_model=schemas.FridgeReading, status_code=status.HTTP_201_CREATED)
def create_fridge_reading(
    practice_id: uuid.UUID,
    reading: schemas.FridgeReadingCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_FRIDGE)),
):
    user, _ = user_context
    fridge = fridge_repo.get_fridge(db, practice_id, reading.fridge_id)
    if fridge is None:
        raise HTTPException(status_code=404, detail="Fridge not found")

    db_reading = fridge_repo.create_reading(db, practice_id, fridge, reading, recorded_by=user.id)
    if db_reading.is_out_of_range:
        logger.warning(
            "fridge_breach: fridge_id=%s temperature=%s range=%s-%s",
            fridge.id, db_reading.temperature, fridge.min_temp, fridge.max_temp,
        )
        NotificationService(db).notify_practice_managers(
            practice_id=practice_id,
            notification_type=TYPE_FRIDGE_TEMP_ALERT,
            title="Fridge Temperature Alert",
            message=(
                f"Fridge Temperature Out of Range - {fridge.name} at {db_reading.temperature}°C "
                f"(safe range {fridge.min_temp}-{fridge.max_temp}°C)"
            ),
            priority="urgent",
            action_url="/fridge-temps",
            metadata={
                "fridge_id": str(fridge.id),
                "fridge_name": fridge.name,
                "reading_id": str(db_reading.id),
                "temperature": db_reading.temperature,
            },
        )
    return db_reading


@router.patch("/fridge-readings/{reading_id}", response_model=schemas.FridgeReading)
def update_fridge_reading(
    practice_id: uuid.UUID,
    reading_id: uuid.UUID,
    reading: schemas.FridgeReadingUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_FRIDGE)),
):
    db_reading = fridge_repo.get_reading(db, practice_id, reading_id)
    if db_reading is None:
        raise HTTPException(status_code=404, detail="Reading not found")
    return fridge_repo.update_reading(db, db_reading, reading)
