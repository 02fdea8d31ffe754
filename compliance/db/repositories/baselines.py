"""
Baseline snapshot repository functions.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict

from sqlalchemy.orm import Session

from compliance.db import models
from .common import add_and_refresh, get_scoped


def get_baselines(db: Session, practice_id: uuid.UUID):
    return (
        db.query(models.BaselineSnapshot)
        .filter(models.BaselineSnapshot.practice_id == practice_id)
        .order_by(models.BaselineSnapshot.created_at.desc())
        .all()
    )


def get_baseline(db: Session, practice_id: uuid.UUID, baseline_id: uuid.UUID):
    return get_scoped(db, models.BaselineSnapshot, practice_id, baseline_id)


def create_baseline(db: Session, practice_id: uuid.UUID, values: Dict[str, Any]):
    """Insert a snapshot; a replaced baseline in the same practice becomes superseded."""
    replaces_id = values.get("replaces_baseline_id")
    if replaces_id:
        previous = get_baseline(db, practice_id, replaces_id)
        if previous is not None:
            previous.status = "superseded"
    return add_and_refresh(db, models.BaselineSnapshot(**values, practice_id=practice_id))
