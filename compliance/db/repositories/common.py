"""Shared helpers for practice-scoped lookups and partial updates."""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional, Type

from sqlalchemy.orm import Session


def get_scoped(db: Session, model: Type[Any], practice_id: uuid.UUID, entity_id: uuid.UUID) -> Optional[Any]:
    return (
        db.query(model)
        .filter(model.id == entity_id, model.practice_id == practice_id)
        .first()
    )


def apply_changes(db: Session, instance: Any, changes: Dict[str, Any]) -> Any:
    """Set attributes from a partial update and persist. ``metadata`` maps to ``metadata_json``."""
    for key, value in changes.items():
        if key == "metadata":
            key = "metadata_json"
        setattr(instance, key, value)
    db.commit()
    db.refresh(instance)
    return instance


def add_and_refresh(db: Session, instance: Any) -> Any:
    db.add(instance)
    db.commit()
    db.refresh(instance)
    return instance
