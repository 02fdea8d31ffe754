"""
Process template and task repository functions.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from compliance.db import models, schemas
from compliance.db.models import now_utc
from .common import add_and_refresh, apply_changes, get_scoped

TASK_COMPLETE = "complete"


def get_process_templates(db: Session, practice_id: uuid.UUID, module: Optional[str] = None):
    query = db.query(models.ProcessTemplate).filter(models.ProcessTemplate.practice_id == practice_id)
    if module:
        query = query.filter(models.ProcessTemplate.module == module)
    return query.order_by(models.ProcessTemplate.name.asc()).all()


def get_process_template(db: Session, practice_id: uuid.UUID, template_id: uuid.UUID):
    return get_scoped(db, models.ProcessTemplate, practice_id, template_id)


def create_process_template(db: Session, practice_id: uuid.UUID, template: schemas.ProcessTemplateCreate):
    return add_and_refresh(db, models.ProcessTemplate(**template.model_dump(), practice_id=practice_id))


def update_process_template(db: Session, db_template: models.ProcessTemplate, template: schemas.ProcessTemplateUpdate):
    return apply_changes(db, db_template, template.model_dump(exclude_unset=True))


def delete_process_template(db: Session, db_template: models.ProcessTemplate) -> None:
    db.delete(db_template)
    db.commit()


def get_tasks(
    db: Session,
    practice_id: uuid.UUID,
    status: Optional[str] = None,
    assignee_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 500,
):
    query = db.query(models.Task).filter(models.Task.practice_id == practice_id)
    if status:
        query = query.filter(models.Task.status == status)
    if assignee_id:
        query = query.filter(models.Task.assignee_id == assignee_id)
    return query.order_by(models.Task.due_at.asc()).offset(skip).limit(limit).all()


def get_overdue_tasks(db: Session, practice_id: uuid.UUID, now: datetime):
    return (
        db.query(models.Task)
        .filter(
            models.Task.practice_id == practice_id,
            models.Task.due_at <= now,
            models.Task.status != TASK_COMPLETE,
        )
        .order_by(models.Task.due_at.asc())
        .all()
    )


def get_task(db: Session, practice_id: uuid.UUID, task_id: uuid.UUID):
    return get_scoped(db, models.Task, practice_id, task_id)


def create_task(db: Session, practice_id: uuid.UUID, task: schemas.TaskCreate):
    data = task.model_dump()
    metadata_payload = data.pop("metadata", None)
    if data["status"] == TASK_COMPLETE and data.get("completed_at") is None:
        data["completed_at"] = now_utc()
    db_task = models.Task(**data, practice_id=practice_id, metadata_json=metadata_payload)
    return add_and_refresh(db, db_task)


def update_task(db: Session, db_task: models.Task, task: schemas.TaskUpdate):
    changes = task.model_dump(exclude_unset=True)
    new_status = changes.get("status")
    if new_status == TASK_COMPLETE and changes.get("completed_at") is None and db_task.completed_at is None:
        changes["completed_at"] = now_utc()
    elif new_status is not None and new_status != TASK_COMPLETE:
        changes["completed_at"] = None
    return apply_changes(db, db_task, changes)


def delete_task(db: Session, db_task: models.Task) -> None:
    db.delete(db_task)
    db.commit()
