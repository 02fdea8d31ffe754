"""
Scheduled reminder and email log repository functions.

In-app notifications are created and read through NotificationService.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from compliance.db import models, schemas
from .common import add_and_refresh, apply_changes, get_scoped


def get_scheduled_reminders(db: Session, practice_id: uuid.UUID):
    return (
        db.query(models.ScheduledReminder)
        .filter(models.ScheduledReminder.practice_id == practice_id)
        .order_by(models.ScheduledReminder.next_run_at.asc())
        .all()
    )


def get_scheduled_reminder(db: Session, practice_id: uuid.UUID, reminder_id: uuid.UUID):
    return get_scoped(db, models.ScheduledReminder, practice_id, reminder_id)


def get_due_reminders(db: Session, now: datetime):
    return (
        db.query(models.ScheduledReminder)
        .filter(
            models.ScheduledReminder.is_active.is_(True),
            models.ScheduledReminder.next_run_at <= now,
        )
        .order_by(models.ScheduledReminder.next_run_at.asc())
        .all()
    )


def create_scheduled_reminder(db: Session, practice_id: uuid.UUID, reminder: schemas.ScheduledReminderCreate):
    data = reminder.model_dump()
    metadata_payload = data.pop("metadata", None)
    db_reminder = models.ScheduledReminder(**data, practice_id=practice_id, metadata_json=metadata_payload)
    return add_and_refresh(db, db_reminder)


def update_scheduled_reminder(db: Session, db_reminder: models.ScheduledReminder, reminder: schemas.ScheduledReminderUpdate):
    return apply_changes(db, db_reminder, reminder.model_dump(exclude_unset=True))


def get_email_logs(
    db: Session,
    practice_id: uuid.UUID,
    status: Optional[str] = None,
    email_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
):
    query = db.query(models.EmailLog).filter(models.EmailLog.practice_id == practice_id)
    if status:
        query = query.filter(models.EmailLog.status == status)
    if email_type:
        query = query.filter(models.EmailLog.email_type == email_type)
    return query.order_by(models.EmailLog.created_at.desc()).offset(skip).limit(limit).all()


def get_email_log(db: Session, practice_id: uuid.UUID, log_id: uuid.UUID):
    return get_scoped(db, models.EmailLog, practice_id, log_id)


def get_email_log_by_provider_id(db: Session, provider_id: str):
    return db.query(models.EmailLog).filter(models.EmailLog.resend_email_id == provider_id).first()


def notified_since(db: Session, user_id: uuid.UUID, notification_type: str, since: datetime) -> bool:
    return db.query(
        db.query(models.Notification)
        .filter(
            models.Notification.user_id == user_id,
            models.Notification.notification_type == notification_type,
            models.Notification.created_at >= since,
        )
        .exists()
    ).scalar()
