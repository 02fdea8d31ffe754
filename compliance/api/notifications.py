"""
Notification API Endpoints

In-app notifications and email preferences for the signed-in user, plus the
practice's scheduled reminders.
"""

from typing import Dict, List
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from compliance.api.deps import get_practice_context, require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import notifications as notification_repo
from compliance.db.repositories import practices as practice_repo
from compliance.services.notification_service import NotificationService
from compliance.utils.role_permissions import CAP_MANAGE_TASKS, CAP_MANAGE_USERS


router = APIRouter(prefix="/api/practices/{practice_id}", tags=["notifications"])


@router.get("/notifications", response_model=schemas.NotificationListResponse)
def get_notifications(
    practice_id: uuid.UUID,
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    """
    Get notifications for the current user.

    - **unread_only**: If true, only return unread notifications
    - **limit**: Maximum number of notifications to return (default 50)
    """
    user, _ = user_context

    service = NotificationService(db)
    notifications = service.get_user_notifications(user_id=user.id, unread_only=unread_only, limit=limit)

    return schemas.NotificationListResponse(
        notifications=notifications,
        unread_count=service.get_unread_count(user.id),
        total_count=service.get_total_count(user.id),
    )


@router.get("/notifications/unread", response_model=List[schemas.Notification])
def get_unread_notifications(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    user, _ = user_context
    return NotificationService(db).get_user_notifications(user_id=user.id, unread_only=True)


@router.post("/notifications", response_model=schemas.Notification, status_code=status.HTTP_201_CREATED)
def create_notification(
    practice_id: uuid.UUID,
    notification_data: schemas.NotificationCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_USERS)),
):
    """
    Create a notification for a user of this practice.
    """
    if practice_repo.get_practice_user(db, practice_id, notification_data.user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")

    return NotificationService(db).create_notification(
        practice_id=practice_id,
        user_id=notification_data.user_id,
        notification_type=notification_data.notification_type,
        title=notification_data.title,
        message=notification_data.message,
        priority=notification_data.priority,
        action_url=notification_data.action_url,
        metadata=notification_data.metadata,
        expires_days=notification_data.expires_days,
    )


@router.patch("/notifications/read-all")
def mark_all_notifications_read(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
) -> Dict[str, int]:
    user, _ = user_context
    return {"count": NotificationService(db).mark_all_read(user.id)}


@router.patch("/notifications/{notification_id}/read", response_model=schemas.Notification)
def mark_notification_read(
    practice_id: uuid.UUID,
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    """
    Mark a specific notification as read.
    """
    user, _ = user_context

    notification = NotificationService(db).mark_notification_read(notification_id, user.id)
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification


@router.get("/notification-preferences", response_model=schemas.NotificationPreference)
def get_notification_preferences(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    user, _ = user_context
    return NotificationService(db).get_preferences(user.id)


@router.put("/notification-preferences", response_model=schemas.NotificationPreference)
def update_notification_preferences(
    practice_id: uuid.UUID,
    preference_update: schemas.NotificationPreferenceUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    user, _ = user_context
    return NotificationService(db).update_preferences(user.id, preference_update.model_dump(exclude_none=True))


@router.get("/scheduled-reminders", response_model=List[schemas.ScheduledReminder])
def list_scheduled_reminders(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    return notification_repo.get_scheduled_reminders(db, practice_id)


@router.post("/scheduled-reminders", response_model=schemas.ScheduledReminder, status_code=status.HTTP_201_CREATED)
def create_scheduled_reminder(
    practice_id: uuid.UUID,
    reminder: schemas.ScheduledReminderCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    return notification_repo.create_scheduled_reminder(db, practice_id, reminder)


@router.patch("/scheduled-reminders/{reminder_id}", response_model=schemas.ScheduledReminder)
def update_scheduled_reminder(
    practice_id: uuid.UUID,
    reminder_id: uuid.UUID,
    reminder: schemas.ScheduledReminderUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    db_reminder = notification_repo.get_scheduled_reminder(db, practice_id, reminder_id)
    if db_reminder is None:
        raise HTTPException(status_code=404, detail="Scheduled reminder not found")
    return notification_repo.update_scheduled_reminder(db, db_reminder, reminder)
