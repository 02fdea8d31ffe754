import re
import uuid
from typing import Optional, Dict, Any, List, Literal
from pydantic import BaseModel, ConfigDict, field_validator

from .common import UtcDateTime, metadata_field

NotificationPriority = Literal["low", "normal", "medium", "high", "urgent"]
EmailFrequency = Literal["immediate", "daily", "weekly", "none"]

_MONTHLY_PATTERN = re.compile(r"0 9 (\d+) \* \*")


def check_schedule_pattern(value: Optional[str]) -> Optional[str]:
    """Monthly patterns must name a day of the month that exists."""
    match = _MONTHLY_PATTERN.fullmatch((value or "").strip())
    if match and not 1 <= int(match.group(1)) <= 31:
        raise ValueError("Monthly schedule day must be between 1 and 31")
    return value


class NotificationBase(BaseModel):
    user_id: uuid.UUID
    notification_type: str
    priority: NotificationPriority = "normal"
    title: str
    message: str
    action_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = metadata_field()


class NotificationCreate(NotificationBase):
    expires_days: Optional[int] = 30


class Notification(NotificationBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    is_read: bool
    read_at: Optional[UtcDateTime] = None
    created_at: UtcDateTime
    expires_at: Optional[UtcDateTime] = None
    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int
    total_count: int


class NotificationPreferenceUpdate(BaseModel):
    in_app_enabled: Optional[bool] = None
    email_frequency: Optional[EmailFrequency] = None
    policy_reminders: Optional[bool] = None
    task_notifications: Optional[bool] = None


class NotificationPreference(BaseModel):
    user_id: uuid.UUID
    in_app_enabled: bool = True
    email_frequency: str = "immediate"
    policy_reminders: bool = True
    task_notifications: bool = True
    model_config = ConfigDict(from_attributes=True)


class ScheduledReminderBase(BaseModel):
    reminder_type: str
    schedule_pattern: Optional[str] = None
    next_run_at: UtcDateTime
    metadata: Optional[Dict[str, Any]] = metadata_field()
    is_active: bool = True

    _check_pattern = field_validator("schedule_pattern")(check_schedule_pattern)


class ScheduledReminderCreate(ScheduledReminderBase):
    pass


class ScheduledReminderUpdate(BaseModel):
    reminder_type: Optional[str] = None
    schedule_pattern: Optional[str] = None
    next_run_at: Optional[UtcDateTime] = None
    metadata: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None

    _check_pattern = field_validator("schedule_pattern")(check_schedule_pattern)


class ScheduledReminder(ScheduledReminderBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    last_run_at: Optional[UtcDateTime] = None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class EmailLog(BaseModel):
    id: uuid.UUID
    practice_id: Optional[uuid.UUID] = None
    recipient_email: str
    recipient_name: Optional[str] = None
    subject: str
    email_type: str
    status: str
    resend_email_id: Optional[str] = None
    sent_at: Optional[UtcDateTime] = None
    delivered_at: Optional[UtcDateTime] = None
    opened_at: Optional[UtcDateTime] = None
    clicked_at: Optional[UtcDateTime] = None
    bounced_at: Optional[UtcDateTime] = None
    bounce_type: Optional[str] = None
    bounce_reason: Optional[str] = None
    complained_at: Optional[UtcDateTime] = None
    error_message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = metadata_field()
    created_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)
