"""Business logic services package with public service helpers."""

from .notification_service import NotificationService, get_notification_service
from .transactional_email_service import (
    TransactionalEmailService,
    get_transactional_email_service,
    reset_transactional_email_service,
)
from .ai_assistant import AiAssistantService, get_ai_assistant_service

__all__ = [
    "NotificationService",
    "get_notification_service",
    "TransactionalEmailService",
    "get_transactional_email_service",
    "reset_transactional_email_service",
    "AiAssistantService",
    "get_ai_assistant_service",
]
