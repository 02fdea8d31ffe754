"""
Notification service: in-app notifications, preferences, and email dispatch.
Centralizes business logic so jobs, routers and governance flows behave alike.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, UTC
from typing import Optional, List, Dict, Any

from sqlalchemy import and_, desc
from sqlalchemy.orm import Session

from compliance.db import models
from compliance.db.repositories.practices import get_practice_managers
from compliance.utils.runtime import outbound_email_enabled

logger = logging.getLogger(__name__)

# Notification types raised by the service layer
TYPE_REMINDER_DEFAULT = 'reminder'
TYPE_POLICY_REVIEW = 'policy_review'
TYPE_COMPLAINT_SLA_ALERT = 'complaint_sla_alert'
TYPE_TRAINING_EXPIRY = 'training_expiry_warning'
TYPE_FRIDGE_TEMP_ALERT = 'fridge_temp_alert'
TYPE_GOVERNANCE_REQUEST = 'governance_approval_request'
TYPE_GOVERNANCE_COMPLETED = 'governance_approval_completed'
TYPE_POLICY_ACK_REMINDER = 'policy_acknowledgment_reminder'
TYPE_POLICY_ACK_ESCALATION = 'policy_acknowledgment_escalation'

# Template name constants (match template file names)
TEMPLATE_GOVERNANCE_REQUEST = 'governance_approval_request'
TEMPLATE_GOVERNANCE_COMPLETED = 'governance_approval_completed'
TEMPLATE_POLICY_REVIEW = 'policy_review_reminder'
TEMPLATE_POLICY_ACK_REMINDER = 'policy_acknowledgment_reminder'
TEMPLATE_POLICY_ACK_ESCALATION = 'policy_acknowledgment_escalation'

EMAIL_FREQUENCY_NONE = 'none'

DEFAULT_PREFERENCES = {
    'in_app_enabled': True,
    'email_frequency': 'immediate',
    'policy_reminders': True,
    'task_notifications': True,
}


class NotificationService:
    """Service class for handling all notification operations."""

    def __init__(self, db: Session, email_service: Optional[Any] = None):
        self.db = db
        if email_service is not None:
            self.email_service = email_service
        else:
            # Resolved lazily so tests can patch the factory.
            from compliance.services import transactional_email_service
            self.email_service = transactional_email_service.get_transactional_email_service()

    # === Preferences ===

    def get_preferences(self, user_id: uuid.UUID) -> models.NotificationPreference:
        """Return the stored preferences, or an unsaved row holding the defaults."""
        pref = self.db.query(models.NotificationPreference).filter(
            models.NotificationPreference.user_id == user_id
        ).first()
        if pref is None:
            pref = models.NotificationPreference(user_id=user_id, **DEFAULT_PREFERENCES)
        return pref

    def update_preferences(self, user_id: uuid.UUID, changes: Dict[str, Any]) -> models.NotificationPreference:
        pref = self.db.query(models.NotificationPreference).filter(
            models.NotificationPreference.user_id == user_id
        ).first()
        if pref is None:
            pref = models.NotificationPreference(user_id=user_id, **DEFAULT_PREFERENCES)
            self.db.add(pref)
        for key, value in changes.items():
            setattr(pref, key, value)
        self.db.commit()
        self.db.refresh(pref)
        return pref

    def wants_email(self, user_id: uuid.UUID) -> bool:
        return self.get_preferences(user_id).email_frequency != EMAIL_FREQUENCY_NONE

    def wants_policy_email(self, user_id: uuid.UUID) -> bool:
        """Policy review and acknowledgment emails also honour the policy_reminders switch."""
        pref = self.get_preferences(user_id)
        return pref.email_frequency != EMAIL_FREQUENCY_NONE and bool(pref.policy_reminders)

    # === In-App Notifications ===

    def create_notification(
        self,
        practice_id: uuid.UUID,
        user_id: uuid.UUID,
        notification_type: str,
        title: str,
        message: str,
        priority: str = 'normal',
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        expires_days: Optional[int] = 30,
    ) -> models.Notification:
        """Create an in-app notification for a user. ``expires_days=None`` never expires."""
        expires_at = datetime.now(UTC) + timedelta(days=expires_days) if expires_days else None
        notification = models.Notification(
            practice_id=practice_id,
            user_id=user_id,
            notification_type=notification_type,
            priority=priority,
            title=title,
            message=message,
            action_url=action_url,
            expires_at=expires_at,
        )
        if metadata:
            notification.set_metadata(metadata)
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def notify_practice_managers(
        self,
        practice_id: uuid.UUID,
        notification_type: str,
        title: str,
        message: str,
        priority: str = 'normal',
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        expires_days: Optional[int] = 30,
    ) -> List[models.Notification]:
        """Send the same notification to every manager of the practice."""
        created = []
        for manager in get_practice_managers(self.db, practice_id):
            created.append(self.create_notification(
                practice_id=practice_id,
                user_id=manager.id,
                notification_type=notification_type,
                title=title,
                message=message,
                priority=priority,
                action_url=action_url,
                metadata=metadata,
                expires_days=expires_days,
            ))
        return created

    def _visible_query(self, user_id: uuid.UUID):
        now = datetime.now(UTC)
        return self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            (models.Notification.expires_at.is_(None)) | (models.Notification.expires_at > now),
        )

    def get_user_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[models.Notification]:
        """Non-expired notifications for a user, most recent first."""
        query = self._visible_query(user_id)
        if unread_only:
            query = query.filter(models.Notification.is_read.is_(False))
        return query.order_by(desc(models.Notification.created_at)).limit(limit).all()

    def get_total_count(self, user_id: uuid.UUID) -> int:
        return self._visible_query(user_id).count()

    def get_unread_count(self, user_id: uuid.UUID) -> int:
        return self._visible_query(user_id).filter(models.Notification.is_read.is_(False)).count()

    def mark_notification_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.Notification]:
        """Mark one of the user's notifications read; None when not found or not owned."""
        notification = self.db.query(models.Notification).filter(
            and_(
                models.Notification.id == notification_id,
                models.Notification.user_id == user_id,
            )
        ).first()
        if not notification:
            return None
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: uuid.UUID) -> int:
        now = datetime.now(UTC)
        count = self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read.is_(False),
        ).update({"is_read": True, "read_at": now}, synchronize_session=False)
        self.db.commit()
        return count

    # === Email ===

    def create_email_log(
        self,
        practice_id: Optional[uuid.UUID],
        recipient_email: str,
        subject: str,
        email_type: str,
        recipient_name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> models.EmailLog:
        email_log = models.EmailLog(
            practice_id=practice_id,
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            subject=subject,
            email_type=email_type,
            status='pending',
        )
        if metadata:
            email_log.set_metadata(metadata)
        self.db.add(email_log)
        self.db.commit()
        self.db.refresh(email_log)
        return email_log

    def update_email_status(
        self,
        email_log: models.EmailLog,
        status: str,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> models.EmailLog:
        email_log.status = status
        if provider_message_id:
            email_log.resend_email_id = provider_message_id
        if status == 'sent':
            email_log.sent_at = datetime.now(UTC)
            email_log.error_message = None
        elif error_message:
            email_log.error_message = error_message
        self.db.commit()
        self.db.refresh(email_log)
        return email_log

    async def send_email_notification(
        self,
        email_log: models.EmailLog,
        template_name: str,
        template_context: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Render and send one logged email, recording the outcome on the log."""
        try:
            html_content, text_content = self.email_service.render_template(template_name, template_context)
            result = await self.email_service.send_email(
                to_email=email_log.recipient_email,
                subject=email_log.subject,
                html_content=html_content,
                text_content=text_content,
                tags={"email_type": email_log.email_type},
            )
        except Exception as e:
            logger.exception("email_send_error: log_id=%s", email_log.id)
            result = {'success': False, 'error': f"Failed to send email: {e}"}

        if result.get('success'):
            self.update_email_status(email_log, 'sent', provider_message_id=result.get('message_id'))
            return {'success': True, 'email_log_id': email_log.id, 'message_id': result.get('message_id')}

        self.update_email_status(email_log, 'failed', error_message=result.get('error', 'Unknown error'))
        return {'success': False, 'email_log_id': email_log.id, 'error': result.get('error')}

    def deliver_email(
        self,
        practice_id: Optional[uuid.UUID],
        recipient_email: str,
        recipient_name: Optional[str],
        subject: str,
        email_type: str,
        template_name: str,
        template_context: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Log and send an email synchronously. The template and context are kept for retries."""
        email_log = self.create_email_log(
            practice_id=practice_id,
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            subject=subject,
            email_type=email_type,
            metadata={'template': template_name, 'context': template_context},
        )
        if not outbound_email_enabled():
            self.update_email_status(email_log, 'failed', error_message='Email notifications disabled')
            return {'success': False, 'email_log_id': email_log.id, 'error': 'Email notifications disabled'}
        return asyncio.run(self.send_email_notification(email_log, template_name, template_context))

    def retry_email(self, email_log: models.EmailLog) -> Dict[str, Any]:
        """Re-send a failed or bounced email with its stored template context."""
        stored = email_log.get_metadata() or {}
        template_name = stored.get('template')
        if not template_name:
            return {'success': False, 'email_log_id': email_log.id, 'error': 'No template recorded for this email'}
        email_log.bounced_at = None
        email_log.bounce_type = None
        email_log.bounce_reason = None
        email_log.status = 'pending'
        self.db.commit()
        return asyncio.run(self.send_email_notification(email_log, template_name, stored.get('context') or {}))

    # === Cleanup ===

    def cleanup_expired_notifications(self) -> int:
        """Remove notifications past their expiry; returns the number removed."""
        expired = self.db.query(models.Notification).filter(
            models.Notification.expires_at <= datetime.now(UTC)
        )
        count = expired.count()
        expired.delete(synchronize_session=False)
        self.db.commit()
        return count


def get_notification_service(db: Session) -> NotificationService:
    return NotificationService(db)
