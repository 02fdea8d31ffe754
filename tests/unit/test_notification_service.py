from datetime import datetime, timedelta, UTC

from compliance.db import models
from compliance.services.notification_service import DEFAULT_PREFERENCES, NotificationService
from compliance.services.transactional_email_service import TransactionalEmailService
from compliance.utils.dates import as_utc


def test_preferences_default_until_saved(db_session, manager):
    service = NotificationService(db_session)

    pref = service.get_preferences(manager.id)
    assert pref.email_frequency == DEFAULT_PREFERENCES["email_frequency"]
    assert db_session.query(models.NotificationPreference).count() == 0
    assert service.wants_email(manager.id)

    service.update_preferences(manager.id, {"email_frequency": "none", "policy_reminders": False})
    stored = service.get_preferences(manager.id)
    assert stored.email_frequency == "none"
    assert stored.policy_reminders is False
    assert stored.in_app_enabled is True
    assert not service.wants_email(manager.id)


def test_create_notification_defaults(db_session, practice, manager):
    service = NotificationService(db_session)
    before = datetime.now(UTC)

    notification = service.create_notification(
        practice_id=practice.id,
        user_id=manager.id,
        notification_type="reminder",
        title="Fridge check",
        message="Log the PM reading",
        metadata={"fridge": "Vaccine Fridge"},
    )

    assert notification.priority == "normal"
    assert notification.is_read is False
    assert notification.get_metadata() == {"fridge": "Vaccine Fridge"}
    assert as_utc(notification.expires_at) >= before + timedelta(days=30)


def test_listing_skips_expired_and_counts(db_session, practice, manager):
    service = NotificationService(db_session)
    for title in ("First", "Second", "Third"):
        service.create_notification(practice.id, manager.id, "reminder", title, "body")
    service.create_notification(practice.id, manager.id, "reminder", "Forever", "body", expires_days=None)
    db_session.add(models.Notification(
        practice_id=practice.id,
        user_id=manager.id,
        notification_type="reminder",
        title="Expired",
        message="body",
        expires_at=datetime.now(UTC) - timedelta(minutes=1),
    ))
    db_session.commit()

    titles = {n.title for n in service.get_user_notifications(manager.id)}
    assert titles == {"First", "Second", "Third", "Forever"}
    assert service.get_total_count(manager.id) == 4
    assert service.get_unread_count(manager.id) == 4
    assert len(service.get_user_notifications(manager.id, limit=2)) == 2


def test_mark_read_is_owner_scoped(db_session, practice, manager, user_factory):
    other = user_factory(practice, role="nurse")
    service = NotificationService(db_session)
    notification = service.create_notification(practice.id, manager.id, "reminder", "Mine", "body")
    service.create_notification(practice.id, manager.id, "reminder", "Also mine", "body")

    assert service.mark_notification_read(notification.id, other.id) is None

    marked = service.mark_notification_read(notification.id, manager.id)
    assert marked.is_read is True
    assert marked.read_at is not None
    assert service.get_unread_count(manager.id) == 1
    assert len(service.get_user_notifications(manager.id, unread_only=True)) == 1

    assert service.mark_all_read(manager.id) == 1
    assert service.get_unread_count(manager.id) == 0


def test_notify_practice_managers_reaches_each_manager(db_session, practice, manager, user_factory):
    flagged = user_factory(practice, role="nurse", is_practice_manager=True)
    user_factory(practice, role="reception")

    created = NotificationService(db_session).notify_practice_managers(
        practice.id, "reminder", "Heads up", "Quarterly review", priority="high",
    )

    assert {n.user_id for n in created} == {manager.id, flagged.id}
    assert {n.priority for n in created} == {"high"}


def test_deliver_email_without_provider_fails_gracefully(db_session, practice):
    # No RESEND_API_KEY in the test environment.
    service = NotificationService(db_session, email_service=TransactionalEmailService())

    result = service.deliver_email(
        practice_id=practice.id,
        recipient_email="pm@example.com",
        recipient_name="Pat",
        subject="Approval Required: Chaperone Policy",
        email_type="governance_approval_request",
        template_name="governance_approval_request",
        template_context={"entity_name": "Chaperone Policy"},
    )

    assert result["success"] is False
    log = db_session.get(models.EmailLog, result["email_log_id"])
    assert log.status == "failed"
    assert log.error_message == "Email service not configured or initialization failed"
    assert log.get_metadata()["context"] == {"entity_name": "Chaperone Policy"}


def test_retry_email_resends_with_stored_context(db_session, practice, fake_email_sender):
    service = NotificationService(db_session)
    log = service.create_email_log(
        practice_id=practice.id,
        recipient_email="pm@example.com",
        subject="Approval Required: Chaperone Policy",
        email_type="governance_approval_request",
        metadata={"template": "governance_approval_request", "context": {"entity_name": "Chaperone Policy"}},
    )
    log.status = "bounced"
    log.bounce_type = "Permanent"
    db_session.commit()

    result = service.retry_email(log)

    assert result["success"] is True
    db_session.refresh(log)
    assert log.status == "sent"
    assert log.bounce_type is None
    assert log.resend_email_id == "re_test_message"
    assert "Chaperone Policy" in fake_email_sender.send_email.call_args.kwargs["html_content"]


def test_retry_email_without_template(db_session, practice, fake_email_sender):
    service = NotificationService(db_session)
    log = service.create_email_log(practice.id, "pm@example.com", "Hello", "manual")

    result = service.retry_email(log)

    assert result["success"] is False
    assert result["error"] == "No template recorded for this email"
    fake_email_sender.send_email.assert_not_called()
