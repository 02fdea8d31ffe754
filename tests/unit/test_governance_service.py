import uuid

from compliance.db import models
from compliance.services import governance_service
from compliance.services.notification_service import NotificationService


def _notifications_for(db, user):
    return db.query(models.Notification).filter(models.Notification.user_id == user.id).all()


def test_format_entity_type():
    assert governance_service.format_entity_type("ipc_audit") == "IPC audit"
    assert governance_service.format_entity_type("waste_audit") == "waste audit"


def test_get_approvers_filters_by_capability(db_session, practice, practice_factory, manager, user_factory):
    lead = user_factory(practice, role="nurse_lead", name="Alex Lead")
    user_factory(practice, role="reception", name="Sam Reception")
    user_factory(practice, role="nurse_lead", name="Zed Inactive", is_active=False)
    user_factory(practice_factory(name="Other Surgery"), role="practice_manager")

    approvers = governance_service.get_approvers(db_session, practice.id)

    assert [u.id for u in approvers] == [lead.id, manager.id]


def test_approval_request_emails_and_notifies(db_session, practice, manager, user_factory, fake_email_sender):
    lead = user_factory(practice, email="lead@example.com", role="nurse_lead", name="Alex Lead")
    policy_id = uuid.uuid4()

    result = governance_service.send_approval_request(
        db_session,
        practice_id=practice.id,
        entity_type="policy",
        entity_id=policy_id,
        entity_name="Chaperone Policy",
        requested_by_name="Robin Reception",
        urgency="high",
    )

    assert result == {"success": True, "emails_sent": 2, "notifications_created": 2}
    recipients = sorted(call.kwargs["to_email"] for call in fake_email_sender.send_email.call_args_list)
    assert recipients == ["lead@example.com", "manager@example.com"]
    first_call = fake_email_sender.send_email.call_args_list[0].kwargs
    assert first_call["subject"] == "Approval Required: Chaperone Policy"
    assert "Chaperone Policy" in first_call["html_content"]
    assert "Robin Reception" in first_call["text_content"]

    logs = db_session.query(models.EmailLog).all()
    assert {log.status for log in logs} == {"sent"}
    assert {log.resend_email_id for log in logs} == {"re_test_message"}
    assert logs[0].get_metadata()["template"] == "governance_approval_request"

    [notification] = _notifications_for(db_session, lead)
    assert notification.priority == "high"
    assert notification.message == "Chaperone Policy requires your sign-off"
    assert notification.get_metadata() == {"entity_type": "policy", "entity_id": str(policy_id)}


def test_approval_request_respects_email_opt_out(db_session, practice, manager, fake_email_sender):
    NotificationService(db_session).update_preferences(manager.id, {"email_frequency": "none"})

    result = governance_service.send_approval_request(
        db_session,
        practice_id=practice.id,
        entity_type="policy",
        entity_id=uuid.uuid4(),
        entity_name="Consent Policy",
        requested_by_name="Pat Manager",
    )

    assert result == {"success": True, "emails_sent": 0, "notifications_created": 1}
    fake_email_sender.send_email.assert_not_called()
    assert _notifications_for(db_session, manager)[0].priority == "medium"


def test_approval_request_without_approvers(db_session, practice, user_factory, fake_email_sender):
    user_factory(practice, role="reception")
    result = governance_service.send_approval_request(
        db_session,
        practice_id=practice.id,
        entity_type="policy",
        entity_id=uuid.uuid4(),
        entity_name="Consent Policy",
        requested_by_name="Someone",
    )
    assert result == {"success": True, "emails_sent": 0, "notifications_created": 0}


def test_email_disabled_marks_log_failed(db_session, practice, manager, fake_email_sender, monkeypatch):
    monkeypatch.setenv("EMAIL_NOTIFICATIONS_ENABLED", "false")

    result = governance_service.send_approval_request(
        db_session,
        practice_id=practice.id,
        entity_type="ipc_audit",
        entity_id=uuid.uuid4(),
        entity_name="Spring IPC Audit",
        requested_by_name="Pat Manager",
    )

    assert result["emails_sent"] == 0
    assert result["notifications_created"] == 1
    [log] = db_session.query(models.EmailLog).all()
    assert log.status == "failed"
    assert log.error_message == "Email notifications disabled"
    fake_email_sender.send_email.assert_not_called()


def test_approval_completed_goes_to_owner(db_session, practice, manager, user_factory, fake_email_sender):
    owner = user_factory(practice, email="owner@example.com", role="ig_lead", name="Jo Owner")

    result = governance_service.send_approval_completed(
        db_session,
        practice_id=practice.id,
        entity_type="policy",
        entity_id=uuid.uuid4(),
        entity_name="Chaperone Policy",
        decision="rejected",
        approver_name="Pat Manager",
        owner_id=owner.id,
        notes="Missing review date",
    )

    assert result == {"success": True, "emails_sent": 1, "notifications_created": 1}
    call = fake_email_sender.send_email.call_args.kwargs
    assert call["to_email"] == "owner@example.com"
    assert call["subject"] == "Rejected: Chaperone Policy"
    assert "Missing review date" in call["html_content"]
    [notification] = _notifications_for(db_session, owner)
    assert notification.title == "❌ Rejected"
    assert notification.priority == "high"
    assert notification.action_url == "/policies"
    assert notification.message == 'Your policy "Chaperone Policy" has been rejected'
    assert _notifications_for(db_session, manager) == []


def test_approval_completed_without_owner(db_session, practice, fake_email_sender):
    result = governance_service.send_approval_completed(
        db_session,
        practice_id=practice.id,
        entity_type="policy",
        entity_id=uuid.uuid4(),
        entity_name="Orphan Policy",
        decision="approved",
        approver_name="Pat Manager",
        owner_id=None,
    )
    assert result == {"success": True, "emails_sent": 0, "notifications_created": 0}
    fake_email_sender.send_email.assert_not_called()
