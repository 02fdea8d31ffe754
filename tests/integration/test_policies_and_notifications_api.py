import uuid

from compliance.db import models
from tests.helpers import days_from_now, iso


def _create_policy(test_client, practice, **overrides):
    payload = {"title": "Chaperone Policy", "category": "clinical", **overrides}
    response = test_client.post(f"/api/practices/{practice.id}/policies", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_policy_defaults_owner_and_review_tracking(manager_client, manager, practice):
    policy = _create_policy(manager_client, practice)
    assert policy["owner_id"] == str(manager.id)
    assert policy["status"] == "draft"

    reviewed = manager_client.patch(f"/api/practices/{practice.id}/policies/{policy['id']}", json={
        "last_reviewed_at": iso(days_from_now(0)),
        "next_review_date": iso(days_from_now(365)),
    }).json()
    assert reviewed["last_reviewed_by"] == str(manager.id)


def test_policy_approval_flow(manager_client, manager, practice, db_session, fake_email_sender):
    policy = _create_policy(manager_client, practice)
    base = f"/api/practices/{practice.id}/policies/{policy['id']}"

    assert manager_client.post(f"{base}/approval", json={"decision": "approved"}).status_code == 409

    requested = manager_client.post(f"{base}/request-approval", json={})
    assert requested.status_code == 200
    assert requested.json() == {
        "id": policy["id"],
        "status": "pending_approval",
        "success": True,
        "emails_sent": 1,
        "notifications_created": 1,
    }
    again = manager_client.post(f"{base}/request-approval", json={"urgency": "high"})
    assert again.status_code == 409
    assert again.json()["detail"] == "Policy is already awaiting approval"

    request_note = db_session.query(models.Notification).filter(
        models.Notification.notification_type == "governance_approval_request"
    ).one()
    assert request_note.priority == "medium"

    decided = manager_client.post(f"{base}/approval", json={"decision": "approved", "notes": "Looks good"})
    assert decided.status_code == 200
    body = decided.json()
    assert body["status"] == "active"
    assert body["approved_by"] == str(manager.id)
    assert body["approved_at"] is not None

    completed = db_session.query(models.Notification).filter(
        models.Notification.notification_type == "governance_approval_completed"
    ).one()
    assert completed.user_id == manager.id
    assert completed.message == 'Your policy "Chaperone Policy" has been approved'
    subjects = [call.kwargs["subject"] for call in fake_email_sender.send_email.call_args_list]
    assert subjects == ["Approval Required: Chaperone Policy", "Approved: Chaperone Policy"]


def test_rejected_policy_returns_to_draft(manager_client, practice, db_session):
    policy = _create_policy(manager_client, practice)
    base = f"/api/practices/{practice.id}/policies/{policy['id']}"
    manager_client.post(f"{base}/request-approval", json={})

    rejected = manager_client.post(f"{base}/approval", json={"decision": "rejected"}).json()
    assert rejected["status"] == "draft"
    assert rejected["approved_at"] is None

    completed = db_session.query(models.Notification).filter(
        models.Notification.notification_type == "governance_approval_completed"
    ).one()
    assert completed.priority == "high"


def test_reception_cannot_approve(manager_client, reception_client, practice):
    policy = _create_policy(manager_client, practice)
    base = f"/api/practices/{practice.id}/policies/{policy['id']}"
    manager_client.post(f"{base}/request-approval", json={})

    response = reception_client.post(f"{base}/approval", json={"decision": "approved"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Missing capability: approve_governance"


def test_policy_acknowledgment_is_idempotent(manager_client, reception_client, practice):
    policy = _create_policy(manager_client, practice, status="active")
    path = f"/api/practices/{practice.id}/policy-acknowledgments"

    first = reception_client.post(path, json={"policy_id": policy["id"]})
    second = reception_client.post(path, json={"policy_id": policy["id"]})
    assert first.status_code == 201
    assert second.json()["id"] == first.json()["id"]
    assert first.json()["user_id"] == str(reception_client.user.id)

    acks = manager_client.get(f"/api/practices/{practice.id}/policies/{policy['id']}/acknowledgments").json()
    assert len(acks) == 1

    assert reception_client.post(path, json={"policy_id": str(uuid.uuid4())}).status_code == 404


def test_notification_inbox(manager_client, reception_client, practice):
    base = f"/api/practices/{practice.id}"
    recipient = str(reception_client.user.id)
    for title in ("First", "Second"):
        created = manager_client.post(f"{base}/notifications", json={
            "user_id": recipient,
            "notification_type": "reminder",
            "title": title,
            "message": f"{title} message",
            "metadata": {"source": "test"},
        })
        assert created.status_code == 201
    assert created.json()["metadata"] == {"source": "test"}

    inbox = reception_client.get(f"{base}/notifications").json()
    assert inbox["unread_count"] == 2
    assert inbox["total_count"] == 2
    assert {n["title"] for n in inbox["notifications"]} == {"First", "Second"}

    first_id = inbox["notifications"][0]["id"]
    read = reception_client.patch(f"{base}/notifications/{first_id}/read")
    assert read.json()["is_read"] is True
    assert len(reception_client.get(f"{base}/notifications/unread").json()) == 1

    # another user's notification is invisible
    assert manager_client.patch(f"{base}/notifications/{first_id}/read").status_code == 404

    assert reception_client.patch(f"{base}/notifications/read-all").json() == {"count": 1}
    assert reception_client.get(f"{base}/notifications").json()["unread_count"] == 0


def test_notification_for_user_outside_practice(manager_client, practice, practice_factory, user_factory):
    outsider = user_factory(practice_factory(name="Other Surgery"))
    response = manager_client.post(f"/api/practices/{practice.id}/notifications", json={
        "user_id": str(outsider.id), "notification_type": "reminder", "title": "Hi", "message": "Hello",
    })
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_notification_preferences(reception_client, practice):
    path = f"/api/practices/{practice.id}/notification-preferences"
    defaults = reception_client.get(path).json()
    assert defaults["email_frequency"] == "immediate"
    assert defaults["in_app_enabled"] is True

    updated = reception_client.put(path, json={"email_frequency": "none", "policy_reminders": False}).json()
    assert updated["email_frequency"] == "none"
    assert updated["policy_reminders"] is False
    assert reception_client.get(path).json()["email_frequency"] == "none"

    assert reception_client.put(path, json={"email_frequency": "hourly"}).status_code == 422


def test_scheduled_reminders(reception_client, practice):
    base = f"/api/practices/{practice.id}/scheduled-reminders"
    created = reception_client.post(base, json={
        "reminder_type": "claim_reminder",
        "schedule_pattern": "0 9 1 * *",
        "next_run_at": iso(days_from_now(3)),
        "metadata": {"description": "Quarterly claims"},
    })
    assert created.status_code == 201
    assert created.json()["metadata"] == {"description": "Quarterly claims"}

    paused = reception_client.patch(f"{base}/{created.json()['id']}", json={"is_active": False}).json()
    assert paused["is_active"] is False
    assert [r["id"] for r in reception_client.get(base).json()] == [created.json()["id"]]

    missing = reception_client.patch(f"{base}/{uuid.uuid4()}", json={"is_active": True})
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Scheduled reminder not found"


def test_scheduled_reminder_rejects_impossible_monthly_day(reception_client, practice):
    base = f"/api/practices/{practice.id}/scheduled-reminders"
    payload = {"reminder_type": "claim_reminder", "next_run_at": iso(days_from_now(3))}
    assert reception_client.post(base, json={**payload, "schedule_pattern": "0 9 0 * *"}).status_code == 422
    assert reception_client.post(base, json={**payload, "schedule_pattern": "0 9 32 * *"}).status_code == 422

    created = reception_client.post(base, json={**payload, "schedule_pattern": "0 9 31 * *"})
    assert created.status_code == 201
    patched = reception_client.patch(f"{base}/{created.json()['id']}", json={"schedule_pattern": "0 9 0 * *"})
    assert patched.status_code == 422
