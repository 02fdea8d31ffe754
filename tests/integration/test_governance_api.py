import uuid
from datetime import datetime, timedelta, UTC

from compliance.db import models
from tests.helpers import days_from_now, iso


def _parse(value):
    return datetime.fromisoformat(value)


def test_incident_lifecycle(manager_client, manager, practice):
    base = f"/api/practices/{practice.id}/incidents"
    created = manager_client.post(base, json={
        "category": "clinical",
        "severity": "high",
        "description": "Vaccine stored outside cold chain",
        "date_occurred": iso(days_from_now(-1)),
    })
    assert created.status_code == 201
    incident = created.json()
    assert incident["status"] == "open"
    assert incident["reported_by_id"] == str(manager.id)

    closed = manager_client.patch(f"{base}/{incident['id']}", json={"status": "closed", "root_cause": "Door ajar"}).json()
    assert closed["closed_at"] is not None
    assert closed["closed_by_id"] == str(manager.id)

    reopened = manager_client.patch(f"{base}/{incident['id']}", json={"status": "investigating"}).json()
    assert reopened["closed_at"] is None

    assert manager_client.post(base, json={
        "category": "clinical", "severity": "catastrophic", "description": "x", "date_occurred": iso(days_from_now(0)),
    }).status_code == 422
    assert manager_client.patch(f"{base}/{uuid.uuid4()}", json={"status": "closed"}).status_code == 404


def test_complaint_default_deadlines_and_sla(manager_client, practice):
    base = f"/api/practices/{practice.id}/complaints"
    received = datetime(2025, 3, 3, 9, 0, tzinfo=UTC)
    complaint = manager_client.post(base, json={
        "received_at": iso(received),
        "description": "Could not get an appointment",
        "channel": "email",
    }).json()

    assert _parse(complaint["ack_due"]) == received + timedelta(hours=48)
    assert _parse(complaint["final_due"]) == received + timedelta(days=30)
    assert complaint["sla_status"] == "on_track"

    answered = manager_client.patch(f"{base}/{complaint['id']}", json={
        "ack_sent_at": iso(received + timedelta(hours=20)),
        "final_sent_at": iso(received + timedelta(days=12)),
    }).json()
    assert answered["sla_status"] == "met"
    assert answered["status"] == "resolved"

    late = manager_client.post(base, json={"received_at": iso(received), "description": "Lost referral"}).json()
    breached = manager_client.patch(f"{base}/{late['id']}", json={"final_sent_at": iso(received + timedelta(days=45))}).json()
    assert breached["sla_status"] == "breached"


def test_reception_cannot_manage_complaints(reception_client, practice):
    response = reception_client.post(f"/api/practices/{practice.id}/complaints", json={
        "received_at": iso(days_from_now(0)), "description": "Noise",
    })
    assert response.status_code == 403


def test_ipc_audit_defaults_auditor(manager_client, manager, practice):
    base = f"/api/practices/{practice.id}/ipc-audits"
    audit = manager_client.post(base, json={
        "audit_date": iso(days_from_now(-2)),
        "overall_score": 86,
        "overall_result": "pass",
        "findings": [{"area": "Treatment room", "result": "pass"}],
    })
    assert audit.status_code == 201
    assert audit.json()["auditor_id"] == str(manager.id)

    completed = manager_client.patch(f"{base}/{audit.json()['id']}", json={"status": "complete"}).json()
    assert completed["status"] == "complete"
    assert len(manager_client.get(base).json()) == 1


def test_fridge_units_and_readings(manager_client, manager, practice, reception_client, db_session):
    base = f"/api/practices/{practice.id}"
    fridge = manager_client.post(f"{base}/fridges", json={"name": "Vaccine Fridge", "location": "Room 2"})
    assert fridge.status_code == 201
    fridge_id = fridge.json()["id"]

    assert manager_client.post(f"{base}/fridges", json={"name": "Upside down", "min_temp": 9, "max_temp": 3}).status_code == 422

    ok = reception_client.post(f"{base}/fridge-readings", json={
        "fridge_id": fridge_id, "reading_date": iso(days_from_now(0)), "log_time": "AM", "temperature": 4.5,
    })
    assert ok.status_code == 201
    assert ok.json()["is_out_of_range"] is False
    assert ok.json()["recorded_by"] == str(reception_client.user.id)

    warm = reception_client.post(f"{base}/fridge-readings", json={
        "fridge_id": fridge_id, "reading_date": iso(days_from_now(0)), "log_time": "PM", "temperature": 9.2,
    })
    assert warm.json()["is_out_of_range"] is True

    alerts = db_session.query(models.Notification).filter(models.Notification.user_id == manager.id).all()
    assert [(n.notification_type, n.priority) for n in alerts] == [("fridge_temp_alert", "urgent")]
    assert alerts[0].message.startswith("Fridge Temperature Out of Range - Vaccine Fridge at 9.2°C")

    action = reception_client.patch(f"{base}/fridge-readings/{warm.json()['id']}", json={
        "action_taken": "Moved stock", "outcome": "Recovered to 6.0",
    })
    assert action.json()["outcome"] == "Recovered to 6.0"

    listing = manager_client.get(f"{base}/fridge-readings", params={"fridge_id": fridge_id}).json()
    assert len(listing) == 2

    stats = manager_client.get(f"{base}/fridges/stats", params={"days": 7}).json()
    assert stats["days"] == 7
    assert stats["daily"][-1]["total"] == 2
    assert stats["daily"][-1]["breaches"] == 1
    assert stats["fridges"][0]["compliance_rate"] == 50.0

    unknown = reception_client.post(f"{base}/fridge-readings", json={
        "fridge_id": str(uuid.uuid4()), "reading_date": iso(days_from_now(0)), "temperature": 5,
    })
    assert unknown.status_code == 404


def test_fridge_update_keeps_range_ordered(manager_client, practice):
    base = f"/api/practices/{practice.id}/fridges"
    fridge_id = manager_client.post(base, json={"name": "Vaccine Fridge"}).json()["id"]

    both = manager_client.patch(f"{base}/{fridge_id}", json={"min_temp": 8, "max_temp": 2})
    assert both.status_code == 422

    # compared against the stored max of 8.0
    only_min = manager_client.patch(f"{base}/{fridge_id}", json={"min_temp": 8.5})
    assert only_min.status_code == 422
    assert only_min.json()["detail"] == "min_temp must be below max_temp"

    widened = manager_client.patch(f"{base}/{fridge_id}", json={"max_temp": 9})
    assert widened.status_code == 200
    assert widened.json()["max_temp"] == 9.0


def test_medical_request_workflow(manager_client, practice, employee_factory):
    gp = employee_factory(practice, name="Dr Morgan")
    base = f"/api/practices/{practice.id}/medical-requests"

    received = manager_client.post(base, json={"request_type": "insurance", "notes": "Aviva report"})
    assert received.status_code == 201
    assert received.json()["status"] == "received"
    request_id = received.json()["id"]

    assigned = manager_client.patch(f"{base}/{request_id}", json={"assigned_gp_id": str(gp.id)}).json()
    assert assigned["status"] == "assigned"

    sent = manager_client.patch(f"{base}/{request_id}", json={"status": "sent"}).json()
    assert sent["sent_at"] is not None

    assert manager_client.post(base, json={"request_type": "insurance", "assigned_gp_id": str(uuid.uuid4())}).status_code == 404
    assert manager_client.post(base, json={"request_type": "parking_permit"}).status_code == 422

    analytics = manager_client.get(f"{base}/analytics").json()
    assert analytics["total_received"] == 1
    assert analytics["total_completed"] == 1
    assert analytics["by_type"]["insurance"] == 1
    assert len(analytics["monthly_trend"]) == 6

    assert manager_client.get(f"{base}/{request_id}").json()["assigned_gp_id"] == str(gp.id)
    assert manager_client.get(f"{base}/{uuid.uuid4()}").status_code == 404
