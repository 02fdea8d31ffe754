import uuid

from tests.helpers import days_from_now, iso


def test_process_template_lifecycle(manager_client, practice):
    base = f"/api/practices/{practice.id}/process-templates"
    created = manager_client.post(base, json={
        "name": "Fridge Temperature Check",
        "module": "fridge",
        "frequency": "twice_daily",
        "responsible_role": "nurse",
        "sla_hours": 4,
        "steps": [{"title": "Read thermometer"}, {"title": "Reset min/max"}],
    })
    assert created.status_code == 201
    template = created.json()
    assert template["steps"][1]["title"] == "Reset min/max"

    assert manager_client.post(base, json={"name": "Bad", "module": "x", "frequency": "hourly"}).status_code == 422

    updated = manager_client.patch(f"{base}/{template['id']}", json={"sla_hours": 2, "is_active": False})
    assert updated.json()["sla_hours"] == 2
    assert updated.json()["is_active"] is False

    assert [t["name"] for t in manager_client.get(base).json()] == ["Fridge Temperature Check"]
    assert manager_client.delete(f"{base}/{template['id']}").status_code == 204
    assert manager_client.delete(f"{base}/{template['id']}").status_code == 404


def test_task_completion_and_overdue(manager_client, practice):
    base = f"/api/practices/{practice.id}/tasks"
    late = manager_client.post(base, json={"title": "Late check", "due_at": iso(days_from_now(-1)), "priority": "high"}).json()
    manager_client.post(base, json={"title": "Future check", "due_at": iso(days_from_now(2))})

    overdue = manager_client.get(f"{base}/overdue").json()
    assert [t["id"] for t in overdue] == [late["id"]]

    done = manager_client.patch(f"{base}/{late['id']}", json={"status": "complete"}).json()
    assert done["completed_at"] is not None
    assert manager_client.get(f"{base}/overdue").json() == []

    reopened = manager_client.patch(f"{base}/{late['id']}", json={"status": "in_progress"}).json()
    assert reopened["completed_at"] is None

    assert [t["title"] for t in manager_client.get(base).json()] == ["Late check", "Future check"]
    assert [t["title"] for t in manager_client.get(base, params={"status": "pending"}).json()] == ["Future check"]


def test_task_with_metadata_and_unknown_template(manager_client, practice):
    base = f"/api/practices/{practice.id}/tasks"
    created = manager_client.post(base, json={
        "title": "Evidence upload",
        "due_at": iso(days_from_now(1)),
        "metadata": {"evidence": ["photo.jpg"]},
    })
    assert created.status_code == 201
    assert created.json()["metadata"] == {"evidence": ["photo.jpg"]}
    assert manager_client.get(f"{base}/{created.json()['id']}").json()["metadata"] == {"evidence": ["photo.jpg"]}

    missing = manager_client.post(base, json={
        "title": "Orphan", "due_at": iso(days_from_now(1)), "template_id": str(uuid.uuid4()),
    })
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Process template not found"


def test_reception_can_work_tasks(reception_client, practice):
    base = f"/api/practices/{practice.id}/tasks"
    created = reception_client.post(base, json={"title": "Open post", "due_at": iso(days_from_now(0.5))})
    assert created.status_code == 201
    assert reception_client.get(base).status_code == 200


def test_employees_and_training(manager_client, practice):
    base = f"/api/practices/{practice.id}"
    employee = manager_client.post(f"{base}/employees", json={
        "name": "Dr Rhys", "role": "gp", "start_date": "2020-01-06",
    }).json()
    leaver = manager_client.post(f"{base}/employees", json={
        "name": "Former Locum", "role": "gp", "start_date": "2019-01-01", "end_date": "2020-01-01",
    }).json()

    active = manager_client.get(f"{base}/employees/active").json()
    assert employee["id"] in [e["id"] for e in active]
    assert leaver["id"] not in [e["id"] for e in active]

    soon = manager_client.post(f"{base}/training-records", json={
        "employee_id": employee["id"],
        "course_name": "Safeguarding Level 3",
        "expiry_date": iso(days_from_now(10)),
        "is_mandatory": True,
    })
    assert soon.status_code == 201
    manager_client.post(f"{base}/training-records", json={
        "employee_id": employee["id"], "course_name": "Manual Handling", "expiry_date": iso(days_from_now(300)),
    })

    expiring = manager_client.get(f"{base}/training-records/expiring", params={"days": 30}).json()
    assert [r["course_name"] for r in expiring] == ["Safeguarding Level 3"]

    by_employee = manager_client.get(f"{base}/training-records", params={"employee_id": employee["id"]}).json()
    assert len(by_employee) == 2

    missing = manager_client.post(f"{base}/training-records", json={
        "employee_id": str(uuid.uuid4()), "course_name": "Fire Safety",
    })
    assert missing.status_code == 404


def test_reception_cannot_see_hr(reception_client, practice):
    response = reception_client.get(f"/api/practices/{practice.id}/training-records")
    assert response.status_code == 403
    assert reception_client.get(f"/api/practices/{practice.id}/employees").status_code == 200


def test_initial_tasks_from_active_templates(manager_client, reception_client, practice):
    path = f"/api/practices/{practice.id}/initial-tasks"
    missing = manager_client.post(path)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "No templates found for this practice"

    manager_client.post(f"/api/practices/{practice.id}/process-templates", json={
        "name": "Daily Cleaning Checklist",
        "module": "cleaning",
        "frequency": "daily",
        "responsible_role": "reception",
    })

    created = manager_client.post(path)
    assert created.status_code == 201
    assert created.json() == {"templates_used": 1, "tasks_created": 1}
    [task] = manager_client.get(f"/api/practices/{practice.id}/tasks").json()
    assert task["title"] == "Daily Cleaning Checklist"
    assert task["assignee_id"] == str(reception_client.user.id)
