import uuid

import pytest

from compliance.audit import AuditAction, action_for_method, parse_entity_path, record_mutation
from compliance.db import models


PID = "3f2b8c1e-1111-4a4a-9b9b-123456789abc"
EID = "7d1e2f3a-2222-4b4b-8c8c-abcdefabcdef"


@pytest.mark.parametrize("method,action", [
    ("POST", AuditAction.CREATE),
    ("patch", AuditAction.UPDATE),
    ("DELETE", AuditAction.DELETE),
    ("GET", None),
    ("PUT", None),
])
def test_action_for_method(method, action):
    assert action_for_method(method) == action


@pytest.mark.parametrize("path,expected", [
    (f"/api/practices/{PID}/tasks", ("tasks", None)),
    (f"/api/practices/{PID}/tasks/{EID}", ("tasks", EID)),
    (f"/api/practices/{PID}/training-records/{EID}", ("training-records", EID)),
    (f"/api/practices/{PID}/policies/{EID}/request-approval", ("policies", EID)),
    (f"/api/practices/{PID}", ("practice", PID)),
    ("/api/auth/login", None),
    ("/api/jobs/complaints-sla-scan", None),
])
def test_parse_entity_path(path, expected):
    assert parse_entity_path(path) == expected


def test_record_mutation_uses_response_id_on_create(db_session, practice):
    entity_id = uuid.uuid4()
    row = record_mutation(
        db_session,
        method="POST",
        path=f"/api/practices/{practice.id}/incidents",
        status_code=201,
        practice_id=str(practice.id),
        user_id=None,
        body={"id": str(entity_id), "category": "clinical"},
        ip_address="10.0.0.1",
        user_agent="pytest",
    )
    assert row is not None
    assert row.entity_type == "incidents"
    assert row.entity_id == entity_id
    assert row.action == "create"
    assert row.after_data["category"] == "clinical"
    assert row.before_data is None
    assert row.ip_address == "10.0.0.1"


def test_record_mutation_delete_has_no_after_data(db_session, practice):
    entity_id = uuid.uuid4()
    row = record_mutation(
        db_session,
        method="DELETE",
        path=f"/api/practices/{practice.id}/tasks/{entity_id}",
        status_code=204,
        practice_id=practice.id,
        body=None,
    )
    assert row.action == "delete"
    assert row.entity_id == entity_id
    assert row.after_data is None


def test_record_mutation_skips_failures_and_missing_ids(db_session, practice):
    assert record_mutation(
        db_session,
        method="POST",
        path=f"/api/practices/{practice.id}/tasks",
        status_code=422,
        practice_id=practice.id,
        body={"id": str(uuid.uuid4())},
    ) is None
    assert record_mutation(
        db_session,
        method="PATCH",
        path=f"/api/practices/{practice.id}/notifications/read-all",
        status_code=200,
        practice_id=practice.id,
        body={"count": 3},
    ) is None
    assert db_session.query(models.AuditLog).count() == 0
