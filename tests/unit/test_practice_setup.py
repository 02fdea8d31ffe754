from datetime import datetime, timedelta, UTC

import pytest

from compliance.db import models
from compliance.services import practice_setup

NOW = datetime(2025, 1, 31, 9, 0, tzinfo=UTC)


def _template(db, practice, name, role, frequency="weekly", is_active=True, steps=None):
    template = models.ProcessTemplate(
        practice_id=practice.id,
        name=name,
        module="general",
        frequency=frequency,
        responsible_role=role,
        steps=steps or [],
        is_active=is_active,
    )
    db.add(template)
    db.commit()
    return template


def test_seed_process_templates_once(db_session, practice):
    seeded = practice_setup.seed_process_templates(db_session, practice.id)

    assert len(seeded) == 6
    names = {t.name for t in db_session.query(models.ProcessTemplate).filter_by(practice_id=practice.id)}
    assert "Fridge Temperature Check" in names
    assert "Policy Annual Review" in names
    assert practice_setup.seed_process_templates(db_session, practice.id) == []


def test_seed_skips_practice_with_templates(db_session, practice):
    _template(db_session, practice, "Our Own Check", "reception")
    assert practice_setup.seed_process_templates(db_session, practice.id) == []


@pytest.mark.parametrize("frequency,expected", [
    ("daily", NOW + timedelta(days=1)),
    ("weekly", NOW + timedelta(days=7)),
    ("monthly", datetime(2025, 2, 28, 9, 0, tzinfo=UTC)),
    ("quarterly", datetime(2025, 4, 30, 9, 0, tzinfo=UTC)),
    ("annually", NOW + timedelta(days=7)),
    (None, NOW + timedelta(days=7)),
])
def test_first_due_at(frequency, expected):
    assert practice_setup.first_due_at(frequency, NOW) == expected


def test_initial_tasks_go_to_role_holders_or_managers(db_session, practice, manager, user_factory):
    nurse_a = user_factory(practice, role="nurse", name="Ann Nurse")
    nurse_b = user_factory(practice, role="nurse", name="Bea Nurse")
    user_factory(practice, role="nurse", name="Old Nurse", is_active=False)
    fridge = _template(
        db_session, practice, "Fridge Temperature Check", "nurse", frequency="daily",
        steps=[{"title": "Read thermometer"}, {"title": "Reset min/max"}],
    )
    _template(db_session, practice, "Fire Risk Assessment", "estates_lead", frequency="monthly")
    _template(db_session, practice, "Retired Check", "nurse", is_active=False)

    result = practice_setup.create_initial_tasks(db_session, practice.id, now=NOW)

    assert result == {"templates_used": 2, "tasks_created": 3}
    tasks = db_session.query(models.Task).filter_by(practice_id=practice.id).all()
    fridge_tasks = [t for t in tasks if t.template_id == fridge.id]
    assert {t.assignee_id for t in fridge_tasks} == {nurse_a.id, nurse_b.id}
    assert fridge_tasks[0].metadata_json["steps"] == [
        {"index": 0, "title": "Read thermometer", "status": "pending"},
        {"index": 1, "title": "Reset min/max", "status": "pending"},
    ]
    [fire] = [t for t in tasks if t.title == "Fire Risk Assessment"]
    assert fire.assignee_id == manager.id
    assert fire.status == "pending"


def test_initial_tasks_need_active_templates(db_session, practice, manager):
    _template(db_session, practice, "Retired Check", "nurse", is_active=False)
    with pytest.raises(practice_setup.NoActiveTemplatesError):
        practice_setup.create_initial_tasks(db_session, practice.id, now=NOW)
