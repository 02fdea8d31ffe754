"""
Starting processes for a newly set up practice.

A new practice gets a default set of process templates; once staff are
added, the first round of tasks is created from the active templates and
handed to the staff who hold each template's responsible role.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from compliance.db import models
from compliance.db.models import now_utc
from compliance.db.repositories import processes as process_repo
from compliance.db.repositories.practices import get_active_users, get_practice_managers
from compliance.utils.dates import add_months

logger = logging.getLogger(__name__)

DEFAULT_PROCESS_TEMPLATES: List[Dict[str, Any]] = [
    {
        "name": "Fridge Temperature Check",
        "module": "fridge_temps",
        "frequency": "twice_daily",
        "sla_hours": 4,
        "responsible_role": "nurse",
        "description": "Morning and afternoon fridge temperature monitoring",
    },
    {
        "name": "Daily Cleaning Checklist",
        "module": "cleaning",
        "frequency": "daily",
        "sla_hours": 24,
        "responsible_role": "reception",
        "description": "Daily cleaning schedule and sign-off",
    },
    {
        "name": "Six-Monthly Infection Control Audit",
        "module": "infection_control",
        "frequency": "quarterly",
        "sla_hours": 168,
        "responsible_role": "nurse_lead",
        "description": "Comprehensive infection prevention and control audit (May & December)",
    },
    {
        "name": "Annual Fire Risk Assessment",
        "module": "fire_safety",
        "frequency": "annually",
        "sla_hours": 720,
        "responsible_role": "estates_lead",
        "description": "Annual fire risk assessment with action plan",
    },
    {
        "name": "Monthly Enhanced Service Claims Review",
        "module": "claims",
        "frequency": "monthly",
        "sla_hours": 240,
        "responsible_role": "practice_manager",
        "description": "Review and process enhanced service claims (5th, 10th, 15th)",
    },
    {
        "name": "Policy Annual Review",
        "module": "policies",
        "frequency": "annually",
        "sla_hours": 168,
        "responsible_role": "ig_lead",
        "description": "Annual review of practice policies and procedures",
    },
]


class NoActiveTemplatesError(Exception):
    """The practice has no active process templates to start tasks from."""


def seed_process_templates(db: Session, practice_id: uuid.UUID) -> List[models.ProcessTemplate]:
    """Add the default templates unless the practice already has some."""
    if process_repo.get_process_templates(db, practice_id):
        return []
    templates = [
        models.ProcessTemplate(practice_id=practice_id, steps=[], is_active=True, **spec)
        for spec in DEFAULT_PROCESS_TEMPLATES
    ]
    db.add_all(templates)
    db.commit()
    logger.info("process_templates_seeded: practice_id=%s count=%s", practice_id, len(templates))
    return templates


def first_due_at(frequency: Optional[str], now: datetime) -> datetime:
    if frequency == "daily":
        return now + timedelta(days=1)
    if frequency == "monthly":
        return add_months(now, 1)
    if frequency == "quarterly":
        return add_months(now, 3)
    return now + timedelta(days=7)


def create_initial_tasks(db: Session, practice_id: uuid.UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
    """One pending task per active template for each holder of its role, or for the managers when nobody does."""
    now = now or now_utc()
    templates = [t for t in process_repo.get_process_templates(db, practice_id) if t.is_active]
    if not templates:
        raise NoActiveTemplatesError("No templates found for this practice")

    users = get_active_users(db, practice_id)
    managers = get_practice_managers(db, practice_id)
    tasks = []
    for template in templates:
        assignees = [u for u in users if u.role == template.responsible_role] or managers
        due_at = first_due_at(template.frequency, now)
        for user in assignees:
            tasks.append(models.Task(
                practice_id=practice_id,
                template_id=template.id,
                title=template.name,
                description=template.description,
                assignee_id=user.id,
                status="pending",
                due_at=due_at,
                module=template.module,
                metadata_json={
                    "period_start": now.isoformat(),
                    "period_end": due_at.isoformat(),
                    "steps": [
                        {"index": index, "title": step.get("title"), "status": "pending"}
                        for index, step in enumerate(template.steps or [])
                    ],
                },
            ))
    db.add_all(tasks)
    db.commit()
    logger.info("initial_tasks_created: practice_id=%s templates=%s tasks=%s", practice_id, len(templates), len(tasks))
    return {"templates_used": len(templates), "tasks_created": len(tasks)}
