"""
Governance sign-off notifications.

Requesting approval emails and notifies every user who can approve
governance items; a recorded decision goes back to the item's owner.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from compliance.db import models
from compliance.db.repositories.practices import get_users_with_capability
from compliance.services.notification_service import (
    NotificationService,
    TEMPLATE_GOVERNANCE_COMPLETED,
    TEMPLATE_GOVERNANCE_REQUEST,
    TYPE_GOVERNANCE_COMPLETED,
    TYPE_GOVERNANCE_REQUEST,
)
from compliance.utils.role_permissions import CAP_APPROVE_GOVERNANCE
from compliance.utils.runtime import get_app_base_url

logger = logging.getLogger(__name__)

GOVERNANCE_DASHBOARD_PATH = "/dashboards/governance"

VIEW_PATHS = {
    "policy": "/policies",
    "fire_safety_assessment": "/fire-safety",
    "ipc_audit": "/ipc",
    "room_assessment": "/room-assessments",
    "claim_run": "/claims",
}

_ENTITY_LABELS = {
    "policy": "policy",
    "fire_safety_assessment": "fire safety assessment",
    "ipc_audit": "IPC audit",
    "room_assessment": "room assessment",
    "claim_run": "claim",
}

DECISION_LABELS = {
    "approved": "Approved",
    "rejected": "Rejected",
    "pending_changes": "Changes Requested",
}

_DECISION_ICONS = {"approved": "✅", "rejected": "❌", "pending_changes": "⚠️"}


def format_entity_type(entity_type: str) -> str:
    return _ENTITY_LABELS.get(entity_type, entity_type.replace("_", " "))


def get_approvers(db: Session, practice_id: uuid.UUID) -> List[models.User]:
    return get_users_with_capability(db, practice_id, CAP_APPROVE_GOVERNANCE)


def _practice_name(db: Session, practice_id: uuid.UUID) -> str:
    practice = db.get(models.Practice, practice_id)
    return practice.name if practice else "GP Practice"


def send_approval_request(
    db: Session,
    *,
    practice_id: uuid.UUID,
    entity_type: str,
    entity_id: uuid.UUID,
    entity_name: str,
    requested_by_name: str,
    urgency: str = "medium",
    service: Optional[NotificationService] = None,
) -> Dict[str, Any]:
    service = service or NotificationService(db)
    approvers = get_approvers(db, practice_id)
    if not approvers:
        logger.info("governance_request_skip: no approvers practice_id=%s", practice_id)
        return {"success": True, "emails_sent": 0, "notifications_created": 0}

    practice_name = _practice_name(db, practice_id)
    dashboard_url = f"{get_app_base_url()}{GOVERNANCE_DASHBOARD_PATH}"
    subject = f"Approval Required: {entity_name}"
    emails_sent = 0
    notifications_created = 0

    for approver in approvers:
        if approver.email and service.wants_email(approver.id):
            result = service.deliver_email(
                practice_id=practice_id,
                recipient_email=approver.email,
                recipient_name=approver.name,
                subject=subject,
                email_type=TYPE_GOVERNANCE_REQUEST,
                template_name=TEMPLATE_GOVERNANCE_REQUEST,
                template_context={
                    "manager_name": approver.name or "Approver",
                    "entity_type": format_entity_type(entity_type),
                    "entity_name": entity_name,
                    "entity_id": str(entity_id),
                    "requested_by_name": requested_by_name,
                    "urgency": urgency,
                    "practice_name": practice_name,
                    "dashboard_url": dashboard_url,
                },
            )
            if result.get("success"):
                emails_sent += 1
            else:
                logger.error("governance_request_email_failed: user_id=%s error=%s", approver.id, result.get("error"))

        service.create_notification(
            practice_id=practice_id,
            user_id=approver.id,
            notification_type=TYPE_GOVERNANCE_REQUEST,
            title="Approval Required",
            message=f"{entity_name} requires your sign-off",
            priority="high" if urgency == "high" else "medium",
            action_url=GOVERNANCE_DASHBOARD_PATH,
            metadata={"entity_type": entity_type, "entity_id": str(entity_id)},
        )
        notifications_created += 1

    logger.info("governance_request_done: emails=%s notifications=%s", emails_sent, notifications_created)
    return {"success": True, "emails_sent": emails_sent, "notifications_created": notifications_created}


def send_approval_completed(
    db: Session,
    *,
    practice_id: uuid.UUID,
    entity_type: str,
    entity_id: uuid.UUID,
    entity_name: str,
    decision: str,
    approver_name: str,
    owner_id: Optional[uuid.UUID],
    notes: Optional[str] = None,
    service: Optional[NotificationService] = None,
) -> Dict[str, Any]:
    owner = db.get(models.User, owner_id) if owner_id else None
    if owner is None:
        logger.info("governance_completed_skip: owner not found entity_id=%s", entity_id)
        return {"success": True, "emails_sent": 0, "notifications_created": 0}

    service = service or NotificationService(db)
    label = DECISION_LABELS[decision]
    view_path = VIEW_PATHS.get(entity_type, "/dashboard")
    emails_sent = 0

    if owner.email and service.wants_email(owner.id):
        result = service.deliver_email(
            practice_id=practice_id,
            recipient_email=owner.email,
            recipient_name=owner.name,
            subject=f"{label}: {entity_name}",
            email_type=TYPE_GOVERNANCE_COMPLETED,
            template_name=TEMPLATE_GOVERNANCE_COMPLETED,
            template_context={
                "owner_name": owner.name,
                "entity_type": format_entity_type(entity_type),
                "entity_name": entity_name,
                "entity_id": str(entity_id),
                "decision": decision,
                "decision_label": label,
                "approver_name": approver_name,
                "notes": notes or "",
                "decided_at": datetime.now(UTC).isoformat(),
                "practice_name": _practice_name(db, practice_id),
                "view_url": f"{get_app_base_url()}{view_path}",
            },
        )
        if result.get("success"):
            emails_sent += 1

    service.create_notification(
        practice_id=practice_id,
        user_id=owner.id,
        notification_type=TYPE_GOVERNANCE_COMPLETED,
        title=f"{_DECISION_ICONS[decision]} {label}",
        message=f'Your {format_entity_type(entity_type)} "{entity_name}" has been {decision.replace("_", " ")}',
        priority="high" if decision == "rejected" else "medium",
        action_url=view_path,
        metadata={"entity_type": entity_type, "entity_id": str(entity_id), "decision": decision},
    )
    return {"success": True, "emails_sent": emails_sent, "notifications_created": 1}
