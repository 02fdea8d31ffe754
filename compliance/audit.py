"""
Audit logging helpers and enums.

Maps mutating HTTP requests on practice resources to normalized audit rows.
The HTTP middleware in ``compliance.api.main`` feeds completed responses
through :func:`record_mutation`.
"""
from __future__ import annotations

import logging
import re
import uuid
from enum import Enum
from typing import Any, Optional, Tuple

from sqlalchemy.orm import Session

from compliance.db.repositories import audits as audit_repo

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


METHOD_ACTIONS = {
    "POST": AuditAction.CREATE,
    "PATCH": AuditAction.UPDATE,
    "DELETE": AuditAction.DELETE,
}

PRACTICE_ENTITY = "practice"

_UUID = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
_ENTITY_PATH = re.compile(rf"/api/practices/{_UUID}/([a-z-]+)(?:/({_UUID}))?", re.IGNORECASE)
_PRACTICE_PATH = re.compile(rf"/api/practices/({_UUID})/?$", re.IGNORECASE)


def action_for_method(method: str) -> Optional[AuditAction]:
    return METHOD_ACTIONS.get(method.upper())


def parse_entity_path(path: str) -> Optional[Tuple[str, Optional[str]]]:
    """Return ``(entity_type, entity_id)`` for an auditable path, else None.

    ``/api/practices/{id}/tasks/{task_id}`` yields ``("tasks", task_id)``;
    deeper segments after the id are ignored. A bare practice path yields the
    practice itself.
    """
    match = _ENTITY_PATH.search(path)
    if match:
        return match.group(1).lower(), match.group(2)
    match = _PRACTICE_PATH.search(path)
    if match:
        return PRACTICE_ENTITY, match.group(1)
    return None


def _coerce_uuid(value: Any) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


def record_mutation(
    db: Session,
    *,
    method: str,
    path: str,
    status_code: int,
    practice_id: Any,
    user_id: Any = None,
    body: Any = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
):
    """Persist one audit row for a successful mutation; returns the row or None.

    ``body`` is the decoded JSON response. The entity id comes from the URL,
    falling back to the response's ``id``; without one nothing is written.
    """
    action = action_for_method(method)
    if action is None or not 200 <= status_code < 300:
        return None
    practice_uuid = _coerce_uuid(practice_id)
    if practice_uuid is None:
        return None
    parsed = parse_entity_path(path)
    if parsed is None:
        return None
    entity_type, url_id = parsed

    response_obj = body if isinstance(body, dict) else None
    entity_id = _coerce_uuid(url_id)
    if entity_id is None and response_obj is not None:
        entity_id = _coerce_uuid(response_obj.get("id"))
    if entity_id is None:
        logger.debug("audit_skip: no entity id for %s %s", method, path)
        return None

    return audit_repo.create_audit_log(
        db,
        practice_id=practice_uuid,
        user_id=_coerce_uuid(user_id),
        entity_type=entity_type,
        entity_id=entity_id,
        action=action.value,
        before_data=None,
        after_data=None if action is AuditAction.DELETE else response_obj,
        ip_address=ip_address,
        user_agent=user_agent,
    )


__all__ = ["AuditAction", "METHOD_ACTIONS", "action_for_method", "parse_entity_path", "record_mutation"]
