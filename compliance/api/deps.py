"""
API dependency helpers.

Resolves the session user, enforces that practice-scoped routes only touch
the session's own practice, and gates routes on role capabilities.
"""
import hmac
import logging
import os
import uuid
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from compliance.db import models
from compliance.db.database import get_db
from compliance.utils.role_permissions import capabilities_for, has_capability, is_manager

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"
SESSION_PRACTICE_KEY = "practice_id"


def start_session(request: Request, user: models.User) -> None:
    request.session[SESSION_USER_KEY] = str(user.id)
    request.session[SESSION_PRACTICE_KEY] = str(user.practice_id)


def clear_session(request: Request) -> None:
    request.session.clear()


def build_user_context(user: models.User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "practice_id": user.practice_id,
        "is_practice_manager": is_manager(user),
        "capabilities": capabilities_for(user),
    }


# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if there is no usable session.

def get_current_user_context(
    request: Request,
    db: Session = Depends(get_db),
) -> Tuple[models.User, Dict[str, Any]]:
    raw_user_id = request.session.get(SESSION_USER_KEY)
    if not raw_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        user_id = uuid.UUID(str(raw_user_id))
    except ValueError:
        clear_session(request)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = db.get(models.User, user_id)
    if user is None:
        clear_session(request)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is disabled")
    return user, build_user_context(user)


def get_practice_context(
    practice_id: uuid.UUID,
    request: Request,
    user_context=Depends(get_current_user_context),
) -> Tuple[models.User, Dict[str, Any]]:
    """Current user context, rejecting any practice other than the session's."""
    user, current_user = user_context
    session_practice = request.session.get(SESSION_PRACTICE_KEY) or str(user.practice_id)
    if str(practice_id) != str(session_practice) or practice_id != user.practice_id:
        logger.warning("practice_scope_denied: user_id=%s requested=%s", user.id, practice_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied for this practice")
    return user, current_user


def require_capability(capability: str):
    """Dependency factory: practice context plus a capability check."""

    def _dependency(user_context=Depends(get_practice_context)) -> Tuple[models.User, Dict[str, Any]]:
        user, current_user = user_context
        if not has_capability(user, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing capability: {capability}",
            )
        return user, current_user

    return _dependency


def require_job_token(x_job_token: Optional[str] = Header(default=None, alias="X-Job-Token")) -> None:
    """Authorize cron-triggered job calls with the shared EDGE_CRON_SECRET."""
    expected = os.getenv("EDGE_CRON_SECRET", "")
    if not expected:
        logger.error("job_auth_misconfigured: EDGE_CRON_SECRET is not set")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Job secret not configured")
    if not x_job_token or not hmac.compare_digest(x_job_token, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid job token")
