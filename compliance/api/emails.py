"""
Email log endpoints and the Resend delivery webhook.
"""
from typing import Any, Dict, List, Optional
import json
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from compliance.api.deps import require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import notifications as notification_repo
from compliance.services.email_events import (
    WebhookVerificationError,
    apply_provider_event,
    get_webhook_secret,
    verify_svix_signature,
)
from compliance.services.notification_service import NotificationService
from compliance.utils.role_permissions import CAP_RUN_REPORTS, CAP_VIEW_REPORTS

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = ("failed", "bounced")

router = APIRouter(prefix="/api/practices/{practice_id}/email-logs", tags=["email-logs"])
webhook_router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.get("", response_model=List[schemas.EmailLog])
def list_email_logs(
    practice_id: uuid.UUID,
    status: Optional[str] = None,
    email_type: Optional[str] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_REPORTS)),
):
    return notification_repo.get_email_logs(
        db, practice_id, status=status, email_type=email_type, skip=skip, limit=limit,
    )


@router.post("/{log_id}/retry")
def retry_email(
    practice_id: uuid.UUID,
    log_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_RUN_REPORTS)),
) -> Dict[str, Any]:
    """Re-send a failed or bounced email."""
    email_log = notification_repo.get_email_log(db, practice_id, log_id)
    if email_log is None:
        raise HTTPException(status_code=404, detail="Email log not found")
    if email_log.status not in RETRYABLE_STATUSES:
        raise HTTPException(status_code=400, detail="Only failed or bounced emails can be retried")

    result = NotificationService(db).retry_email(email_log)
    logger.info("email_retry: log_id=%s success=%s", log_id, result.get("success"))
    return {
        "id": str(email_log.id),
        "success": result.get("success", False),
        "error": result.get("error"),
    }


@webhook_router.post("/resend")
async def resend_webhook(request: Request, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Receive Resend delivery events.

    The raw body is verified against the Svix headers before it is parsed.
    """
    body = await request.body()
    try:
        verify_svix_signature(get_webhook_secret(), request.headers, body)
    except WebhookVerificationError as e:
        logger.warning("resend_webhook_rejected: %s", e)
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    return apply_provider_event(db, event)
