"""
Resend delivery events.

Resend signs its webhooks the Svix way: the HMAC-SHA256 of
``{svix-id}.{svix-timestamp}.{body}`` keyed with the base64 part of the
``whsec_`` secret, sent base64 encoded as one or more ``v1,<sig>`` entries.
"""
import base64
import binascii
import hashlib
import hmac
import logging
import os
import time
from datetime import datetime, UTC
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.orm import Session

from compliance.db import models
from compliance.db.repositories.notifications import get_email_log_by_provider_id

logger = logging.getLogger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300

_TERMINAL_FAILURE_STATUSES = ("bounced", "complained")


class WebhookVerificationError(Exception):
    """Raised when a webhook cannot be authenticated."""


def get_webhook_secret() -> str:
    secret = os.getenv("RESEND_WEBHOOK_SECRET", "").strip()
    if not secret:
        raise WebhookVerificationError("Missing RESEND_WEBHOOK_SECRET")
    return secret


def _signing_key(secret: str) -> bytes:
    encoded = secret[len("whsec_"):] if secret.startswith("whsec_") else secret
    try:
        return base64.b64decode(encoded)
    except (binascii.Error, ValueError):
        raise WebhookVerificationError("Invalid webhook secret")


def sign_payload(secret: str, msg_id: str, timestamp: str, body: bytes) -> str:
    to_sign = f"{msg_id}.{timestamp}.".encode("utf-8") + body
    digest = hmac.new(_signing_key(secret), to_sign, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_svix_signature(
    secret: str,
    headers: Mapping[str, str],
    body: bytes,
    now: Optional[float] = None,
) -> None:
    """Raise WebhookVerificationError unless the Svix headers sign ``body``."""
    msg_id = headers.get("svix-id")
    timestamp = headers.get("svix-timestamp")
    signature_header = headers.get("svix-signature")
    if not msg_id or not timestamp or not signature_header:
        raise WebhookVerificationError("Missing Svix signature headers")

    try:
        sent_at = int(timestamp)
    except ValueError:
        raise WebhookVerificationError("Invalid Svix timestamp")
    current = time.time() if now is None else now
    if abs(current - sent_at) > SIGNATURE_TOLERANCE_SECONDS:
        raise WebhookVerificationError("Svix timestamp outside tolerance")

    expected = sign_payload(secret, msg_id, timestamp, body)
    for entry in signature_header.split():
        version, _, signature = entry.partition(",")
        if version == "v1" and hmac.compare_digest(signature, expected):
            return
    raise WebhookVerificationError("No matching Svix signature")


def apply_provider_event(db: Session, event: Dict[str, Any]) -> Dict[str, Any]:
    """Apply one Resend event to its email log. Unknown ids and types are acknowledged."""
    event_type = event.get("type") or ""
    data = event.get("data") or {}
    email_id = data.get("email_id")

    email_log = get_email_log_by_provider_id(db, email_id) if email_id else None
    if email_log is None:
        logger.info("resend_webhook_unknown_email: email_id=%s", email_id)
        return {"success": True, "message": "Email log not found, but webhook acknowledged"}

    now = datetime.now(UTC)
    status = email_log.status

    if event_type == "email.sent":
        email_log.status = "sent"
    elif event_type == "email.delivered":
        email_log.status = "delivered"
        email_log.delivered_at = now
    elif event_type == "email.delivery_delayed":
        email_log.status = "delayed"
    elif event_type == "email.complained":
        email_log.status = "complained"
        email_log.complained_at = now
    elif event_type == "email.bounced":
        bounce = data.get("bounce") or {}
        email_log.status = "bounced"
        email_log.bounced_at = now
        email_log.bounce_type = bounce.get("bounceType") or "unknown"
        email_log.bounce_reason = bounce.get("bounceSubType")
    elif event_type == "email.opened":
        if status not in _TERMINAL_FAILURE_STATUSES:
            email_log.opened_at = now
            if status == "delivered":
                email_log.status = "opened"
    elif event_type == "email.clicked":
        if status not in _TERMINAL_FAILURE_STATUSES:
            email_log.clicked_at = now
            if status in ("delivered", "opened"):
                email_log.status = "clicked"
    else:
        logger.info("resend_webhook_unhandled: type=%s", event_type)
        return {"success": True, "message": f"Event type {event_type} acknowledged but not processed"}

    db.commit()
    logger.info("resend_webhook_applied: email_id=%s type=%s status=%s", email_id, event_type, email_log.status)
    return {
        "success": True,
        "message": "Webhook processed successfully",
        "event_type": event_type,
        "email_id": email_id,
    }
