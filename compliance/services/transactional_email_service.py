"""
Outbound practice email.

Messages are rendered from the Jinja2 templates under
``compliance/templates/email`` and handed to Resend (the default; its
delivery events come back through ``/api/webhooks/resend``) or to Mailgun's
HTTP API. Provider calls never raise: every send returns a delivery dict
with ``success``, ``provider``, ``message_id`` and ``error``.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from html import unescape
from typing import Any, Callable, Dict, Optional, Tuple

import requests
import resend
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from compliance.utils.runtime import EmailSettings, get_email_settings

logger = logging.getLogger(__name__)

NOT_CONFIGURED_ERROR = "Email service not configured or initialization failed"
MAILGUN_API_BASE = "https://api.mailgun.net/v3"
MAILGUN_TIMEOUT_SECONDS = 15


@dataclass
class OutboundEmail:
    to_email: str
    subject: str
    html: str
    text: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)


def delivery_result(provider: str, message_id: Optional[str] = None, error: Optional[str] = None) -> Dict[str, Any]:
    return {"success": error is None, "provider": provider, "message_id": message_id, "error": error}


def send_with_resend(settings: EmailSettings, email: OutboundEmail) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "from": settings.sender,
        "to": [email.to_email],
        "subject": email.subject,
        "html": email.html,
    }
    if email.text:
        params["text"] = email.text
    if settings.reply_to:
        params["reply_to"] = settings.reply_to
    if email.tags:
        params["tags"] = [{"name": name, "value": value} for name, value in email.tags.items()]

    resend.api_key = settings.resend_api_key
    try:
        sent = resend.Emails.send(params)
    except Exception as e:
        return delivery_result("resend", error=str(e))
    return delivery_result("resend", message_id=sent["id"])


def send_with_mailgun(settings: EmailSettings, email: OutboundEmail) -> Dict[str, Any]:
    form: Dict[str, Any] = {
        "from": settings.sender,
        "to": email.to_email,
        "subject": email.subject,
        "html": email.html,
    }
    if email.text:
        form["text"] = email.text
    if settings.reply_to:
        form["h:Reply-To"] = settings.reply_to
    if email.tags:
        form["o:tag"] = list(email.tags.values())

    try:
        response = requests.post(
            f"{MAILGUN_API_BASE}/{settings.mailgun_domain}/messages",
            auth=("api", settings.mailgun_api_key),
            data=form,
            timeout=MAILGUN_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        return delivery_result("mailgun", error=str(e))
    if response.status_code != 200:
        return delivery_result("mailgun", error=f"HTTP {response.status_code}: {response.text}")
    return delivery_result("mailgun", message_id=response.json().get("id", ""))


SENDERS: Dict[str, Callable[[EmailSettings, OutboundEmail], Dict[str, Any]]] = {
    "resend": send_with_resend,
    "mailgun": send_with_mailgun,
}


def html_to_text(html: str) -> str:
    """Plain-text fallback for templates that ship without a ``.txt`` twin."""
    text = re.sub(r"<(style|head)[^>]*>.*?</\1>", "", html, flags=re.S | re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    return re.sub(r"\s+", " ", unescape(text)).strip()


class TransactionalEmailService:
    """Renders practice email templates and sends them through the configured provider."""

    def __init__(self, settings: Optional[EmailSettings] = None):
        self.settings = settings or get_email_settings()
        missing = self.settings.missing()
        self._send = None if missing else SENDERS[self.settings.provider]
        if missing:
            logger.warning(
                "email_provider_unavailable: provider=%s missing=%s",
                self.settings.provider, ",".join(missing),
            )
        self.templates = Environment(
            loader=FileSystemLoader(self.settings.template_dir),
            autoescape=select_autoescape(["html"]),
        )

    @property
    def is_available(self) -> bool:
        return self._send is not None

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        if self._send is None:
            return delivery_result(self.settings.provider, error=NOT_CONFIGURED_ERROR)

        email = OutboundEmail(to_email, subject, html_content, text_content, dict(tags or {}))
        result = await asyncio.to_thread(self._send, self.settings, email)
        if result["success"]:
            logger.info("email_sent: to=%s provider=%s message_id=%s", to_email, result["provider"], result["message_id"])
        else:
            logger.error("email_send_failed: to=%s provider=%s error=%s", to_email, result["provider"], result["error"])
        return result

    def render_template(self, template_name: str, context: Dict[str, Any]) -> Tuple[str, str]:
        """Return ``(html, text)``; text comes from ``<name>.txt`` or is derived from the HTML."""
        html = self.templates.get_template(f"{template_name}.html").render(**context)
        try:
            text = self.templates.get_template(f"{template_name}.txt").render(**context)
        except TemplateNotFound:
            text = html_to_text(html)
        return html, text


@lru_cache(maxsize=1)
def get_transactional_email_service() -> TransactionalEmailService:
    return TransactionalEmailService()


def reset_transactional_email_service() -> None:
    """Drop the cached instance so the next call re-reads the environment."""
    get_transactional_email_service.cache_clear()
