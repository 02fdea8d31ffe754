"""
Runtime configuration read from the environment.

Session and cookie settings, the on/off switches for AI assistance and
outbound email, and the email provider settings. Values are read from the
environment on every call.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

SESSION_MAX_AGE_SECONDS = 7 * 24 * 60 * 60
MIN_SESSION_SECRET_LENGTH = 32

_DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
]

_OFF_VALUES = {"", "0", "false", "no", "off"}
_ON_VALUES = {"1", "true", "yes", "on"}

DEFAULT_EMAIL_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

# provider -> settings that must be non-empty before it can send
_EMAIL_PROVIDER_REQUIREMENTS: Dict[str, Tuple[str, ...]] = {
    "resend": ("FROM_EMAIL", "RESEND_API_KEY"),
    "mailgun": ("FROM_EMAIL", "MAILGUN_API_KEY", "MAILGUN_DOMAIN"),
}


def is_production() -> bool:
    return os.getenv("APP_ENV", "development").strip().lower() == "production"


def get_session_secret() -> str:
    """Return SESSION_SECRET; refuse to run with a missing or short secret."""
    secret = os.getenv("SESSION_SECRET", "")
    if len(secret) < MIN_SESSION_SECRET_LENGTH:
        raise RuntimeError(
            f"SESSION_SECRET must be set and at least {MIN_SESSION_SECRET_LENGTH} characters long"
        )
    return secret


def get_session_cookie_name() -> str:
    return os.getenv("SESSION_COOKIE_NAME", "gpc_session")


def get_cors_origins() -> List[str]:
    origins = list(_DEFAULT_CORS_ORIGINS)
    extra = os.getenv("CORS_ORIGINS", "")
    origins.extend(o.strip() for o in extra.split(",") if o.strip())
    return origins


def get_app_base_url() -> str:
    return os.getenv("APP_BASE_URL", "http://localhost:5173").rstrip("/")


def env_switch(name: str, default: bool = True) -> bool:
    """Read an on/off environment switch; unrecognised values keep the default."""
    raw: Optional[str] = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _OFF_VALUES:
        return False
    if value in _ON_VALUES:
        return True
    return default


def ai_assistance_enabled() -> bool:
    return env_switch("AI_FEATURES_ENABLED")


def outbound_email_enabled() -> bool:
    return env_switch("EMAIL_NOTIFICATIONS_ENABLED")


@dataclass(frozen=True)
class EmailSettings:
    provider: str = "resend"
    from_email: str = "noreply@gp-compliance.app"
    from_name: str = "GP Compliance"
    reply_to: str = ""
    resend_api_key: str = ""
    mailgun_api_key: str = ""
    mailgun_domain: str = ""
    template_dir: str = str(DEFAULT_EMAIL_TEMPLATE_DIR)

    @property
    def sender(self) -> str:
        return f"{self.from_name} <{self.from_email}>"

    def missing(self) -> List[str]:
        """Environment variables the chosen provider still needs."""
        required = _EMAIL_PROVIDER_REQUIREMENTS.get(self.provider)
        if required is None:
            return ["EMAIL_PROVIDER"]
        present = {
            "FROM_EMAIL": self.from_email,
            "RESEND_API_KEY": self.resend_api_key,
            "MAILGUN_API_KEY": self.mailgun_api_key,
            "MAILGUN_DOMAIN": self.mailgun_domain,
        }
        return [name for name in required if not present[name]]


def get_email_settings() -> EmailSettings:
    return EmailSettings(
        provider=os.getenv("EMAIL_PROVIDER", "resend").strip().lower(),
        from_email=os.getenv("FROM_EMAIL", EmailSettings.from_email),
        from_name=os.getenv("FROM_NAME", EmailSettings.from_name),
        reply_to=os.getenv("REPLY_TO_EMAIL", ""),
        resend_api_key=os.getenv("RESEND_API_KEY", ""),
        mailgun_api_key=os.getenv("MAILGUN_API_KEY", ""),
        mailgun_domain=os.getenv("MAILGUN_DOMAIN", ""),
        template_dir=os.getenv("EMAIL_TEMPLATE_DIR", str(DEFAULT_EMAIL_TEMPLATE_DIR)),
    )
