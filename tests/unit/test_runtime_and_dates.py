from datetime import date, datetime, timedelta, timezone, UTC

import pytest

from compliance.utils.dates import add_months, as_utc, end_of_day, round1, round_half_up, start_of_day
from compliance.utils.runtime import (
    ai_assistance_enabled,
    env_switch,
    get_app_base_url,
    get_cors_origins,
    get_email_settings,
    get_session_secret,
    is_production,
    outbound_email_enabled,
)


def test_session_secret_must_be_long_enough(monkeypatch):
    monkeypatch.setenv("SESSION_SECRET", "short")
    with pytest.raises(RuntimeError):
        get_session_secret()

    monkeypatch.setenv("SESSION_SECRET", "x" * 32)
    assert get_session_secret() == "x" * 32


def test_cors_origins_include_extras(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://gp.example.com, ,https://admin.example.com")
    origins = get_cors_origins()
    assert origins[-2:] == ["https://gp.example.com", "https://admin.example.com"]
    assert "http://localhost:5173" in origins


def test_app_base_url_and_environment(monkeypatch):
    monkeypatch.setenv("APP_BASE_URL", "https://gp.example.com/")
    assert get_app_base_url() == "https://gp.example.com"

    monkeypatch.setenv("APP_ENV", "Production")
    assert is_production() is True
    monkeypatch.setenv("APP_ENV", "test")
    assert is_production() is False


@pytest.mark.parametrize("raw,expected", [
    (None, True),
    ("off", False),
    ("0", False),
    ("", False),
    ("Yes", True),
    ("maybe", True),
])
def test_env_switch(monkeypatch, raw, expected):
    if raw is None:
        monkeypatch.delenv("SOME_SWITCH", raising=False)
    else:
        monkeypatch.setenv("SOME_SWITCH", raw)
    assert env_switch("SOME_SWITCH") is expected


def test_feature_switches_follow_environment(monkeypatch):
    monkeypatch.delenv("AI_FEATURES_ENABLED", raising=False)
    monkeypatch.setenv("EMAIL_NOTIFICATIONS_ENABLED", "false")
    assert ai_assistance_enabled() is True
    assert outbound_email_enabled() is False

    monkeypatch.setenv("EMAIL_NOTIFICATIONS_ENABLED", "true")
    assert outbound_email_enabled() is True


def test_email_settings_report_missing_provider_keys(monkeypatch):
    monkeypatch.setenv("EMAIL_PROVIDER", "Mailgun")
    monkeypatch.setenv("MAILGUN_API_KEY", "key-123")
    monkeypatch.delenv("MAILGUN_DOMAIN", raising=False)
    monkeypatch.delenv("FROM_EMAIL", raising=False)
    monkeypatch.delenv("FROM_NAME", raising=False)
    settings = get_email_settings()
    assert settings.provider == "mailgun"
    assert settings.missing() == ["MAILGUN_DOMAIN"]
    assert settings.sender == "GP Compliance <noreply@gp-compliance.app>"

    monkeypatch.setenv("EMAIL_PROVIDER", "carrier-pigeon")
    assert get_email_settings().missing() == ["EMAIL_PROVIDER"]


def test_as_utc():
    assert as_utc(None) is None
    assert as_utc(datetime(2025, 1, 1, 9, 0)) == datetime(2025, 1, 1, 9, 0, tzinfo=UTC)
    plus_one = datetime(2025, 6, 1, 10, 0, tzinfo=timezone(timedelta(hours=1)))
    assert as_utc(plus_one) == datetime(2025, 6, 1, 9, 0, tzinfo=UTC)


def test_day_bounds():
    assert start_of_day(date(2025, 3, 3)) == datetime(2025, 3, 3, tzinfo=UTC)
    assert end_of_day(date(2025, 3, 3)).microsecond == 999999


@pytest.mark.parametrize("moment,months,day,expected", [
    (datetime(2025, 1, 31, tzinfo=UTC), 1, None, datetime(2025, 2, 28, tzinfo=UTC)),
    (datetime(2024, 1, 31, tzinfo=UTC), 1, None, datetime(2024, 2, 29, tzinfo=UTC)),
    (datetime(2025, 11, 15, tzinfo=UTC), 3, 1, datetime(2026, 2, 1, tzinfo=UTC)),
    (datetime(2025, 3, 10, tzinfo=UTC), -5, None, datetime(2024, 10, 10, tzinfo=UTC)),
])
def test_add_months_clamps_day(moment, months, day, expected):
    assert add_months(moment, months, day=day) == expected


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round1(96.25) == 96.3
    assert round1(93.333) == 93.3
