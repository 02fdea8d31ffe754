"""Shared constants and helpers for the test suite (no side effects on import)."""
from datetime import datetime, timedelta, UTC

DEFAULT_PASSWORD = "Str0ng!Passw0rd"
JOB_TOKEN = "test-cron-secret"


def login(test_client, user, password: str = DEFAULT_PASSWORD):
    response = test_client.post(
        "/api/auth/login",
        json={"email": user.email, "password": password, "practice_id": str(user.practice_id)},
    )
    assert response.status_code == 200, response.text
    return response


def utc_now():
    return datetime.now(UTC)


def days_from_now(days: float):
    return utc_now() + timedelta(days=days)


def iso(moment: datetime) -> str:
    return moment.isoformat()
