import os
import tempfile
import uuid
from unittest.mock import AsyncMock

import pytest

# The app reads its configuration at import time, so the environment is set
# before anything from ``compliance`` is imported.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="compliance-tests-")
os.environ["COMPLIANCE_TEST_DB"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ.setdefault("SESSION_SECRET", "test-session-secret-with-at-least-32-chars")
os.environ["EDGE_CRON_SECRET"] = "test-cron-secret"
os.environ["APP_ENV"] = "test"
for _var in ("RESEND_API_KEY", "MAILGUN_API_KEY", "LLM_API_KEY", "RESEND_WEBHOOK_SECRET"):
    os.environ.pop(_var, None)

from fastapi.testclient import TestClient

from compliance.api.auth import reset_login_limiter
from compliance.api.main import app
from compliance.db import models
from compliance.db.database import SessionLocal, engine
from compliance.services import transactional_email_service
from compliance.utils.passwords import hash_password
from tests.helpers import DEFAULT_PASSWORD, login

_password_hashes = {}


def _hash(password: str) -> str:
    # One Argon2 hash per distinct password for the whole run.
    if password not in _password_hashes:
        _password_hashes[password] = hash_password(password)
    return _password_hashes[password]


@pytest.fixture(scope="session", autouse=True)
def _schema():
    models.Base.metadata.create_all(bind=engine)
    yield
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_data():
    """Truncate every table and reset process-wide state between tests."""
    reset_login_limiter()
    transactional_email_service.reset_transactional_email_service()
    yield
    with engine.begin() as conn:
        for table in reversed(models.Base.metadata.sorted_tables):
            conn.execute(table.delete())
    transactional_email_service.reset_transactional_email_service()


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# Backwards compatibility: some tests read more naturally with 'db'
@pytest.fixture
def db(db_session):
    return db_session


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_client():
    """Build extra clients, each with its own cookie jar."""
    clients = []

    def _make():
        test_client = TestClient(app)
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        test_client.close()


# Factories

@pytest.fixture
def practice_factory(db_session):
    def _create(name: str = "Riverside Surgery", country: str = "wales", is_active: bool = True):
        practice = models.Practice(name=name, country=country, is_active=is_active)
        db_session.add(practice)
        db_session.commit()
        db_session.refresh(practice)
        return practice
    return _create


@pytest.fixture
def user_factory(db_session):
    def _create(
        practice,
        email: str | None = None,
        role: str = "reception",
        is_practice_manager: bool = False,
        password: str | None = DEFAULT_PASSWORD,
        is_active: bool = True,
        name: str | None = None,
    ):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        user = models.User(
            practice_id=practice.id,
            name=name or email.split("@")[0],
            email=email,
            password_hash=_hash(password) if password else None,
            role=role,
            is_practice_manager=is_practice_manager,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def employee_factory(db_session):
    def _create(practice, name: str = "Dr Jones", role: str = "gp", **kwargs):
        employee = models.Employee(practice_id=practice.id, name=name, role=role, **kwargs)
        db_session.add(employee)
        db_session.commit()
        db_session.refresh(employee)
        return employee
    return _create


@pytest.fixture
def fridge_factory(db_session):
    def _create(practice, name: str = "Vaccine Fridge", min_temp: float = 2.0, max_temp: float = 8.0):
        fridge = models.FridgeUnit(practice_id=practice.id, name=name, min_temp=min_temp, max_temp=max_temp)
        db_session.add(fridge)
        db_session.commit()
        db_session.refresh(fridge)
        return fridge
    return _create


@pytest.fixture
def practice(practice_factory):
    return practice_factory()


@pytest.fixture
def manager(practice, user_factory):
    return user_factory(practice, email="manager@example.com", role="practice_manager", is_practice_manager=True, name="Pat Manager")


@pytest.fixture
def manager_client(client, manager):
    login(client, manager)
    return client


@pytest.fixture
def reception_client(make_client, practice, user_factory):
    user = user_factory(practice, email="reception@example.com", role="reception", name="Robin Reception")
    test_client = make_client()
    login(test_client, user)
    test_client.user = user
    return test_client


@pytest.fixture
def fake_email_sender(monkeypatch):
    """Real template rendering with a stubbed provider send."""
    service = transactional_email_service.TransactionalEmailService()
    service.send_email = AsyncMock(return_value={
        "success": True,
        "provider": "resend",
        "message_id": "re_test_message",
        "error": None,
    })
    monkeypatch.setattr(transactional_email_service, "get_transactional_email_service", lambda: service)
    return service


