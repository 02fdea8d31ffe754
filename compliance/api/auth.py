"""
Session authentication endpoints.

Login, registration and logout against the signed session cookie, plus a
per-client limiter on failed logins.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from compliance.api.deps import clear_session, get_current_user_context, start_session
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.models import now_utc
from compliance.db.repositories import practices as practice_repo
from compliance.utils.passwords import password_policy_error, verify_password
from compliance.utils.role_permissions import RoleEnum

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

LOGIN_RATE_LIMIT = parse("5 per 15 minutes")
LOGIN_RATE_LIMIT_MESSAGE = "Too many login attempts. Please try again in 15 minutes."

_login_storage = MemoryStorage()
_login_limiter = MovingWindowRateLimiter(_login_storage)


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def reset_login_limiter() -> None:
    """Forget all recorded failures (used by tests)."""
    _login_storage.reset()


def _record_failure(request: Request) -> None:
    _login_limiter.hit(LOGIN_RATE_LIMIT, "login", _client_key(request))


@router.post("/login", response_model=schemas.UserSummary)
def login(payload: schemas.LoginRequest, request: Request, db: Session = Depends(get_db)):
    if not _login_limiter.test(LOGIN_RATE_LIMIT, "login", _client_key(request)):
        logger.warning("login_rate_limited: client=%s", _client_key(request))
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=LOGIN_RATE_LIMIT_MESSAGE)

    if not payload.email or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")

    user = practice_repo.get_user_by_email(db, payload.email, practice_id=payload.practice_id)
    if user is None:
        _record_failure(request)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.password_hash:
        _record_failure(request)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Password not set for this account")
    if not verify_password(payload.password, user.password_hash):
        _record_failure(request)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        _record_failure(request)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is disabled")

    user.last_login_at = now_utc()
    db.commit()
    db.refresh(user)
    start_session(request, user)
    logger.info("login_success: user_id=%s practice_id=%s", user.id, user.practice_id)
    return user


@router.post("/register", response_model=schemas.UserSummary, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.RegisterRequest, request: Request, db: Session = Depends(get_db)):
    name = (payload.name or "").strip()
    if not payload.email or not payload.password or not name or not payload.practice_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email, password, name, and practice are required",
        )

    policy_error = password_policy_error(payload.password)
    if policy_error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=policy_error)

    practice = practice_repo.get_practice(db, payload.practice_id)
    if practice is None or not practice.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid practice")

    if practice_repo.get_user_by_email(db, payload.email, practice_id=practice.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    try:
        user = practice_repo.create_user(db, practice.id, schemas.UserCreate(
            name=name,
            email=payload.email,
            password=payload.password,
            role=RoleEnum.reception,
            is_practice_manager=False,
        ))
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    start_session(request, user)
    logger.info("user_registered: user_id=%s practice_id=%s", user.id, practice.id)
    return user


@router.post("/logout")
def logout(request: Request):
    clear_session(request)
    return {"success": True}


@router.get("/user", response_model=schemas.CurrentUser)
def get_user(user_context=Depends(get_current_user_context), db: Session = Depends(get_db)):
    user, _current_user = user_context
    practice = practice_repo.get_practice(db, user.practice_id)
    return schemas.CurrentUser(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        practice_id=user.practice_id,
        is_practice_manager=user.is_practice_manager,
        practice=schemas.PracticeSummary.model_validate(practice) if practice else None,
    )
