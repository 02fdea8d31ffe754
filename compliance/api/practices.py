"""
Practice and staff user endpoints.

Listing and creating practices is public so the login screen can offer a
practice picker and a new practice can be set up before anyone signs in.
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from compliance.api.deps import get_practice_context, require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import practices as practice_repo
from compliance.services.practice_setup import seed_process_templates
from compliance.utils.passwords import password_policy_error
from compliance.utils.role_permissions import CAP_MANAGE_USERS, CAP_VIEW_USERS

router = APIRouter(prefix="/api/practices", tags=["practices"])


@router.get("", response_model=List[schemas.PracticeSummary])
def list_practices(db: Session = Depends(get_db)):
    return practice_repo.get_active_practices(db)


@router.post("", response_model=schemas.Practice, status_code=status.HTTP_201_CREATED)
def create_practice(practice: schemas.PracticeCreate, db: Session = Depends(get_db)):
    if not practice.name.strip():
        raise HTTPException(status_code=422, detail="Practice name is required")
    db_practice = practice_repo.create_practice(db, practice)
    seed_process_templates(db, db_practice.id)
    return db_practice


@router.get("/{practice_id}", response_model=schemas.Practice)
def get_practice(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    practice = practice_repo.get_practice(db, practice_id)
    if practice is None:
        raise HTTPException(status_code=404, detail="Practice not found")
    return practice


@router.patch("/{practice_id}", response_model=schemas.Practice)
def update_practice(
    practice_id: uuid.UUID,
    practice: schemas.PracticeUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_USERS)),
):
    updated = practice_repo.update_practice(db, practice_id, practice)
    if updated is None:
        raise HTTPException(status_code=404, detail="Practice not found")
    return updated


@router.get("/{practice_id}/users", response_model=List[schemas.User])
def list_users(
    practice_id: uuid.UUID,
    skip: int = 0,
    limit: int = 200,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_USERS)),
):
    return practice_repo.get_users(db, practice_id, skip=skip, limit=limit)


@router.get("/{practice_id}/users/{user_id}", response_model=schemas.User)
def get_user(
    practice_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_USERS)),
):
    user = practice_repo.get_practice_user(db, practice_id, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _check_password(password):
    if password:
        error = password_policy_error(password)
        if error:
            raise HTTPException(status_code=400, detail=error)


@router.post("/{practice_id}/users", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def create_user(
    practice_id: uuid.UUID,
    user: schemas.UserCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_USERS)),
):
    _check_password(user.password)
    if practice_repo.get_user_by_email(db, user.email, practice_id=practice_id):
        raise HTTPException(status_code=409, detail="User already exists")
    try:
        return practice_repo.create_user(db, practice_id, user)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="User already exists")


@router.patch("/{practice_id}/users/{user_id}", response_model=schemas.User)
def update_user(
    practice_id: uuid.UUID,
    user_id: uuid.UUID,
    user: schemas.UserUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_USERS)),
):
    db_user = practice_repo.get_practice_user(db, practice_id, user_id)
    if db_user is None:
        raise HTTPException(status_code=404, detail="User not found")
    _check_password(user.password)
    if user.email:
        existing = practice_repo.get_user_by_email(db, user.email, practice_id=practice_id)
        if existing is not None and existing.id != db_user.id:
            raise HTTPException(status_code=409, detail="User already exists")
    return practice_repo.update_user(db, db_user, user)
