"""
Practice and user repository functions.
"""
from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from compliance.db import models, schemas
from compliance.utils.passwords import hash_password
from compliance.utils.role_permissions import ROLE_PRACTICE_MANAGER, has_capability
from .common import add_and_refresh, apply_changes


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_practice(db: Session, practice: schemas.PracticeCreate):
    data = practice.model_dump()
    if data.get("theme") is None:
        data["theme"] = {}
    return add_and_refresh(db, models.Practice(**data))


def get_practice(db: Session, practice_id: uuid.UUID):
    return db.query(models.Practice).filter(models.Practice.id == practice_id).first()


def get_active_practices(db: Session):
    return (
        db.query(models.Practice)
        .filter(models.Practice.is_active.is_(True))
        .order_by(models.Practice.name.asc())
        .all()
    )


def update_practice(db: Session, practice_id: uuid.UUID, practice: schemas.PracticeUpdate):
    db_practice = get_practice(db, practice_id)
    if db_practice is None:
        return None
    return apply_changes(db, db_practice, practice.model_dump(exclude_unset=True))


def get_user(db: Session, user_id: uuid.UUID):
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_practice_user(db: Session, practice_id: uuid.UUID, user_id: uuid.UUID):
    return (
        db.query(models.User)
        .filter(models.User.id == user_id, models.User.practice_id == practice_id)
        .first()
    )


def get_user_by_email(db: Session, email: str, practice_id: Optional[uuid.UUID] = None):
    """Look up a user by email; without a practice the earliest account wins."""
    query = db.query(models.User).filter(models.User.email == normalize_email(email))
    if practice_id is not None:
        query = query.filter(models.User.practice_id == practice_id)
    return query.order_by(models.User.created_at.asc()).first()


def get_users(db: Session, practice_id: uuid.UUID, skip: int = 0, limit: int = 200):
    return (
        db.query(models.User)
        .filter(models.User.practice_id == practice_id)
        .order_by(models.User.name.asc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def create_user(db: Session, practice_id: uuid.UUID, user: schemas.UserCreate):
    data = user.model_dump(exclude={"password"})
    data["email"] = normalize_email(data["email"])
    data["role"] = user.role.value
    db_user = models.User(
        **data,
        practice_id=practice_id,
        password_hash=hash_password(user.password) if user.password else None,
    )
    return add_and_refresh(db, db_user)


def update_user(db: Session, db_user: models.User, user: schemas.UserUpdate):
    changes = user.model_dump(exclude_unset=True)
    password = changes.pop("password", None)
    if password:
        changes["password_hash"] = hash_password(password)
    if changes.get("email"):
        changes["email"] = normalize_email(changes["email"])
    if changes.get("role") is not None:
        changes["role"] = user.role.value
    return apply_changes(db, db_user, changes)


def get_practice_managers(db: Session, practice_id: uuid.UUID) -> List[models.User]:
    """Active users flagged as manager or holding the manager role, one row per user."""
    users = (
        db.query(models.User)
        .filter(
            models.User.practice_id == practice_id,
            models.User.is_active.is_(True),
            or_(models.User.is_practice_manager.is_(True), models.User.role == ROLE_PRACTICE_MANAGER),
        )
        .order_by(models.User.created_at.asc())
        .all()
    )
    seen = set()
    managers = []
    for user in users:
        if user.id in seen:
            continue
        seen.add(user.id)
        managers.append(user)
    return managers


def get_active_users(db: Session, practice_id: uuid.UUID) -> List[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.practice_id == practice_id, models.User.is_active.is_(True))
        .order_by(models.User.name.asc())
        .all()
    )


def get_users_with_capability(db: Session, practice_id: uuid.UUID, capability: str) -> List[models.User]:
    """Active users whose role or manager flag grants ``capability``."""
    return [user for user in get_active_users(db, practice_id) if has_capability(user, capability)]
