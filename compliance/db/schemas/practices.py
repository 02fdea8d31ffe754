import uuid
from typing import Optional, Dict, Any, Literal
from pydantic import BaseModel, ConfigDict

from compliance.utils.role_permissions import RoleEnum
from .common import UtcDateTime

Country = Literal["wales", "england", "scotland"]


class PracticeBase(BaseModel):
    name: str
    logo_url: Optional[str] = None
    theme: Optional[Dict[str, Any]] = None
    country: Country = "wales"


class PracticeCreate(PracticeBase):
    pass


class PracticeUpdate(BaseModel):
    name: Optional[str] = None
    logo_url: Optional[str] = None
    theme: Optional[Dict[str, Any]] = None
    country: Optional[Country] = None
    is_active: Optional[bool] = None
    onboarding_stage: Optional[str] = None
    onboarding_completed_at: Optional[UtcDateTime] = None


class Practice(PracticeBase):
    id: uuid.UUID
    is_active: bool
    onboarding_stage: str
    onboarding_completed_at: Optional[UtcDateTime] = None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class PracticeSummary(BaseModel):
    id: uuid.UUID
    name: str
    country: str
    model_config = ConfigDict(from_attributes=True)


class UserBase(BaseModel):
    name: str
    email: str
    role: RoleEnum = RoleEnum.reception
    is_practice_manager: bool = False


class UserCreate(UserBase):
    password: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[RoleEnum] = None
    is_practice_manager: Optional[bool] = None
    is_active: Optional[bool] = None
    mfa_enabled: Optional[bool] = None
    password: Optional[str] = None


class User(BaseModel):
    id: uuid.UUID
    practice_id: uuid.UUID
    name: str
    email: str
    role: str
    is_practice_manager: bool
    is_active: bool
    mfa_enabled: bool
    last_login_at: Optional[UtcDateTime] = None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Shape returned by the auth endpoints."""
    id: uuid.UUID
    name: str
    email: str
    role: str
    practice_id: uuid.UUID
    is_practice_manager: bool
    model_config = ConfigDict(from_attributes=True)


class CurrentUser(UserSummary):
    practice: Optional[PracticeSummary] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    practice_id: Optional[uuid.UUID] = None


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    practice_id: Optional[uuid.UUID] = None
