import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class Practice(Base):
    __tablename__ = 'practices'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    logo_url = Column(Text, nullable=True)
    theme = Column(JSONB, nullable=True, default=dict)
    country = Column(String(20), nullable=False, default='wales')  # wales|england|scotland
    is_active = Column(Boolean, nullable=False, default=True)
    onboarding_stage = Column(String(50), nullable=False, default='pending')
    onboarding_completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        CheckConstraint("country in ('wales','england','scotland')", name='ck_practices_country'),
    )


class User(Base):
    __tablename__ = 'users'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    email = Column(String(320), nullable=False)
    password_hash = Column(Text, nullable=True)
    role = Column(String(50), nullable=False, default='reception')
    is_practice_manager = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    mfa_enabled = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_users_practice_email', 'practice_id', 'email', unique=True),
        Index('idx_users_email', 'email'),
    )
