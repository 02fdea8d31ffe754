import uuid
from sqlalchemy import Column, String, Text, DateTime, Date, Float, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class BaselineSnapshot(Base):
    __tablename__ = 'baseline_snapshots'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    baseline_name = Column(Text, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    compliance_score = Column(Float, nullable=False)
    fit_for_audit_score = Column(Float, nullable=False)
    driver_details = Column(JSONB, nullable=False, default=dict)
    red_flags = Column(JSONB, nullable=False, default=list)
    status = Column(String(20), nullable=False, default='active')  # active|superseded
    replaces_baseline_id = Column(UUID(as_uuid=True), ForeignKey('baseline_snapshots.id', ondelete='SET NULL'), nullable=True)
    rebaseline_reason = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    model_version = Column(String(10), nullable=False, default='1.0')
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_baseline_snapshots_practice_created', 'practice_id', 'created_at'),
    )
