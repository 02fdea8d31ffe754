import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class MedicalRequest(Base):
    __tablename__ = 'medical_requests'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    # insurance|medical_report|letter|copy_notes|solicitor_request|other
    request_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default='received')  # received|assigned|in_progress|sent
    received_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    assigned_gp_id = Column(UUID(as_uuid=True), ForeignKey('employees.id', ondelete='SET NULL'), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    emis_hash = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_medical_requests_practice_received', 'practice_id', 'received_at'),
    )
