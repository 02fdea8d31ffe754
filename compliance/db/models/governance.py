import uuid
from sqlalchemy import Column, String, Text, DateTime, Float, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class Incident(Base):
    __tablename__ = 'incidents'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    reported_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    category = Column(String(50), nullable=False)
    severity = Column(String(20), nullable=False, default='low')  # low|medium|high|major|critical
    description = Column(Text, nullable=False)
    date_occurred = Column(DateTime(timezone=True), nullable=False)
    location = Column(Text, nullable=True)
    immediate_actions = Column(Text, nullable=True)
    root_cause = Column(Text, nullable=True)
    preventive_actions = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='open')  # open|investigating|resolved|closed
    closed_at = Column(DateTime(timezone=True), nullable=True)
    closed_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_incidents_practice_date', 'practice_id', 'date_occurred'),
    )


class Complaint(Base):
    __tablename__ = 'complaints'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False)
    channel = Column(String(50), nullable=True)
    description = Column(Text, nullable=False)
    assigned_to = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    ack_due = Column(DateTime(timezone=True), nullable=True)
    ack_sent_at = Column(DateTime(timezone=True), nullable=True)
    final_due = Column(DateTime(timezone=True), nullable=True)
    final_sent_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default='open')
    sla_status = Column(String(20), nullable=False, default='on_track')  # on_track|at_risk|breached|met
    emis_hash = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_complaints_practice_received', 'practice_id', 'received_at'),
        Index('idx_complaints_status', 'status'),
    )


class PolicyDocument(Base):
    __tablename__ = 'policy_documents'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    title = Column(Text, nullable=False)
    category = Column(String(50), nullable=True)
    version = Column(String(20), nullable=False, default='1.0')
    status = Column(String(20), nullable=False, default='draft')  # draft|pending_approval|active|archived
    content = Column(Text, nullable=True)
    owner_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    next_review_date = Column(DateTime(timezone=True), nullable=True)
    last_reviewed_at = Column(DateTime(timezone=True), nullable=True)
    last_reviewed_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_policy_documents_practice_review', 'practice_id', 'next_review_date'),
    )


class PolicyAcknowledgment(Base):
    __tablename__ = 'policy_acknowledgments'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    policy_id = Column(UUID(as_uuid=True), ForeignKey('policy_documents.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    acknowledged_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_policy_acknowledgments_unique', 'policy_id', 'user_id', unique=True),
    )


class IpcAudit(Base):
    __tablename__ = 'ipc_audits'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    audit_date = Column(DateTime(timezone=True), nullable=False)
    auditor_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    audit_type = Column(String(30), nullable=False, default='six_monthly')
    overall_score = Column(Float, nullable=True)
    overall_result = Column(String(10), nullable=True)  # pass|fail
    status = Column(String(20), nullable=False, default='draft')
    findings = Column(JSONB, nullable=True, default=list)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_ipc_audits_practice_date', 'practice_id', 'audit_date'),
    )
