import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, Integer, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class ProcessTemplate(Base):
    __tablename__ = 'process_templates'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    module = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    # daily|twice_daily|weekly|monthly|quarterly|six_monthly|annually
    frequency = Column(String(20), nullable=False, default='daily')
    responsible_role = Column(String(50), nullable=False, default='reception')
    sla_hours = Column(Integer, nullable=False, default=24)
    steps = Column(JSONB, nullable=True, default=list)
    evidence_hint = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_process_templates_practice_id', 'practice_id'),
    )


class Task(Base):
    __tablename__ = 'tasks'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    template_id = Column(UUID(as_uuid=True), ForeignKey('process_templates.id', ondelete='SET NULL'), nullable=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(20), nullable=False, default='medium')
    status = Column(String(20), nullable=False, default='pending')  # pending|in_progress|complete|blocked
    assignee_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    due_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    module = Column(String(50), nullable=True)
    metadata_json = Column('metadata', JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_tasks_practice_due_at', 'practice_id', 'due_at'),
        Index('idx_tasks_assignee_id', 'assignee_id'),
        Index('idx_tasks_status', 'status'),
    )

    def get_metadata(self):
        return self.metadata_json

    def set_metadata(self, value):
        self.metadata_json = value
