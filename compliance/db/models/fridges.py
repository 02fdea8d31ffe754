import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, Float, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from .base import Base, now_utc


class FridgeUnit(Base):
    __tablename__ = 'fridge_units'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    location = Column(Text, nullable=True)
    min_temp = Column(Float, nullable=False, default=2.0)
    max_temp = Column(Float, nullable=False, default=8.0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)


class FridgeReading(Base):
    __tablename__ = 'fridge_readings'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(UUID(as_uuid=True), ForeignKey('practices.id', ondelete='CASCADE'), nullable=False)
    fridge_id = Column(UUID(as_uuid=True), ForeignKey('fridge_units.id', ondelete='CASCADE'), nullable=False)
    reading_date = Column(DateTime(timezone=True), nullable=False)
    log_time = Column(String(2), nullable=True)  # AM|PM
    temperature = Column(Float, nullable=False)
    recorded_by = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    is_out_of_range = Column(Boolean, nullable=False, default=False)
    action_taken = Column(Text, nullable=True)
    outcome = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('idx_fridge_readings_practice_date', 'practice_id', 'reading_date'),
        Index('idx_fridge_readings_fridge_id', 'fridge_id'),
    )
