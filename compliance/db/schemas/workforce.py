import uuid
from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict

from .common import UtcDateTime


class EmployeeBase(BaseModel):
    name: str
    user_id: Optional[uuid.UUID] = None
    role: Optional[str] = None
    manager_id: Optional[uuid.UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class EmployeeCreate(EmployeeBase):
    pass


class EmployeeUpdate(BaseModel):
    name: Optional[str] = None
    user_id: Optional[uuid.UUID] = None
    role: Optional[str] = None
    manager_id: Optional[uuid.UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class Employee(EmployeeBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class TrainingRecordBase(BaseModel):
    employee_id: uuid.UUID
    course_name: str
    completed_at: Optional[UtcDateTime] = None
    expiry_date: Optional[UtcDateTime] = None
    is_mandatory: bool = False


class TrainingRecordCreate(TrainingRecordBase):
    pass


class TrainingRecordUpdate(BaseModel):
    course_name: Optional[str] = None
    completed_at: Optional[UtcDateTime] = None
    expiry_date: Optional[UtcDateTime] = None
    is_mandatory: Optional[bool] = None


class TrainingRecord(TrainingRecordBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    reminder_sent_at: Optional[UtcDateTime] = None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)
