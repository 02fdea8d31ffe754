import uuid
from typing import Optional, Dict, Any, List, Literal
from pydantic import BaseModel, ConfigDict

from .common import UtcDateTime, metadata_field

Frequency = Literal["daily", "twice_daily", "weekly", "monthly", "quarterly", "six_monthly", "annually"]
TaskStatus = Literal["pending", "in_progress", "complete", "blocked"]
Priority = Literal["low", "medium", "high", "urgent"]


class ProcessTemplateBase(BaseModel):
    name: str
    module: str
    description: Optional[str] = None
    frequency: Frequency = "daily"
    responsible_role: str = "reception"
    sla_hours: int = 24
    steps: List[Dict[str, Any]] = []
    evidence_hint: Optional[str] = None
    is_active: bool = True


class ProcessTemplateCreate(ProcessTemplateBase):
    pass


class ProcessTemplateUpdate(BaseModel):
    name: Optional[str] = None
    module: Optional[str] = None
    description: Optional[str] = None
    frequency: Optional[Frequency] = None
    responsible_role: Optional[str] = None
    sla_hours: Optional[int] = None
    steps: Optional[List[Dict[str, Any]]] = None
    evidence_hint: Optional[str] = None
    is_active: Optional[bool] = None


class ProcessTemplate(ProcessTemplateBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class TaskBase(BaseModel):
    title: str
    description: Optional[str] = None
    template_id: Optional[uuid.UUID] = None
    priority: Priority = "medium"
    status: TaskStatus = "pending"
    assignee_id: Optional[uuid.UUID] = None
    due_at: UtcDateTime
    module: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = metadata_field()


class TaskCreate(TaskBase):
    completed_at: Optional[UtcDateTime] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[TaskStatus] = None
    assignee_id: Optional[uuid.UUID] = None
    due_at: Optional[UtcDateTime] = None
    completed_at: Optional[UtcDateTime] = None
    module: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class Task(TaskBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    completed_at: Optional[UtcDateTime] = None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class InitialTasksResult(BaseModel):
    templates_used: int
    tasks_created: int
