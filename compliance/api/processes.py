"""
Process template and task endpoints.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from compliance.api.deps import require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.models import now_utc
from compliance.db.repositories import processes as process_repo
from compliance.services.practice_setup import NoActiveTemplatesError, create_initial_tasks
from compliance.utils.role_permissions import CAP_MANAGE_TASKS, CAP_VIEW_TASKS

router = APIRouter(prefix="/api/practices/{practice_id}", tags=["processes"])


@router.get("/process-templates", response_model=List[schemas.ProcessTemplate])
def list_process_templates(
    practice_id: uuid.UUID,
    module: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_TASKS)),
):
    return process_repo.get_process_templates(db, practice_id, module=module)


@router.post("/process-templates", response_model=schemas.ProcessTemplate, status_code=status.HTTP_201_CREATED)
def create_process_template(
    practice_id: uuid.UUID,
    template: schemas.ProcessTemplateCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    return process_repo.create_process_template(db, practice_id, template)


@router.patch("/process-templates/{template_id}", response_model=schemas.ProcessTemplate)
def update_process_template(
    practice_id: uuid.UUID,
    template_id: uuid.UUID,
    template: schemas.ProcessTemplateUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    db_template = process_repo.get_process_template(db, practice_id, template_id)
    if db_template is None:
        raise HTTPException(status_code=404, detail="Process template not found")
    return process_repo.update_process_template(db, db_template, template)


@router.delete("/process-templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_process_template(
    practice_id: uuid.UUID,
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    db_template = process_repo.get_process_template(db, practice_id, template_id)
    if db_template is None:
        raise HTTPException(status_code=404, detail="Process template not found")
    process_repo.delete_process_template(db, db_template)


@router.post("/initial-tasks", response_model=schemas.InitialTasksResult, status_code=status.HTTP_201_CREATED)
def start_initial_tasks(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    """
    Create the first round of tasks from every active template.
    """
    try:
        return create_initial_tasks(db, practice_id)
    except NoActiveTemplatesError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/tasks", response_model=List[schemas.Task])
def list_tasks(
    practice_id: uuid.UUID,
    status: Optional[str] = None,
    assignee_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 500,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_TASKS)),
):
    return process_repo.get_tasks(db, practice_id, status=status, assignee_id=assignee_id, skip=skip, limit=limit)


@router.get("/tasks/overdue", response_model=List[schemas.Task])
def list_overdue_tasks(
    practice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_TASKS)),
):
    return process_repo.get_overdue_tasks(db, practice_id, now_utc())


@router.get("/tasks/{task_id}", response_model=schemas.Task)
def get_task(
    practice_id: uuid.UUID,
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_TASKS)),
):
    task = process_repo.get_task(db, practice_id, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.post("/tasks", response_model=schemas.Task, status_code=status.HTTP_201_CREATED)
def create_task(
    practice_id: uuid.UUID,
    task: schemas.TaskCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    if task.template_id and process_repo.get_process_template(db, practice_id, task.template_id) is None:
        raise HTTPException(status_code=404, detail="Process template not found")
    return process_repo.create_task(db, practice_id, task)


@router.patch("/tasks/{task_id}", response_model=schemas.Task)
def update_task(
    practice_id: uuid.UUID,
    task_id: uuid.UUID,
    task: schemas.TaskUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    db_task = process_repo.get_task(db, practice_id, task_id)
    if db_task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return process_repo.update_task(db, db_task, task)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    practice_id: uuid.UUID,
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_TASKS)),
):
    db_task = process_repo.get_task(db, practice_id, task_id)
    if db_task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    process_repo.delete_task(db, db_task)
