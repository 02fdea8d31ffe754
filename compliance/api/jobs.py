"""
Cron job trigger endpoint.

External schedulers call ``POST /api/jobs/{name}`` with the shared
``X-Job-Token`` header.
"""
from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from compliance.api.deps import require_job_token
from compliance.db.database import get_db
from compliance.services.reminder_jobs import JOBS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.get("")
def list_jobs(_token=Depends(require_job_token)) -> Dict[str, Any]:
    return {"jobs": sorted(JOBS)}


@router.post("/{job_name}")
def run_job(
    job_name: str,
    db: Session = Depends(get_db),
    _token=Depends(require_job_token),
) -> Dict[str, Any]:
    job = JOBS.get(job_name)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Unknown job: {job_name}")

    logger.info("job_run_start: name=%s", job_name)
    try:
        result = job(db)
    except Exception as e:
        logger.exception("job_run_failed: name=%s", job_name)
        raise HTTPException(status_code=500, detail=f"Job {job_name} failed: {e}")
    logger.info("job_run_done: name=%s", job_name)
    return result
