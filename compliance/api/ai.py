"""
AI assistant endpoints backed by Gemini.
"""
import uuid
from datetime import datetime, time, timedelta, UTC

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from compliance.api.deps import get_practice_context, require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import governance as governance_repo
from compliance.db.repositories import practices as practice_repo
from compliance.services.ai_assistant import AiProviderError, AiUnavailableError, get_ai_assistant_service
from compliance.utils.role_permissions import CAP_VIEW_COMPLAINTS

router = APIRouter(prefix="/api/practices/{practice_id}/ai", tags=["ai"])


@router.post("/step-help", response_model=schemas.StepHelpResponse)
def step_help(
    practice_id: uuid.UUID,
    payload: schemas.StepHelpRequest,
    user_context=Depends(get_practice_context),
):
    """
    Answer a question about the current process step, keeping prior turns as context.
    """
    service = get_ai_assistant_service()
    try:
        return service.step_help(
            payload.message,
            process_name=payload.process_name,
            step_title=payload.step_title,
            step_description=payload.step_description,
            conversation_history=[turn.model_dump() for turn in payload.conversation_history],
        )
    except AiUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except AiProviderError:
        raise HTTPException(status_code=502, detail="AI assistant failed to respond")


@router.post("/suggest-improvements", response_model=schemas.SuggestImprovementsResponse)
def suggest_improvements(
    practice_id: uuid.UUID,
    payload: schemas.SuggestImprovementsRequest,
    db: Session = Depends(get_db),
    user_context=Depends(get_practice_context),
):
    country = payload.country
    if not country:
        practice = practice_repo.get_practice(db, practice_id)
        country = practice.country if practice else None

    service = get_ai_assistant_service()
    try:
        return service.suggest_improvements(
            payload.section,
            payload.score,
            payload.target,
            payload.gap,
            payload.contributors,
            country=country,
        )
    except AiUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except AiProviderError:
        raise HTTPException(status_code=502, detail="AI assistant failed to respond")


@router.post("/complaint-themes", response_model=schemas.ComplaintThemeAnalysis)
def complaint_themes(
    practice_id: uuid.UUID,
    payload: schemas.ComplaintThemesRequest,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_COMPLAINTS)),
):
    """
    Summarise the themes of complaints received between two dates (both inclusive).
    """
    start = datetime.combine(payload.start_date, time.min, tzinfo=UTC)
    end = datetime.combine(payload.end_date, time.min, tzinfo=UTC) + timedelta(days=1)
    complaints = governance_repo.get_complaints_received_between(db, practice_id, start, end)
    if not complaints:
        return schemas.ComplaintThemeAnalysis(insights="No complaints to analyze for this period.")

    service = get_ai_assistant_service()
    try:
        return service.analyze_complaint_themes([
            {"channel": c.channel, "status": c.status, "description": c.description}
            for c in complaints
        ])
    except AiUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except AiProviderError:
        raise HTTPException(status_code=502, detail="AI assistant failed to respond")
