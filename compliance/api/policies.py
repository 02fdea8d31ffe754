"""
Policy document endpoints: CRUD, staff acknowledgments and governance sign-off.
"""
from typing import Any, Dict, List, Optional
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from compliance.api.deps import require_capability
from compliance.db import schemas
from compliance.db.database import get_db
from compliance.db.repositories import governance as governance_repo
from compliance.services import governance_service
from compliance.utils.role_permissions import (
    CAP_ACKNOWLEDGE_POLICIES,
    CAP_APPROVE_GOVERNANCE,
    CAP_MANAGE_POLICIES,
    CAP_VIEW_POLICIES,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/practices/{practice_id}", tags=["policies"])

POLICY_ENTITY_TYPE = "policy"
URGENCY_PRIORITY = {"normal": "medium", "high": "high"}


def _get_policy_or_404(db: Session, practice_id: uuid.UUID, policy_id: uuid.UUID):
    policy = governance_repo.get_policy(db, practice_id, policy_id)
    if policy is None:
        raise HTTPException(status_code=404, detail="Policy not found")
    return policy


@router.get("/policies", response_model=List[schemas.PolicyDocument])
def list_policies(
    practice_id: uuid.UUID,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_POLICIES)),
):
    return governance_repo.get_policies(db, practice_id, status=status)


@router.post("/policies", response_model=schemas.PolicyDocument, status_code=status.HTTP_201_CREATED)
def create_policy(
    practice_id: uuid.UUID,
    policy: schemas.PolicyDocumentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_POLICIES)),
):
    user, _ = user_context
    if policy.owner_id is None:
        policy = policy.model_copy(update={"owner_id": user.id})
    return governance_repo.create_policy(db, practice_id, policy)


@router.patch("/policies/{policy_id}", response_model=schemas.PolicyDocument)
def update_policy(
    practice_id: uuid.UUID,
    policy_id: uuid.UUID,
    policy: schemas.PolicyDocumentUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_POLICIES)),
):
    user, _ = user_context
    db_policy = _get_policy_or_404(db, practice_id, policy_id)
    return governance_repo.update_policy(db, db_policy, policy, user_id=user.id)


@router.post(
    "/policy-acknowledgments",
    response_model=schemas.PolicyAcknowledgment,
    status_code=status.HTTP_201_CREATED,
)
def acknowledge_policy(
    practice_id: uuid.UUID,
    payload: schemas.PolicyAcknowledgmentCreate,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_ACKNOWLEDGE_POLICIES)),
):
    user, _ = user_context
    _get_policy_or_404(db, practice_id, payload.policy_id)
    return governance_repo.acknowledge_policy(db, payload.policy_id, user.id)


@router.get("/policies/{policy_id}/acknowledgments", response_model=List[schemas.PolicyAcknowledgment])
def list_policy_acknowledgments(
    practice_id: uuid.UUID,
    policy_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_VIEW_POLICIES)),
):
    _get_policy_or_404(db, practice_id, policy_id)
    return governance_repo.get_policy_acknowledgments(db, policy_id)


@router.post("/policies/{policy_id}/request-approval")
def request_policy_approval(
    practice_id: uuid.UUID,
    policy_id: uuid.UUID,
    payload: schemas.ApprovalRequest,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_MANAGE_POLICIES)),
) -> Dict[str, Any]:
    user, _ = user_context
    db_policy = _get_policy_or_404(db, practice_id, policy_id)
    if db_policy.status == "pending_approval":
        raise HTTPException(status_code=409, detail="Policy is already awaiting approval")

    db_policy.status = "pending_approval"
    db.commit()
    db.refresh(db_policy)

    result = governance_service.send_approval_request(
        db,
        practice_id=practice_id,
        entity_type=POLICY_ENTITY_TYPE,
        entity_id=db_policy.id,
        entity_name=db_policy.title,
        requested_by_name=user.name,
        urgency=URGENCY_PRIORITY[payload.urgency],
    )
    return {"id": str(db_policy.id), "status": db_policy.status, **result}


@router.post("/policies/{policy_id}/approval", response_model=schemas.PolicyDocument)
def record_policy_approval(
    practice_id: uuid.UUID,
    policy_id: uuid.UUID,
    payload: schemas.ApprovalDecisionIn,
    db: Session = Depends(get_db),
    user_context=Depends(require_capability(CAP_APPROVE_GOVERNANCE)),
):
    user, _ = user_context
    db_policy = _get_policy_or_404(db, practice_id, policy_id)
    if db_policy.status != "pending_approval":
        raise HTTPException(status_code=409, detail="Policy is not awaiting approval")

    db_policy = governance_repo.record_policy_decision(db, db_policy, payload.decision, approver_id=user.id)
    logger.info("policy_decision: policy_id=%s decision=%s approver=%s", db_policy.id, payload.decision, user.id)

    governance_service.send_approval_completed(
        db,
        practice_id=practice_id,
        entity_type=POLICY_ENTITY_TYPE,
        entity_id=db_policy.id,
        entity_name=db_policy.title,
        decision=payload.decision,
        approver_name=user.name,
        owner_id=db_policy.owner_id,
        notes=payload.notes,
    )
    return db_policy
