"""
Compliance scoring: weighted driver scores, fit-for-audit, baselines and deltas.

A driver is a pass-rate over one kind of record inside a date window. The
compliance score is the weighted sum of driver scores; fit-for-audit starts
from it and subtracts penalties for red flags.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from compliance.db import models
from compliance.db.models import now_utc
from compliance.db.repositories import baselines as baseline_repo
from compliance.utils.dates import end_of_day, round1, round_half_up, start_of_day

logger = logging.getLogger(__name__)

MODEL_VERSION = "1.0"
DEFAULT_COMPARISON_WINDOW_DAYS = 90
MAX_DELTA_DRIVERS = 5

FRIDGE_MIN_TEMP = 2.0
FRIDGE_MAX_TEMP = 8.0
IPC_PASS_SCORE = 80

RAG_GREEN = "green"
RAG_AMBER = "amber"
RAG_RED = "red"
_RAG_LABELS = {RAG_GREEN: "Good", RAG_AMBER: "Needs Attention", RAG_RED: "Critical"}


@dataclass(frozen=True)
class Driver:
    name: str
    weight: float
    model: Any
    date_column: Optional[str]
    passes: Callable[[Any], bool]


def _task_passes(task) -> bool:
    return task.status == "complete"


def _policy_passes(policy) -> bool:
    return policy.status == "active"


def _fridge_passes(reading) -> bool:
    return FRIDGE_MIN_TEMP <= reading.temperature <= FRIDGE_MAX_TEMP


def _ipc_passes(audit) -> bool:
    return audit.overall_result == "pass" or (audit.overall_score or 0) >= IPC_PASS_SCORE


def _incident_passes(incident) -> bool:
    return incident.status in ("closed", "resolved")


def _complaint_passes(complaint) -> bool:
    return complaint.sla_status == "met" or complaint.ack_sent_at is not None


DRIVERS: Tuple[Driver, ...] = (
    Driver("task_completion", 0.25, models.Task, "due_at", _task_passes),
    Driver("policy_review", 0.20, models.PolicyDocument, None, _policy_passes),
    Driver("fridge_temp", 0.15, models.FridgeReading, "reading_date", _fridge_passes),
    Driver("ipc_audits", 0.20, models.IpcAudit, "audit_date", _ipc_passes),
    Driver("incident_management", 0.10, models.Incident, "date_occurred", _incident_passes),
    Driver("complaint_sla", 0.10, models.Complaint, "received_at", _complaint_passes),
)


def rag_from_score(score: float) -> str:
    if score >= 90:
        return RAG_GREEN
    if score >= 75:
        return RAG_AMBER
    return RAG_RED


def rag_label(rag: str) -> str:
    return _RAG_LABELS[rag]


def _window_rows(db: Session, practice_id: uuid.UUID, driver: Driver, start: date, end: date) -> list:
    query = db.query(driver.model).filter(driver.model.practice_id == practice_id)
    if driver.date_column:
        column = getattr(driver.model, driver.date_column)
        query = query.filter(column >= start_of_day(start), column <= end_of_day(end))
    return query.all()


def compute_scores(db: Session, practice_id: uuid.UUID, start: date, end: date) -> Dict[str, Any]:
    """Score every driver for the window and derive compliance, fit-for-audit and red flags."""
    drivers: Dict[str, Dict[str, Any]] = {}
    rows_by_driver: Dict[str, list] = {}
    raw_scores: Dict[str, float] = {}
    compliance = 0.0

    for driver in DRIVERS:
        rows = _window_rows(db, practice_id, driver, start, end)
        rows_by_driver[driver.name] = rows
        total = len(rows)
        passed = sum(1 for row in rows if driver.passes(row))
        raw_score = (passed / total * 100) if total else 100.0
        raw_scores[driver.name] = raw_score
        impact = round1(raw_score * driver.weight)
        compliance += impact
        drivers[driver.name] = {
            "score": round1(raw_score),
            "weight": driver.weight,
            "impact": impact,
            "total": total,
            "passed": passed,
        }

    fit = compliance
    red_flags: List[Dict[str, Any]] = []

    # penalties use the unrounded pass rate
    fridge_score = raw_scores["fridge_temp"]
    if fridge_score < 100:
        fit -= round_half_up((100 - fridge_score) * 0.1)
        breaches = drivers["fridge_temp"]["total"] - drivers["fridge_temp"]["passed"]
        red_flags.append({
            "type": "fridge_temp_breach",
            "severity": "high" if fridge_score < 80 else "medium",
            "description": f"{breaches} fridge temperature readings out of range",
            "confidence": 0.95,
        })

    if any(i.severity in ("major", "critical") for i in rows_by_driver["incident_management"]):
        fit -= 10
        red_flags.append({
            "type": "major_incident",
            "severity": "high",
            "description": "Major or critical incidents recorded during period",
            "confidence": 1.0,
        })

    if any(c.sla_status == "breached" for c in rows_by_driver["complaint_sla"]):
        fit -= 5
        red_flags.append({
            "type": "sla_breach",
            "severity": "medium",
            "description": "Complaint SLA breaches detected",
            "confidence": 1.0,
        })

    fit = max(0.0, min(100.0, fit))
    return {
        "compliance_score": round1(compliance),
        "fit_for_audit_score": round1(fit),
        "drivers": drivers,
        "red_flags": red_flags,
    }


def compliance_summary(db: Session, practice_id: uuid.UUID, days: int, today: Optional[date] = None) -> Dict[str, Any]:
    end = today or now_utc().date()
    start = end - timedelta(days=days)
    scores = compute_scores(db, practice_id, start, end)
    rag = rag_from_score(scores["compliance_score"])
    return {
        "start": start,
        "end": end,
        "compliance_score": scores["compliance_score"],
        "fit_for_audit_score": scores["fit_for_audit_score"],
        "rag": rag,
        "rag_label": rag_label(rag),
        "drivers": scores["drivers"],
        "red_flags": scores["red_flags"],
    }


def create_baseline(
    db: Session,
    practice_id: uuid.UUID,
    *,
    baseline_name: str,
    start_date: date,
    end_date: date,
    created_by: Optional[uuid.UUID] = None,
    replaces_baseline_id: Optional[uuid.UUID] = None,
    rebaseline_reason: Optional[str] = None,
) -> models.BaselineSnapshot:
    scores = compute_scores(db, practice_id, start_date, end_date)
    baseline = baseline_repo.create_baseline(db, practice_id, {
        "baseline_name": baseline_name,
        "start_date": start_date,
        "end_date": end_date,
        "compliance_score": scores["compliance_score"],
        "fit_for_audit_score": scores["fit_for_audit_score"],
        "driver_details": scores["drivers"],
        "red_flags": scores["red_flags"],
        "status": "active",
        "replaces_baseline_id": replaces_baseline_id,
        "rebaseline_reason": rebaseline_reason,
        "created_by": created_by,
        "model_version": MODEL_VERSION,
    })
    logger.info(
        "baseline_created: practice_id=%s baseline_id=%s compliance=%s fit=%s",
        practice_id, baseline.id, baseline.compliance_score, baseline.fit_for_audit_score,
    )
    return baseline


def _percent_change(absolute: float, base: float) -> float:
    return round1(absolute / base * 100) if base else 0.0


def _pass_rate(details: Dict[str, Any]) -> int:
    total = details.get("total") or 0
    if not total:
        return 100
    return int(round_half_up(details.get("passed", 0) / total * 100))


def _driver_changes(baseline_drivers: Dict[str, Any], current_drivers: Dict[str, Any]) -> List[Dict[str, Any]]:
    changes = []
    for name, current in current_drivers.items():
        base = baseline_drivers.get(name)
        if not base:
            continue
        impact = round1(current["score"] - base["score"])
        if impact == 0:
            continue
        direction = "improved" if impact > 0 else "decreased"
        changes.append({
            "driver": name,
            "impact": impact,
            "reason": f"Pass rate {direction} from {_pass_rate(base)}% to {_pass_rate(current)}%",
            "baseline_score": base["score"],
            "current_score": current["score"],
        })
    changes.sort(key=lambda change: abs(change["impact"]), reverse=True)
    return changes[:MAX_DELTA_DRIVERS]


def _narrative(baseline: models.BaselineSnapshot, absolute: float, drivers: List[Dict[str, Any]]) -> str:
    if absolute > 0:
        movement = f"up {absolute} pts"
    elif absolute < 0:
        movement = f"down {abs(absolute)} pts"
    else:
        movement = "unchanged"
    text = f"Since baseline ({baseline.start_date.isoformat()} – {baseline.end_date.isoformat()}), your compliance score is {movement}"
    if drivers:
        top = drivers[0]
        trend = "improvement" if top["impact"] > 0 else "decline"
        text += f" driven primarily by {top['driver'].replace('_', ' ')} {trend}."
    else:
        text += "."
    return text


def compute_delta(
    db: Session,
    baseline: models.BaselineSnapshot,
    comparison_window_days: int = DEFAULT_COMPARISON_WINDOW_DAYS,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Compare a stored baseline with the trailing window ending today."""
    end = today or now_utc().date()
    start = end - timedelta(days=comparison_window_days)
    current = compute_scores(db, baseline.practice_id, start, end)

    compliance_abs = round1(current["compliance_score"] - baseline.compliance_score)
    fit_abs = round1(current["fit_for_audit_score"] - baseline.fit_for_audit_score)
    drivers = _driver_changes(baseline.driver_details or {}, current["drivers"])

    return {
        "baseline_id": baseline.id,
        "baseline": {
            "start": baseline.start_date,
            "end": baseline.end_date,
            "compliance_score": baseline.compliance_score,
            "fit_for_audit_score": baseline.fit_for_audit_score,
        },
        "current": {
            "start": start,
            "end": end,
            "compliance_score": current["compliance_score"],
            "fit_for_audit_score": current["fit_for_audit_score"],
        },
        "delta": {
            "compliance_absolute": compliance_abs,
            "compliance_percent": _percent_change(compliance_abs, baseline.compliance_score),
            "fit_for_audit_absolute": fit_abs,
            "fit_for_audit_percent": _percent_change(fit_abs, baseline.fit_for_audit_score),
        },
        "drivers": drivers,
        "narrative": _narrative(baseline, compliance_abs, drivers),
    }
