"""
Read-only analytics over medical requests and fridge temperature logs.
"""
from __future__ import annotations

import math
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from compliance.db import models
from compliance.db.models import now_utc
from compliance.db.repositories import fridges as fridge_repo
from compliance.db.repositories import medical_requests as medical_request_repo
from compliance.utils.dates import add_months, as_utc, end_of_day, round1, round_half_up, start_of_day

REQUEST_TYPES = ("insurance", "medical_report", "letter", "copy_notes", "solicitor_request", "other")
TREND_MONTHS = 6
PENDING_ALERT_DAYS = 7

_SECONDS_PER_DAY = 24 * 60 * 60


def _ceil_days(start: datetime, end: datetime) -> int:
    return math.ceil(abs((as_utc(end) - as_utc(start)).total_seconds()) / _SECONDS_PER_DAY)


def turnaround_days(request: models.MedicalRequest) -> Optional[int]:
    if request.sent_at is None:
        return None
    return _ceil_days(request.received_at, request.sent_at)


def days_pending(request: models.MedicalRequest, now: datetime) -> int:
    return _ceil_days(request.received_at, now)


def _rounded_mean(values: List[int]) -> int:
    if not values:
        return 0
    return int(round_half_up(sum(values) / len(values)))


def _completed(requests: Iterable[models.MedicalRequest]) -> List[models.MedicalRequest]:
    return [r for r in requests if r.status == "sent" and r.sent_at is not None]


def turnaround_metrics(
    requests: List[models.MedicalRequest],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Turnaround summary plus a six month trend, oldest month first."""
    now = now or now_utc()
    completed = _completed(requests)
    pending = [r for r in requests if r.status != "sent"]

    monthly_trend = []
    for offset in range(TREND_MONTHS - 1, -1, -1):
        month_start = add_months(start_of_day(now.date()), -offset, day=1)
        month_end = add_months(month_start, 1) - timedelta(microseconds=1)
        in_month = [r for r in requests if month_start <= as_utc(r.received_at) <= month_end]
        monthly_trend.append({
            "month": month_start.strftime("%b"),
            "count": len(in_month),
            "avg_days": _rounded_mean([turnaround_days(r) for r in _completed(in_month)]),
        })

    return {
        "average_days": _rounded_mean([turnaround_days(r) for r in completed]),
        "pending_over_7_days": sum(1 for r in pending if days_pending(r, now) > PENDING_ALERT_DAYS),
        "total_received": len(requests),
        "total_completed": len(completed),
        "by_type": {t: sum(1 for r in requests if r.request_type == t) for t in REQUEST_TYPES},
        "monthly_trend": monthly_trend,
    }


def medical_request_analytics(db: Session, practice_id: uuid.UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
    return turnaround_metrics(medical_request_repo.get_medical_requests(db, practice_id), now=now)


def _rate(compliant: int, total: int) -> float:
    return round1(compliant / total * 100) if total else 0.0


def fridge_stats(db: Session, practice_id: uuid.UUID, days: int = 30, today: Optional[date] = None) -> Dict[str, Any]:
    """Daily compliance for each of the last ``days`` days and per-fridge totals."""
    today = today or now_utc().date()
    first_day = today - timedelta(days=days - 1)
    readings = fridge_repo.get_readings(
        db, practice_id, start=start_of_day(first_day), end=end_of_day(today)
    )

    by_day: Dict[date, List[models.FridgeReading]] = defaultdict(list)
    by_fridge: Dict[uuid.UUID, List[models.FridgeReading]] = defaultdict(list)
    for reading in readings:
        by_day[as_utc(reading.reading_date).date()].append(reading)
        by_fridge[reading.fridge_id].append(reading)

    daily = []
    for index in range(days):
        day = first_day + timedelta(days=index)
        logs = by_day.get(day, [])
        breaches = sum(1 for r in logs if r.is_out_of_range)
        daily.append({
            "date": day,
            "total": len(logs),
            "compliant": len(logs) - breaches,
            "breaches": breaches,
            "compliance_rate": _rate(len(logs) - breaches, len(logs)),
        })

    fridges = []
    for fridge in fridge_repo.get_fridges(db, practice_id):
        logs = by_fridge.get(fridge.id, [])
        breaches = sum(1 for r in logs if r.is_out_of_range)
        fridges.append({
            "fridge_id": fridge.id,
            "fridge_name": fridge.name,
            "total_logs": len(logs),
            "breaches": breaches,
            "compliance_rate": _rate(len(logs) - breaches, len(logs)),
            "avg_temperature": round1(sum(r.temperature for r in logs) / len(logs)) if logs else None,
        })

    return {"days": days, "daily": daily, "fridges": fridges}
