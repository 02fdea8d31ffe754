from datetime import date, datetime, UTC

from compliance.db import models
from compliance.services import analytics

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


def _request(request_type, received_at, status="received", sent_at=None):
    return models.MedicalRequest(request_type=request_type, received_at=received_at, status=status, sent_at=sent_at)


def test_turnaround_metrics():
    requests = [
        _request("insurance", datetime(2025, 6, 1, 9, tzinfo=UTC), "sent", datetime(2025, 6, 4, 9, tzinfo=UTC)),
        _request("letter", datetime(2025, 5, 10, 9, tzinfo=UTC), "sent", datetime(2025, 5, 15, 9, tzinfo=UTC)),
        _request("medical_report", datetime(2025, 6, 1, 9, tzinfo=UTC)),
        _request("other", datetime(2025, 6, 12, 9, tzinfo=UTC), "in_progress"),
    ]

    metrics = analytics.turnaround_metrics(requests, now=NOW)

    assert metrics["average_days"] == 4
    assert metrics["pending_over_7_days"] == 1
    assert metrics["total_received"] == 4
    assert metrics["total_completed"] == 2
    assert metrics["by_type"] == {
        "insurance": 1,
        "medical_report": 1,
        "letter": 1,
        "copy_notes": 0,
        "solicitor_request": 0,
        "other": 1,
    }
    assert [m["month"] for m in metrics["monthly_trend"]] == ["Jan", "Feb", "Mar", "Apr", "May", "Jun"]
    assert metrics["monthly_trend"][-2] == {"month": "May", "count": 1, "avg_days": 5}
    assert metrics["monthly_trend"][-1] == {"month": "Jun", "count": 3, "avg_days": 3}


def test_turnaround_rounds_partial_days_up():
    request = _request("letter", datetime(2025, 6, 1, 9, tzinfo=UTC), "sent", datetime(2025, 6, 2, 10, tzinfo=UTC))
    assert analytics.turnaround_days(request) == 2
    assert analytics.turnaround_days(_request("letter", NOW)) is None


def test_turnaround_metrics_empty():
    metrics = analytics.turnaround_metrics([], now=NOW)
    assert metrics["average_days"] == 0
    assert metrics["pending_over_7_days"] == 0
    assert all(m["count"] == 0 for m in metrics["monthly_trend"])


def test_fridge_stats(db_session, practice, fridge_factory):
    vaccines = fridge_factory(practice, name="A Vaccines")
    insulin = fridge_factory(practice, name="B Insulin")
    for fridge, moment, temperature in (
        (vaccines, datetime(2025, 6, 15, 8, tzinfo=UTC), 4.0),
        (vaccines, datetime(2025, 6, 15, 16, tzinfo=UTC), 9.0),
        (insulin, datetime(2025, 6, 14, 8, tzinfo=UTC), 5.0),
        (insulin, datetime(2025, 5, 1, 8, tzinfo=UTC), 12.0),
    ):
        db_session.add(models.FridgeReading(
            practice_id=practice.id,
            fridge_id=fridge.id,
            reading_date=moment,
            temperature=temperature,
            is_out_of_range=not fridge.min_temp <= temperature <= fridge.max_temp,
        ))
    db_session.commit()

    stats = analytics.fridge_stats(db_session, practice.id, days=3, today=date(2025, 6, 15))

    assert stats["days"] == 3
    assert stats["daily"] == [
        {"date": date(2025, 6, 13), "total": 0, "compliant": 0, "breaches": 0, "compliance_rate": 0.0},
        {"date": date(2025, 6, 14), "total": 1, "compliant": 1, "breaches": 0, "compliance_rate": 100.0},
        {"date": date(2025, 6, 15), "total": 2, "compliant": 1, "breaches": 1, "compliance_rate": 50.0},
    ]
    assert stats["fridges"] == [
        {
            "fridge_id": vaccines.id,
            "fridge_name": "A Vaccines",
            "total_logs": 2,
            "breaches": 1,
            "compliance_rate": 50.0,
            "avg_temperature": 6.5,
        },
        {
            "fridge_id": insulin.id,
            "fridge_name": "B Insulin",
            "total_logs": 1,
            "breaches": 0,
            "compliance_rate": 100.0,
            "avg_temperature": 5.0,
        },
    ]
