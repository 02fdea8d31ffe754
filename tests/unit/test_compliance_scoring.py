from datetime import timedelta

import pytest

from compliance.db import models
from compliance.services import compliance_scoring as scoring
from tests.helpers import utc_now, days_from_now


@pytest.mark.parametrize("score,rag", [
    (100, "green"),
    (90, "green"),
    (89.9, "amber"),
    (75, "amber"),
    (74.9, "red"),
    (0, "red"),
])
def test_rag_thresholds(score, rag):
    assert scoring.rag_from_score(score) == rag


def test_driver_weights_sum_to_one():
    assert sum(driver.weight for driver in scoring.DRIVERS) == pytest.approx(1.0)


def test_empty_practice_scores_full_marks(db_session, practice):
    summary = scoring.compliance_summary(db_session, practice.id, days=90)
    assert summary["compliance_score"] == pytest.approx(100.0)
    assert summary["fit_for_audit_score"] == pytest.approx(100.0)
    assert summary["rag"] == "green"
    assert summary["rag_label"] == "Good"
    assert summary["red_flags"] == []
    assert all(d["total"] == 0 and d["score"] == 100.0 for d in summary["drivers"].values())


def test_fridge_breach_penalises_fit_for_audit(db_session, practice, fridge_factory):
    fridge = fridge_factory(practice)
    for temperature in (4.0, 5.0, 6.0, 9.5):
        db_session.add(models.FridgeReading(
            practice_id=practice.id,
            fridge_id=fridge.id,
            reading_date=utc_now(),
            temperature=temperature,
            is_out_of_range=temperature > 8.0,
        ))
    db_session.commit()

    summary = scoring.compliance_summary(db_session, practice.id, days=30)
    fridge = summary["drivers"]["fridge_temp"]
    assert fridge["score"] == 75.0
    assert fridge["total"] == 4 and fridge["passed"] == 3
    assert summary["compliance_score"] == pytest.approx(96.3)
    # round_half_up(25 * 0.1) == 3
    assert summary["fit_for_audit_score"] == pytest.approx(93.3)
    assert summary["red_flags"] == [{
        "type": "fridge_temp_breach",
        "severity": "high",
        "description": "1 fridge temperature readings out of range",
        "confidence": 0.95,
    }]


def test_fridge_penalty_uses_unrounded_pass_rate(db_session, practice, fridge_factory):
    fridge = fridge_factory(practice)
    for index in range(101):
        temperature = 9.0 if index < 5 else 5.0
        db_session.add(models.FridgeReading(
            practice_id=practice.id,
            fridge_id=fridge.id,
            reading_date=utc_now(),
            temperature=temperature,
            is_out_of_range=temperature > 8.0,
        ))
    db_session.commit()

    today = utc_now().date()
    scores = scoring.compute_scores(db_session, practice.id, today - timedelta(days=1), today)
    assert scores["drivers"]["fridge_temp"]["score"] == 95.0
    # 96/101 passes is 95.0495%, so the deduction rounds (4.95 * 0.1) down to 0
    assert scores["compliance_score"] == pytest.approx(99.3)
    assert scores["fit_for_audit_score"] == scores["compliance_score"]
    assert scores["red_flags"][0]["severity"] == "medium"


def test_major_incident_and_sla_breach_flags(db_session, practice):
    db_session.add(models.Incident(
        practice_id=practice.id,
        category="clinical",
        severity="major",
        description="Wrong vaccine administered",
        date_occurred=days_from_now(-3),
        status="closed",
    ))
    db_session.add(models.Complaint(
        practice_id=practice.id,
        received_at=days_from_now(-10),
        description="Long wait",
        sla_status="breached",
    ))
    db_session.commit()

    summary = scoring.compliance_summary(db_session, practice.id, days=90)
    flag_types = [flag["type"] for flag in summary["red_flags"]]
    assert flag_types == ["major_incident", "sla_breach"]
    # incident closed counts as a pass; the breached complaint fails its driver
    assert summary["compliance_score"] == pytest.approx(90.0)
    assert summary["fit_for_audit_score"] == pytest.approx(75.0)


def test_records_outside_window_are_ignored(db_session, practice):
    db_session.add(models.Task(
        practice_id=practice.id,
        title="Old check",
        status="pending",
        due_at=days_from_now(-200),
    ))
    db_session.commit()
    scores = scoring.compute_scores(db_session, practice.id, (utc_now() - timedelta(days=90)).date(), utc_now().date())
    assert scores["drivers"]["task_completion"]["total"] == 0


def test_baseline_delta_reports_top_driver(db_session, practice, manager):
    today = utc_now().date()
    baseline = scoring.create_baseline(
        db_session,
        practice.id,
        baseline_name="Q1 baseline",
        start_date=today - timedelta(days=200),
        end_date=today - timedelta(days=120),
        created_by=manager.id,
    )
    assert baseline.compliance_score == pytest.approx(100.0)
    assert baseline.model_version == scoring.MODEL_VERSION

    for status in ("complete", "pending"):
        db_session.add(models.Task(
            practice_id=practice.id,
            title=f"Daily check ({status})",
            status=status,
            due_at=days_from_now(-1),
        ))
    db_session.commit()

    delta = scoring.compute_delta(db_session, baseline, comparison_window_days=30)
    assert delta["current"]["compliance_score"] == pytest.approx(87.5)
    assert delta["delta"]["compliance_absolute"] == pytest.approx(-12.5)
    assert delta["delta"]["compliance_percent"] == pytest.approx(-12.5)
    assert delta["drivers"] == [{
        "driver": "task_completion",
        "impact": -50.0,
        "reason": "Pass rate decreased from 100% to 50%",
        "baseline_score": 100.0,
        "current_score": 50.0,
    }]
    assert delta["delta"]["fit_for_audit_absolute"] == pytest.approx(-12.5)
    assert delta["delta"]["fit_for_audit_percent"] == pytest.approx(-12.5)
    assert "compliance score is down 12.5 pts" in delta["narrative"]
    assert delta["narrative"].endswith("driven primarily by task completion decline.")


def test_rebaseline_supersedes_previous(db_session, practice):
    today = utc_now().date()
    first = scoring.create_baseline(
        db_session, practice.id, baseline_name="First", start_date=today - timedelta(days=90), end_date=today,
    )
    second = scoring.create_baseline(
        db_session,
        practice.id,
        baseline_name="Second",
        start_date=today - timedelta(days=30),
        end_date=today,
        replaces_baseline_id=first.id,
        rebaseline_reason="New partner joined",
    )
    db_session.refresh(first)
    assert first.status == "superseded"
    assert second.status == "active"
    assert second.replaces_baseline_id == first.id


def test_unchanged_delta_narrative(db_session, practice):
    today = utc_now().date()
    baseline = scoring.create_baseline(
        db_session, practice.id, baseline_name="Steady", start_date=today - timedelta(days=90), end_date=today,
    )
    delta = scoring.compute_delta(db_session, baseline)
    assert delta["drivers"] == []
    assert delta["narrative"].endswith("your compliance score is unchanged.")
