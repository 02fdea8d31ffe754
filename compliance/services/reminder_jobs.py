"""
Cron-triggered reminder jobs.

Each job takes a session and an optional ``now`` (for tests), notifies the
relevant staff in-app and, where their preferences allow, by email. Per-record
failures are logged and every job returns a JSON-ready summary. Jobs are
exposed over HTTP in ``compliance.api.jobs`` and on the command line through
``scripts/run_job.py``.
"""
from __future__ import annotations

import logging
import math
import re
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from compliance.db import models
from compliance.db.models import now_utc
from compliance.db.repositories import governance as governance_repo
from compliance.db.repositories import notifications as reminder_repo
from compliance.db.repositories.practices import (
    get_active_users,
    get_practice_managers,
    get_users_with_capability,
)
from compliance.utils.role_permissions import CAP_MANAGE_POLICIES
from compliance.services.notification_service import (
    NotificationService,
    TEMPLATE_POLICY_ACK_ESCALATION,
    TEMPLATE_POLICY_ACK_REMINDER,
    TEMPLATE_POLICY_REVIEW,
    TYPE_COMPLAINT_SLA_ALERT,
    TYPE_POLICY_ACK_ESCALATION,
    TYPE_POLICY_ACK_REMINDER,
    TYPE_POLICY_REVIEW,
    TYPE_TRAINING_EXPIRY,
)
from compliance.utils.dates import add_months, as_utc
from compliance.utils.runtime import get_app_base_url

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60
_MONTHLY_PATTERN = re.compile(r"0 9 (\d+) \* \*")

ACK_REMINDER_AFTER_DAYS = 7
ACK_ESCALATION_AFTER_DAYS = 21
ACK_REMINDER_INTERVAL_DAYS = 7


def _meta(reminder: models.ScheduledReminder, key: str, fallback: str) -> str:
    value = (reminder.get_metadata() or {}).get(key)
    return str(value) if value not in (None, "") else fallback


# reminder_type -> (priority, action_url, message builder)
REMINDER_RULES: Dict[str, Tuple[str, str, Callable[[models.ScheduledReminder], str]]] = {
    "claim_reminder": ("high", "/claims", lambda r: f"Enhanced Services Claims Review - {_meta(r, 'description', 'Due today')}"),
    "ipc_audit_due": ("high", "/infection-control", lambda r: f"Infection Control Audit Due - {_meta(r, 'description', 'Six-monthly audit')}"),
    "fire_assessment_due": ("high", "/fire-safety", lambda r: "Annual Fire Risk Assessment Due - Please complete assessment"),
    "coshh_due": ("medium", "/fire-safety", lambda r: "COSHH Assessment Due - Annual review required"),
    "legionella_due": ("high", "/fire-safety", lambda r: "Legionella Testing Due - Annual assessment required"),
    "room_assessment_due": ("medium", "/fire-safety", lambda r: "Room Assessment Due - Annual inspection required"),
    "dbs_review_due": ("high", "/hr", lambda r: f"DBS Review Due - {_meta(r, 'employee_name', 'Staff member')} requires review"),
    "training_expiry": ("medium", "/hr", lambda r: (
        f"Training Expiring Soon - {_meta(r, 'course_name', 'Certificate')} for {_meta(r, 'employee_name', 'staff member')}"
    )),
    "appraisal_due": ("medium", "/hr", lambda r: f"Annual Appraisal Due - {_meta(r, 'employee_name', 'Staff member')}"),
    "complaint_holding_letter": ("urgent", "/complaints", lambda r: (
        f"Complaint Holding Letter Due - 48-hour deadline for complaint #{_meta(r, 'complaint_id', 'N/A')}"
    )),
    "complaint_final_response": ("urgent", "/complaints", lambda r: (
        f"Complaint Final Response Due - 30-day deadline for complaint #{_meta(r, 'complaint_id', 'N/A')}"
    )),
    "medical_request_reminder": ("high", "/medical-requests", lambda r: (
        f"Medical Request Reminder - 20 days since receipt for request #{_meta(r, 'request_id', 'N/A')}"
    )),
    "medical_request_escalation": ("urgent", "/medical-requests", lambda r: (
        f"Medical Request ESCALATION - 30 days since receipt for request #{_meta(r, 'request_id', 'N/A')}"
    )),
    "fridge_temp_alert": ("urgent", "/fridge-temps", lambda r: (
        f"Fridge Temperature Out of Range - {_meta(r, 'fridge_name', 'Fridge')} at {_meta(r, 'temperature', 'N/A')}°C"
    )),
    "policy_review_due": ("medium", "/policies", lambda r: f"Policy Review Due - {_meta(r, 'policy_title', 'Policy')} requires annual review"),
    "task_overdue": ("high", "/tasks", lambda r: f"Task Overdue - {_meta(r, 'task_title', 'Task')} is past SLA"),
}


def reminder_content(reminder: models.ScheduledReminder) -> Tuple[str, str, str]:
    """Return ``(message, priority, action_url)`` for a reminder."""
    rule = REMINDER_RULES.get(reminder.reminder_type)
    if rule is None:
        return _meta(reminder, "description", "Reminder notification"), "medium", "/"
    priority, action_url, build = rule
    return build(reminder), priority, action_url


def next_run_at(schedule_pattern: Optional[str], now: datetime) -> datetime:
    """Monthly ``0 9 D * *`` runs next month on day D at 09:00 UTC; ``on_date`` repeats in six months."""
    pattern = schedule_pattern or ""
    match = _MONTHLY_PATTERN.fullmatch(pattern.strip())
    if match:
        return add_months(now, 1, day=int(match.group(1))).replace(hour=9, minute=0, second=0, microsecond=0)
    if pattern == "on_date":
        return add_months(now, 6)
    return now


def process_scheduled_reminders(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or now_utc()
    logger.info("scheduled_reminders_start: now=%s", now.isoformat())
    due = reminder_repo.get_due_reminders(db, now)
    if not due:
        return {"ok": True, "message": "No reminders due", "processed": 0}

    service = NotificationService(db)
    processed = 0
    created = 0
    for reminder in due:
        try:
            if not get_practice_managers(db, reminder.practice_id):
                logger.info("scheduled_reminder_skip: no managers practice_id=%s reminder_id=%s", reminder.practice_id, reminder.id)
                continue
            message, priority, action_url = reminder_content(reminder)
            notifications = service.notify_practice_managers(
                reminder.practice_id,
                notification_type=reminder.reminder_type,
                title="Scheduled Reminder",
                message=message,
                priority=priority,
                action_url=action_url,
            )
            created += len(notifications)
            reminder.last_run_at = now
            reminder.next_run_at = next_run_at(reminder.schedule_pattern, now)
            db.commit()
            processed += 1
        except Exception:
            db.rollback()
            logger.exception("scheduled_reminder_error: reminder_id=%s", reminder.id)

    logger.info("scheduled_reminders_done: processed=%s notifications=%s", processed, created)
    return {"ok": True, "processed": processed, "notifications_created": created}


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def policy_review_reminders(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or now_utc()
    policies = governance_repo.get_policies_due_for_review(db, now + timedelta(days=30))
    logger.info("policy_review_start: policies=%s", len(policies))
    if not policies:
        return {"ok": True, "message": "No policies requiring review attention", "policies_checked": 0}

    alerts: "OrderedDict[Any, Dict[str, Any]]" = OrderedDict()
    for policy in policies:
        due = as_utc(policy.next_review_date)
        days_until_due = math.floor((due - now).total_seconds() / DAY_SECONDS)
        alert = alerts.get(policy.practice_id)
        if alert is None:
            practice = db.get(models.Practice, policy.practice_id)
            alert = alerts[policy.practice_id] = {
                "practice_name": practice.name if practice else "Unknown Practice",
                "overdue_count": 0,
                "due_soon_count": 0,
                "due_month_count": 0,
                "policies": [],
            }
        alert["policies"].append({
            "id": str(policy.id),
            "title": policy.title,
            "version": policy.version or "unversioned",
            "review_due": due.isoformat(),
            "days_until_due": days_until_due,
        })
        if days_until_due < 0:
            alert["overdue_count"] += 1
        elif days_until_due <= 7:
            alert["due_soon_count"] += 1
        else:
            alert["due_month_count"] += 1

    service = NotificationService(db)
    created = 0
    emails_sent = 0
    for practice_id, alert in alerts.items():
        priority, title, message = "normal", "Policy Reviews Due", ""
        overdue, soon, month = alert["overdue_count"], alert["due_soon_count"], alert["due_month_count"]
        if overdue > 0:
            priority, title = "urgent", "⚠️ Overdue Policy Reviews"
            message = f"{overdue} {_plural(overdue, 'policy is', 'policies are')} overdue for review. "
        elif soon > 0:
            priority, title = "high", "⏰ Policy Reviews Due Soon"
            message = f"{soon} {_plural(soon, 'policy', 'policies')} due within 7 days. "
        if month > 0:
            message += f"{month} additional {_plural(month, 'policy', 'policies')} due within 30 days."

        try:
            notifications = service.notify_practice_managers(
                practice_id,
                notification_type=TYPE_POLICY_REVIEW,
                title=title,
                message=message,
                priority=priority,
                action_url="/policies",
                expires_days=30,
                metadata={
                    "overdue_count": overdue,
                    "due_soon_count": soon,
                    "due_month_count": month,
                    "policies": alert["policies"],
                },
            )
            emails_sent += _email_policy_reviewers(db, service, practice_id, alert)
        except Exception:
            db.rollback()
            logger.exception("policy_review_notify_error: practice_id=%s", practice_id)
            continue
        if not notifications:
            logger.warning("policy_review_skip: no managers practice_id=%s", practice_id)
        created += len(notifications)

    summary = {
        "ok": True,
        "timestamp": now.isoformat(),
        "policies_checked": len(policies),
        "practices_affected": len(alerts),
        "notifications_created": created,
        "emails_sent": emails_sent,
        "breakdown": [
            {
                "practice": alert["practice_name"],
                "overdue": alert["overdue_count"],
                "due_soon": alert["due_soon_count"],
                "due_month": alert["due_month_count"],
            }
            for alert in alerts.values()
        ],
    }
    logger.info("policy_review_done: practices=%s notifications=%s emails=%s", len(alerts), created, emails_sent)
    return summary


def _policy_review_subject(alert: Dict[str, Any]) -> str:
    overdue = alert["overdue_count"]
    if overdue:
        return f"⚠️ {overdue} Policy {_plural(overdue, 'Review', 'Reviews')} Overdue - {alert['practice_name']}"
    due = len(alert["policies"])
    return f"{due} Policy {_plural(due, 'Review', 'Reviews')} Due - {alert['practice_name']}"


def _email_policy_reviewers(db: Session, service: NotificationService, practice_id: Any, alert: Dict[str, Any]) -> int:
    """Email everyone who can manage policies; returns the number of emails accepted by the provider."""
    sent = 0
    for reviewer in get_users_with_capability(db, practice_id, CAP_MANAGE_POLICIES):
        if not reviewer.email or not service.wants_policy_email(reviewer.id):
            continue
        result = service.deliver_email(
            practice_id=practice_id,
            recipient_email=reviewer.email,
            recipient_name=reviewer.name,
            subject=_policy_review_subject(alert),
            email_type=TYPE_POLICY_REVIEW,
            template_name=TEMPLATE_POLICY_REVIEW,
            template_context={
                "recipient_name": reviewer.name or "Colleague",
                "practice_name": alert["practice_name"],
                "overdue_count": alert["overdue_count"],
                "due_count": alert["due_soon_count"] + alert["due_month_count"],
                "policies": alert["policies"],
                "dashboard_url": f"{get_app_base_url()}/policies",
            },
        )
        if result.get("success"):
            sent += 1
        else:
            logger.error("policy_review_email_failed: user_id=%s error=%s", reviewer.id, result.get("error"))
    return sent


def _in_force_since(policy: models.PolicyDocument) -> datetime:
    return as_utc(policy.approved_at or policy.created_at)


def _unacknowledged_policies(db: Session, now: datetime, after_days: int) -> "OrderedDict[Any, Dict[str, Any]]":
    """Active users with active policies in force for ``after_days`` or more that they have not acknowledged.

    Keyed by user id; each entry holds the user, practice name and policy summaries.
    """
    pending: "OrderedDict[Any, Dict[str, Any]]" = OrderedDict()
    practice_users: Dict[Any, List[models.User]] = {}
    for policy in governance_repo.get_policies_in_force_since(db, now - timedelta(days=after_days)):
        if policy.practice_id not in practice_users:
            practice_users[policy.practice_id] = get_active_users(db, policy.practice_id)
        acknowledged = governance_repo.get_acknowledged_user_ids(db, policy.id)
        days_in_force = math.floor((now - _in_force_since(policy)).total_seconds() / DAY_SECONDS)
        for user in practice_users[policy.practice_id]:
            if user.id in acknowledged:
                continue
            entry = pending.get(user.id)
            if entry is None:
                practice = db.get(models.Practice, policy.practice_id)
                entry = pending[user.id] = {
                    "user": user,
                    "practice_id": policy.practice_id,
                    "practice_name": practice.name if practice else "Unknown Practice",
                    "policies": [],
                }
            entry["policies"].append({
                "id": str(policy.id),
                "title": policy.title,
                "version": policy.version or "unversioned",
                "days_in_force": days_in_force,
            })
    return pending


def policy_acknowledgment_reminders(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Remind staff about policies in force for a week that they have not acknowledged, at most weekly."""
    now = now or now_utc()
    pending = _unacknowledged_policies(db, now, ACK_REMINDER_AFTER_DAYS)
    logger.info("policy_ack_reminders_start: staff=%s", len(pending))
    if not pending:
        return {"ok": True, "message": "All policies have been acknowledged", "staff_notified": 0}

    service = NotificationService(db)
    since = now - timedelta(days=ACK_REMINDER_INTERVAL_DAYS)
    notified = 0
    emails_sent = 0
    skipped = 0
    for user_id, entry in pending.items():
        user, policies = entry["user"], entry["policies"]
        try:
            if reminder_repo.notified_since(db, user_id, TYPE_POLICY_ACK_REMINDER, since):
                skipped += 1
                continue
            count = len(policies)
            service.create_notification(
                practice_id=entry["practice_id"],
                user_id=user_id,
                notification_type=TYPE_POLICY_ACK_REMINDER,
                title="Policy Acknowledgment Required",
                message=f"{count} {_plural(count, 'policy needs', 'policies need')} your acknowledgment",
                priority="high",
                action_url="/policies",
                metadata={"policies": policies},
            )
            notified += 1
            if user.email and service.wants_policy_email(user_id):
                result = service.deliver_email(
                    practice_id=entry["practice_id"],
                    recipient_email=user.email,
                    recipient_name=user.name,
                    subject=f"⏰ Reminder: {count} Policy {_plural(count, 'Acknowledgment', 'Acknowledgments')} Pending",
                    email_type=TYPE_POLICY_ACK_REMINDER,
                    template_name=TEMPLATE_POLICY_ACK_REMINDER,
                    template_context={
                        "recipient_name": user.name or "Colleague",
                        "practice_name": entry["practice_name"],
                        "policies": policies,
                        "dashboard_url": f"{get_app_base_url()}/policies",
                    },
                )
                if result.get("success"):
                    emails_sent += 1
        except Exception:
            db.rollback()
            logger.exception("policy_ack_reminder_error: user_id=%s", user_id)

    logger.info("policy_ack_reminders_done: notified=%s emails=%s skipped=%s", notified, emails_sent, skipped)
    return {
        "ok": True,
        "staff_notified": notified,
        "emails_sent": emails_sent,
        "skipped_recently_reminded": skipped,
        "reminder_threshold_days": ACK_REMINDER_AFTER_DAYS,
    }


def policy_acknowledgment_escalations(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Tell practice managers which staff still have not acknowledged policies after three weeks."""
    now = now or now_utc()
    pending = _unacknowledged_policies(db, now, ACK_ESCALATION_AFTER_DAYS)
    by_practice: "OrderedDict[Any, List[Dict[str, Any]]]" = OrderedDict()
    for entry in pending.values():
        by_practice.setdefault(entry["practice_id"], []).append(entry)
    logger.info("policy_ack_escalations_start: practices=%s staff=%s", len(by_practice), len(pending))
    if not by_practice:
        return {"ok": True, "message": "No escalations needed", "managers_notified": 0}

    service = NotificationService(db)
    since = now - timedelta(days=ACK_REMINDER_INTERVAL_DAYS)
    notified = 0
    emails_sent = 0
    for practice_id, entries in by_practice.items():
        staff = [
            {"name": entry["user"].name, "policies": [p["title"] for p in entry["policies"]]}
            for entry in entries
        ]
        practice_name = entries[0]["practice_name"]
        for manager in get_practice_managers(db, practice_id):
            try:
                if reminder_repo.notified_since(db, manager.id, TYPE_POLICY_ACK_ESCALATION, since):
                    continue
                service.create_notification(
                    practice_id=practice_id,
                    user_id=manager.id,
                    notification_type=TYPE_POLICY_ACK_ESCALATION,
                    title="Policy Acknowledgments Overdue",
                    message=(
                        f"{len(staff)} staff {_plural(len(staff), 'member has', 'members have')} not acknowledged "
                        f"policies in force for over {ACK_ESCALATION_AFTER_DAYS} days"
                    ),
                    priority="urgent",
                    action_url="/policies",
                    metadata={"staff": staff},
                )
                notified += 1
                if manager.email and service.wants_policy_email(manager.id):
                    result = service.deliver_email(
                        practice_id=practice_id,
                        recipient_email=manager.email,
                        recipient_name=manager.name,
                        subject=(
                            f"🚨 ESCALATION: {len(staff)} Staff {_plural(len(staff), 'Member', 'Members')} "
                            "Need Policy Acknowledgment"
                        ),
                        email_type=TYPE_POLICY_ACK_ESCALATION,
                        template_name=TEMPLATE_POLICY_ACK_ESCALATION,
                        template_context={
                            "recipient_name": manager.name or "Practice Manager",
                            "practice_name": practice_name,
                            "staff": staff,
                            "threshold_days": ACK_ESCALATION_AFTER_DAYS,
                            "dashboard_url": f"{get_app_base_url()}/policies",
                        },
                    )
                    if result.get("success"):
                        emails_sent += 1
            except Exception:
                db.rollback()
                logger.exception("policy_ack_escalation_error: manager_id=%s", manager.id)

    logger.info("policy_ack_escalations_done: managers=%s emails=%s", notified, emails_sent)
    return {
        "ok": True,
        "practices_affected": len(by_practice),
        "managers_notified": notified,
        "emails_sent": emails_sent,
        "escalation_threshold_days": ACK_ESCALATION_AFTER_DAYS,
    }


def _complaint_sla_state(complaint: models.Complaint, now: datetime) -> Optional[str]:
    ack_due = as_utc(complaint.ack_due)
    final_due = as_utc(complaint.final_due)
    state = None
    if ack_due and complaint.ack_sent_at is None:
        if now > ack_due:
            state = "overdue"
        elif (ack_due - now).total_seconds() / 3600 <= 24:
            state = "at_risk"
    if final_due and complaint.ack_sent_at is not None and complaint.final_sent_at is None:
        if now > final_due:
            state = "overdue"
        elif (final_due - now).total_seconds() / DAY_SECONDS <= 5:
            state = "at_risk"
    return state


def complaints_sla_scan(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or now_utc()
    if now.weekday() >= 5:
        logger.info("complaints_sla_scan_skip: weekend")
        return {"ok": True, "message": "Weekend, no scan needed"}

    complaints = (
        db.query(models.Complaint)
        .filter(models.Complaint.status != "resolved", models.Complaint.ack_due.isnot(None))
        .all()
    )
    logger.info("complaints_sla_scan_start: open=%s", len(complaints))

    service = NotificationService(db)
    results = []
    for complaint in complaints:
        try:
            state = _complaint_sla_state(complaint, now)
            if state is None:
                continue
            if complaint.status != state:
                complaint.status = state
                complaint.sla_status = "breached" if state == "overdue" else "at_risk"
                db.commit()
            service.notify_practice_managers(
                complaint.practice_id,
                notification_type=TYPE_COMPLAINT_SLA_ALERT,
                title=f"Complaint SLA {'Overdue' if state == 'overdue' else 'At Risk'}",
                message=f"Complaint #{str(complaint.id)[:8]} is {state}. Action required.",
                priority="urgent" if state == "overdue" else "high",
                action_url="/complaints",
            )
            results.append({"complaint_id": str(complaint.id)[:8], "status": state, "action": "notified"})
        except Exception:
            db.rollback()
            logger.exception("complaints_sla_scan_error: complaint_id=%s", complaint.id)

    logger.info("complaints_sla_scan_done: notified=%s", len(results))
    return {"ok": True, "results": results}


def training_expiry_scan(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or now_utc()
    records = (
        db.query(models.TrainingRecord)
        .filter(
            models.TrainingRecord.expiry_date.isnot(None),
            models.TrainingRecord.expiry_date <= now + timedelta(days=90),
            or_(
                models.TrainingRecord.reminder_sent_at.is_(None),
                models.TrainingRecord.reminder_sent_at < now - timedelta(days=30),
            ),
        )
        .order_by(models.TrainingRecord.expiry_date.asc())
        .all()
    )
    logger.info("training_expiry_scan_start: records=%s", len(records))

    service = NotificationService(db)
    results = []
    for record in records:
        try:
            employee = db.get(models.Employee, record.employee_id)
            if employee is None:
                continue
            days_until = math.ceil((as_utc(record.expiry_date) - now).total_seconds() / DAY_SECONDS)
            if days_until <= 30:
                priority = "urgent"
            elif days_until <= 60:
                priority = "high"
            else:
                priority = "medium"
            message = f'{employee.name}: Training certificate "{record.course_name}" expires in {days_until} days'
            service.notify_practice_managers(
                record.practice_id,
                notification_type=TYPE_TRAINING_EXPIRY,
                title="Training Certificate Expiring",
                message=message,
                priority=priority,
                action_url="/hr",
            )
            record.reminder_sent_at = now
            db.commit()
            results.append({
                "employee": employee.name,
                "training": record.course_name,
                "days_until_expiry": days_until,
                "priority": priority,
                "status": "notified",
            })
        except Exception:
            db.rollback()
            logger.exception("training_expiry_scan_error: record_id=%s", record.id)

    logger.info("training_expiry_scan_done: notified=%s", len(results))
    return {"ok": True, "results": results}


def cleanup_expired_notifications(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    removed = NotificationService(db).cleanup_expired_notifications()
    logger.info("notification_cleanup_done: removed=%s", removed)
    return {"ok": True, "removed": removed}


JOBS: Dict[str, Callable[..., Dict[str, Any]]] = {
    "process-scheduled-reminders": process_scheduled_reminders,
    "policy-review-reminders": policy_review_reminders,
    "policy-acknowledgment-reminders": policy_acknowledgment_reminders,
    "policy-acknowledgment-escalations": policy_acknowledgment_escalations,
    "complaints-sla-scan": complaints_sla_scan,
    "training-expiry-scan": training_expiry_scan,
    "cleanup-expired-notifications": cleanup_expired_notifications,
}
