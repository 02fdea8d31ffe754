"""
Domain-split SQLAlchemy models.

Exposes `Base`, `now_utc`, and all ORM classes from one import point.
"""

from .base import Base, now_utc  # re-export

from .practices import Practice, User
from .workforce import Employee, TrainingRecord
from .processes import ProcessTemplate, Task
from .governance import Incident, Complaint, PolicyDocument, PolicyAcknowledgment, IpcAudit
from .fridges import FridgeUnit, FridgeReading
from .medical_requests import MedicalRequest
from .notifications import NotificationPreference, Notification, ScheduledReminder, EmailLog
from .audit import AuditLog
from .baselines import BaselineSnapshot

__all__ = [
    # base
    "Base",
    "now_utc",
    # practices/users
    "Practice",
    "User",
    # workforce
    "Employee",
    "TrainingRecord",
    # processes
    "ProcessTemplate",
    "Task",
    # governance
    "Incident",
    "Complaint",
    "PolicyDocument",
    "PolicyAcknowledgment",
    "IpcAudit",
    # fridges
    "FridgeUnit",
    "FridgeReading",
    "MedicalRequest",
    # notifications/email
    "NotificationPreference",
    "Notification",
    "ScheduledReminder",
    "EmailLog",
    # audit/baselines
    "AuditLog",
    "BaselineSnapshot",
]
