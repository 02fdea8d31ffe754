"""
Domain-split Pydantic schemas, re-exported from one import point.
"""

from .practices import (
    PracticeBase,
    PracticeCreate,
    PracticeUpdate,
    Practice,
    PracticeSummary,
    UserBase,
    UserCreate,
    UserUpdate,
    User,
    UserSummary,
    CurrentUser,
    LoginRequest,
    RegisterRequest,
)
from .workforce import (
    EmployeeBase,
    EmployeeCreate,
    EmployeeUpdate,
    Employee,
    TrainingRecordBase,
    TrainingRecordCreate,
    TrainingRecordUpdate,
    TrainingRecord,
)
from .processes import (
    ProcessTemplateBase,
    ProcessTemplateCreate,
    ProcessTemplateUpdate,
    ProcessTemplate,
    TaskBase,
    TaskCreate,
    TaskUpdate,
    Task,
    InitialTasksResult,
)
from .governance import (
    IncidentBase,
    IncidentCreate,
    IncidentUpdate,
    Incident,
    ComplaintBase,
    ComplaintCreate,
    ComplaintUpdate,
    Complaint,
    PolicyDocumentBase,
    PolicyDocumentCreate,
    PolicyDocumentUpdate,
    PolicyDocument,
    PolicyAcknowledgmentCreate,
    PolicyAcknowledgment,
    ApprovalRequest,
    ApprovalDecisionIn,
    IpcAuditBase,
    IpcAuditCreate,
    IpcAuditUpdate,
    IpcAudit,
)
from .fridges import (
    FridgeUnitBase,
    FridgeUnitCreate,
    FridgeUnitUpdate,
    FridgeUnit,
    FridgeReadingCreate,
    FridgeReadingUpdate,
    FridgeReading,
    DailyFridgeCompliance,
    FridgeStats,
    FridgeStatsResponse,
)
from .medical_requests import (
    MedicalRequestBase,
    MedicalRequestCreate,
    MedicalRequestUpdate,
    MedicalRequest,
    MonthlyTrendPoint,
    TurnaroundMetrics,
)
from .notifications import (
    NotificationBase,
    NotificationCreate,
    Notification,
    NotificationListResponse,
    NotificationPreferenceUpdate,
    NotificationPreference,
    ScheduledReminderBase,
    ScheduledReminderCreate,
    ScheduledReminderUpdate,
    ScheduledReminder,
    EmailLog,
)
from .audits import AuditLog
from .baselines import (
    BaselineCreate,
    BaselineSnapshot,
    ScorePeriod,
    ScoreDelta,
    DriverChange,
    BaselineDelta,
    ComplianceSummary,
)
from .ai import (
    ConversationTurn,
    StepHelpRequest,
    StepHelpResponse,
    SuggestImprovementsRequest,
    SuggestImprovementsResponse,
    ComplaintThemesRequest,
    ComplaintTheme,
    ComplaintSentiment,
    ComplaintThemeAnalysis,
)
