"""
Role-based capability utilities for practice staff.

Each staff role maps to a set of named capabilities. Practice managers
(flagged users or the ``practice_manager`` role) hold every capability.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Set

ROLE_PRACTICE_MANAGER = "practice_manager"
ROLE_NURSE_LEAD = "nurse_lead"
ROLE_CD_LEAD_GP = "cd_lead_gp"
ROLE_ESTATES_LEAD = "estates_lead"
ROLE_IG_LEAD = "ig_lead"
ROLE_RECEPTION_LEAD = "reception_lead"
ROLE_NURSE = "nurse"
ROLE_HCA = "hca"
ROLE_GP = "gp"
ROLE_RECEPTION = "reception"
ROLE_AUDITOR = "auditor"

DEFAULT_ROLE = ROLE_RECEPTION

CAP_VIEW_TASKS = "view_tasks"
CAP_MANAGE_TASKS = "manage_tasks"
CAP_VIEW_USERS = "view_users"
CAP_MANAGE_USERS = "manage_users"
CAP_VIEW_POLICIES = "view_policies"
CAP_MANAGE_POLICIES = "manage_policies"
CAP_ACKNOWLEDGE_POLICIES = "acknowledge_policies"
CAP_VIEW_INCIDENTS = "view_incidents"
CAP_MANAGE_INCIDENTS = "manage_incidents"
CAP_VIEW_COMPLAINTS = "view_complaints"
CAP_MANAGE_COMPLAINTS = "manage_complaints"
CAP_VIEW_FRIDGE = "view_fridge"
CAP_MANAGE_FRIDGE = "manage_fridge"
CAP_VIEW_HR = "view_hr"
CAP_MANAGE_HR = "manage_hr"
CAP_VIEW_IPC = "view_ipc"
CAP_MANAGE_IPC = "manage_ipc"
CAP_VIEW_REPORTS = "view_reports"
CAP_RUN_REPORTS = "run_reports"
CAP_APPROVE_GOVERNANCE = "approve_governance"

ALL_CAPABILITIES: FrozenSet[str] = frozenset({
    CAP_VIEW_TASKS, CAP_MANAGE_TASKS,
    CAP_VIEW_USERS, CAP_MANAGE_USERS,
    CAP_VIEW_POLICIES, CAP_MANAGE_POLICIES, CAP_ACKNOWLEDGE_POLICIES,
    CAP_VIEW_INCIDENTS, CAP_MANAGE_INCIDENTS,
    CAP_VIEW_COMPLAINTS, CAP_MANAGE_COMPLAINTS,
    CAP_VIEW_FRIDGE, CAP_MANAGE_FRIDGE,
    CAP_VIEW_HR, CAP_MANAGE_HR,
    CAP_VIEW_IPC, CAP_MANAGE_IPC,
    CAP_VIEW_REPORTS, CAP_RUN_REPORTS,
    CAP_APPROVE_GOVERNANCE,
})

# Baseline every member of staff gets: see and complete day-to-day work.
_STAFF_BASE: FrozenSet[str] = frozenset({
    CAP_VIEW_TASKS, CAP_MANAGE_TASKS,
    CAP_VIEW_USERS,
    CAP_VIEW_POLICIES, CAP_ACKNOWLEDGE_POLICIES,
    CAP_VIEW_INCIDENTS, CAP_MANAGE_INCIDENTS,
    CAP_VIEW_FRIDGE,
})

ROLE_CAPABILITIES: Dict[str, FrozenSet[str]] = {
    ROLE_PRACTICE_MANAGER: ALL_CAPABILITIES,
    ROLE_NURSE_LEAD: _STAFF_BASE | {
        CAP_MANAGE_FRIDGE, CAP_VIEW_IPC, CAP_MANAGE_IPC, CAP_VIEW_HR,
        CAP_VIEW_REPORTS, CAP_APPROVE_GOVERNANCE,
    },
    ROLE_CD_LEAD_GP: _STAFF_BASE | {
        CAP_VIEW_COMPLAINTS, CAP_MANAGE_COMPLAINTS, CAP_VIEW_IPC,
        CAP_VIEW_REPORTS, CAP_APPROVE_GOVERNANCE,
    },
    ROLE_ESTATES_LEAD: _STAFF_BASE | {CAP_MANAGE_FRIDGE, CAP_VIEW_IPC, CAP_VIEW_REPORTS},
    ROLE_IG_LEAD: _STAFF_BASE | {
        CAP_MANAGE_POLICIES, CAP_VIEW_COMPLAINTS, CAP_VIEW_REPORTS, CAP_APPROVE_GOVERNANCE,
    },
    ROLE_RECEPTION_LEAD: _STAFF_BASE | {CAP_VIEW_COMPLAINTS, CAP_MANAGE_COMPLAINTS, CAP_VIEW_HR},
    ROLE_NURSE: _STAFF_BASE | {CAP_MANAGE_FRIDGE, CAP_VIEW_IPC},
    ROLE_HCA: _STAFF_BASE | {CAP_MANAGE_FRIDGE},
    ROLE_GP: _STAFF_BASE | {CAP_VIEW_COMPLAINTS, CAP_VIEW_IPC},
    ROLE_RECEPTION: _STAFF_BASE,
    ROLE_AUDITOR: frozenset({
        CAP_VIEW_TASKS, CAP_VIEW_USERS, CAP_VIEW_POLICIES, CAP_VIEW_INCIDENTS,
        CAP_VIEW_COMPLAINTS, CAP_VIEW_FRIDGE, CAP_VIEW_HR, CAP_VIEW_IPC, CAP_VIEW_REPORTS,
    }),
}

ALLOWED_ROLES = set(ROLE_CAPABILITIES.keys())


class RoleEnum(str, Enum):
    """Enum for staff roles used in schemas and validation."""
    practice_manager = ROLE_PRACTICE_MANAGER
    nurse_lead = ROLE_NURSE_LEAD
    cd_lead_gp = ROLE_CD_LEAD_GP
    estates_lead = ROLE_ESTATES_LEAD
    ig_lead = ROLE_IG_LEAD
    reception_lead = ROLE_RECEPTION_LEAD
    nurse = ROLE_NURSE
    hca = ROLE_HCA
    gp = ROLE_GP
    reception = ROLE_RECEPTION
    auditor = ROLE_AUDITOR


def get_role_capabilities(role: str) -> Set[str]:
    """
    Get the capabilities granted to a role.

    Raises:
        ValueError: If role is not recognized
    """
    if role not in ROLE_CAPABILITIES:
        raise ValueError(f"Unknown role: {role}. Allowed roles: {sorted(ALLOWED_ROLES)}")
    return set(ROLE_CAPABILITIES[role])


def validate_role(role: str) -> None:
    """Raise ValueError if the role is not allowed."""
    if role not in ALLOWED_ROLES:
        raise ValueError(f"Invalid role '{role}'. Allowed roles: {sorted(ALLOWED_ROLES)}")


def is_manager(user: Any) -> bool:
    """Return True for users flagged as practice manager or holding the manager role.

    Accepts an ORM user or a mapping with ``role``/``is_practice_manager`` keys.
    """
    if isinstance(user, Mapping):
        flag, role = user.get("is_practice_manager"), user.get("role")
    else:
        flag, role = getattr(user, "is_practice_manager", False), getattr(user, "role", None)
    return bool(flag) or role == ROLE_PRACTICE_MANAGER


def capabilities_for(user: Any) -> Set[str]:
    """Return the effective capability set for a user."""
    if is_manager(user):
        return set(ALL_CAPABILITIES)
    role = user.get("role") if isinstance(user, Mapping) else getattr(user, "role", None)
    return set(ROLE_CAPABILITIES.get(role, frozenset()))


def has_capability(user: Any, capability: str) -> bool:
    return capability in capabilities_for(user)
