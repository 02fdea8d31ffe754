import pytest

from compliance.utils.passwords import hash_password, password_policy_error, verify_password
from compliance.utils.role_permissions import (
    ALL_CAPABILITIES,
    CAP_APPROVE_GOVERNANCE,
    CAP_MANAGE_FRIDGE,
    CAP_MANAGE_USERS,
    CAP_VIEW_FRIDGE,
    CAP_VIEW_REPORTS,
    capabilities_for,
    get_role_capabilities,
    has_capability,
    is_manager,
    validate_role,
)


def test_hash_and_verify_round_trip():
    hashed = hash_password("Str0ng!Passw0rd")
    assert hashed.startswith("$argon2id$")
    assert verify_password("Str0ng!Passw0rd", hashed)
    assert not verify_password("wrong-password", hashed)


def test_verify_rejects_malformed_hash():
    assert verify_password("anything", "not-a-hash") is False


@pytest.mark.parametrize("password,expected", [
    ("Sh0rt!", "Password must be at least 12 characters"),
    ("alllowercase1!", "Password must contain uppercase, lowercase, a number, and a special character"),
    ("NoDigitsHere!!", "Password must contain uppercase, lowercase, a number, and a special character"),
    ("NoSpecial12345", "Password must contain uppercase, lowercase, a number, and a special character"),
    ("Str0ng!Passw0rd", None),
])
def test_password_policy(password, expected):
    assert password_policy_error(password) == expected


def test_manager_flag_grants_every_capability():
    user = {"role": "reception", "is_practice_manager": True}
    assert is_manager(user)
    assert capabilities_for(user) == set(ALL_CAPABILITIES)


def test_manager_role_without_flag_is_manager():
    assert is_manager({"role": "practice_manager", "is_practice_manager": False})


def test_reception_capabilities():
    user = {"role": "reception", "is_practice_manager": False}
    assert has_capability(user, CAP_VIEW_FRIDGE)
    assert not has_capability(user, CAP_MANAGE_FRIDGE)
    assert not has_capability(user, CAP_MANAGE_USERS)
    assert not has_capability(user, CAP_APPROVE_GOVERNANCE)


def test_auditor_is_read_only():
    caps = get_role_capabilities("auditor")
    assert CAP_VIEW_REPORTS in caps
    assert all(not cap.startswith("manage_") for cap in caps)


def test_unknown_role_has_no_capabilities():
    assert capabilities_for({"role": "janitor", "is_practice_manager": False}) == set()
    with pytest.raises(ValueError):
        get_role_capabilities("janitor")
    with pytest.raises(ValueError):
        validate_role("janitor")
