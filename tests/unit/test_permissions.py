"""Tests for role-based permissions."""
import pytest

from clinicflow import config
from clinicflow.models import UserRole
from clinicflow.permissions import DEFAULT_PERMISSIONS, PermissionDeniedError, PermissionPolicy


@pytest.fixture
def policy(seeded, issuer, state):
    policy = PermissionPolicy(issuer, state)
    policy.load()
    return policy


def test_load_seeds_every_role(policy, store):
    assert {r["role"] for r in store.list(config.PERMISSIONS)} == {"Admin", "Doctor", "Receptionist"}


def test_load_keeps_existing_matrix(seeded, issuer, state, store):
    store.set(config.PERMISSIONS, "Doctor", {"patients": {"add": False}})

    PermissionPolicy(issuer, state).load()

    assert store.get(config.PERMISSIONS, "Doctor")["patients"]["add"] is False


@pytest.mark.parametrize("role,resource,action,expected", [
    (UserRole.ADMIN, "users", "delete", True),
    (UserRole.DOCTOR, "patients", "add", True),
    (UserRole.DOCTOR, "appointments", "delete", False),
    (UserRole.RECEPTIONIST, "appointments", "delete", True),
    (UserRole.RECEPTIONIST, "doctors", "add", False),
    (UserRole.ADMIN, "patients", "cancel", False),
    (UserRole.ADMIN, "invoices", "add", False),
])
def test_default_matrix(policy, role, resource, action, expected):
    assert policy.can(role, resource, action) is expected


def test_require_raises(policy, receptionist):
    with pytest.raises(PermissionDeniedError) as exc_info:
        policy.require(receptionist, "doctors", "delete")

    assert exc_info.value.role == UserRole.RECEPTIONIST
    assert "Receptionist may not delete doctors" in str(exc_info.value)


def test_role_change_applies_immediately(policy, store, receptionist):
    store.update(config.USERS, receptionist.email, {"role": "Admin"})

    policy.require(receptionist, "doctors", "delete")


def test_update_permission(policy, admin, receptionist, state):
    result = policy.update_permission(admin, UserRole.RECEPTIONIST, "doctors", "add", True)

    assert result.ok
    assert policy.can(UserRole.RECEPTIONIST, "doctors", "add") is True
    policy.require(receptionist, "doctors", "add")
    assert "Granted add on doctors for Receptionist" in state.audit_logs[0].details


def test_update_permission_admin_only(policy, receptionist):
    result = policy.update_permission(receptionist, UserRole.RECEPTIONIST, "doctors", "add", True)

    assert result.code == "forbidden"
    assert policy.can(UserRole.RECEPTIONIST, "doctors", "add") is False


@pytest.mark.parametrize("resource,action,field", [
    ("invoices", "add", "resource"),
    ("patients", "cancel", "action"),
    ("patients", "archive", "action"),
])
def test_update_permission_rejects_unknown(policy, admin, resource, action, field):
    result = policy.update_permission(admin, UserRole.DOCTOR, resource, action, True)

    assert result.errors[0].field == field


def test_matrix_falls_back_to_defaults(issuer, state):
    policy = PermissionPolicy(issuer, state)

    assert policy.matrix(UserRole.DOCTOR) == DEFAULT_PERMISSIONS[UserRole.DOCTOR]
