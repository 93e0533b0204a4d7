"""Tests for optimistic command issuing."""
from clinicflow import config
from clinicflow.commands import Command, CommandAction
from clinicflow.models import AuditAction, AuditCategory, NotificationType


def test_create_writes_store_and_state(issuer, store, state):
    result = issuer.issue(Command(
        collection=config.PATIENTS,
        action=CommandAction.CREATE,
        key="p1",
        data={"name": "Ahmed"},
    ))

    assert result.ok
    assert store.get(config.PATIENTS, "p1")["name"] == "Ahmed"
    assert state.patient("p1").name == "Ahmed"


def test_success_with_actor_is_audited(issuer, state, admin):
    issuer.issue(
        Command(
            collection=config.PATIENTS,
            action=CommandAction.CREATE,
            key="p1",
            data={"name": "Ahmed"},
            category=AuditCategory.PATIENT,
            details="Registered patient Ahmed",
        ),
        actor=admin,
    )

    entry = state.audit_logs[0]
    assert entry.action == AuditAction.CREATE
    assert entry.category == AuditCategory.PATIENT
    assert entry.user.name == admin.name
    assert entry.details == "Registered patient Ahmed"


def test_without_actor_nothing_is_audited(issuer, state):
    issuer.issue(Command(collection=config.PATIENTS, action=CommandAction.CREATE, key="p1", data={"name": "A"}))

    assert state.audit_logs == []


def test_audit_action_override(issuer, store, state, admin):
    store.set(config.PATIENTS, "p1", {"name": "Ahmed"})

    issuer.issue(
        Command(collection=config.PATIENTS, action=CommandAction.UPDATE, key="p1", data={"phone": "1"}),
        actor=admin,
        audit_action=AuditAction.CANCEL,
    )

    assert state.audit_logs[0].action == AuditAction.CANCEL


def test_update_missing_record_is_not_found(issuer):
    result = issuer.issue(Command(collection=config.PATIENTS, action=CommandAction.UPDATE, key="x", data={"name": "A"}))

    assert not result.ok
    assert result.code == "not_found"


def test_create_duplicate_is_conflict(issuer, store):
    store.set(config.PATIENTS, "p1", {"name": "Ahmed"})

    result = issuer.issue(Command(collection=config.PATIENTS, action=CommandAction.CREATE, key="p1", data={"name": "B"}))

    assert not result.ok
    assert result.code == "conflict"


class TestStoreOutage:
    """Failed writes notify once and keep the optimistic change."""

    def test_failure_notifies_and_keeps_local_change(self, issuer, store, state, admin):
        store.available = False

        result = issuer.issue(
            Command(collection=config.PATIENTS, action=CommandAction.CREATE, key="p1", data={"name": "Ahmed"},
                    details="Registered patient Ahmed"),
            actor=admin,
        )

        assert not result.ok
        assert result.code == "unavailable"
        assert state.patient("p1").name == "Ahmed"
        assert store.get(config.PATIENTS, "p1") is None
        alerts = state.unread_notifications()
        assert len(alerts) == 1
        assert alerts[0].type == NotificationType.SYSTEM_ALERT
        assert state.audit_logs == []

    def test_next_snapshot_discards_unsaved_change(self, issuer, store, state):
        store.available = False
        issuer.issue(Command(collection=config.PATIENTS, action=CommandAction.CREATE, key="p1", data={"name": "A"}))

        store.available = True
        store.set(config.PATIENTS, "p2", {"name": "Fatima"})

        assert state.patient("p1") is None
        assert state.patient("p2") is not None
