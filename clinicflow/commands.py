"""Command pattern for optimistic writes.

Every mutation goes through ``CommandIssuer.issue``:
1. Reflect the change in ``ClinicState`` right away
2. Write it to the store
3. On success, add an audit entry (when the acting user is known)
4. On failure, push a notification; the local change is not rolled back
   and nothing is retried
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.audit import build_entry
from clinicflow.logging_config import get_logger
from clinicflow.models import AuditAction, AuditCategory, NotificationType, User
from clinicflow.store import (
    DocumentStore,
    DuplicateRecordError,
    RecordNotFoundError,
    StoreUnavailableError,
)

logger = get_logger(__name__)


class CommandAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SET = "set"
    DELETE = "delete"


@dataclass
class FieldError:
    """A validation error with field and message."""
    field: str
    message: str
    code: str = "invalid"


@dataclass
class CommandResult:
    """
    Outcome of a command.

    Attributes:
        ok: Whether the write (or validation) succeeded
        record: The written record, when there is one
        errors: Field-level validation errors (nothing was written)
        message: Human-readable summary
        code: Machine-readable failure code (validation, not_found,
              conflict, unavailable, forbidden)
    """
    ok: bool
    record: Optional[Dict[str, Any]] = None
    errors: List[FieldError] = field(default_factory=list)
    message: str = ""
    code: Optional[str] = None

    @classmethod
    def success(cls, record: Optional[Dict[str, Any]] = None, message: str = "") -> "CommandResult":
        return cls(ok=True, record=record, message=message)

    @classmethod
    def invalid(cls, errors: List[FieldError], message: str = "Validation failed") -> "CommandResult":
        return cls(ok=False, errors=errors, message=message, code="validation")

    @classmethod
    def failure(cls, code: str, message: str) -> "CommandResult":
        return cls(ok=False, message=message, code=code)


@dataclass
class Command:
    """A single store write plus the audit context describing it."""
    collection: str
    action: CommandAction
    key: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    category: AuditCategory = AuditCategory.SYSTEM
    details: str = ""

    @property
    def audit_action(self) -> AuditAction:
        if self.action == CommandAction.CREATE:
            return AuditAction.CREATE
        if self.action == CommandAction.DELETE:
            return AuditAction.DELETE
        return AuditAction.UPDATE


class CommandIssuer:
    """Applies commands to the local state and the store."""

    def __init__(self, store: DocumentStore, state: ClinicState):
        self.store = store
        self.state = state

    def issue(self, command: Command, actor: Optional[User] = None,
              audit_action: Optional[AuditAction] = None) -> CommandResult:
        """
        Execute ``command``.

        Args:
            command: The write to perform
            actor: Staff member issuing the command (audited when given)
            audit_action: Override for the audit entry action (e.g. Cancel)

        Returns:
            CommandResult; never raises for store failures
        """
        self._apply_optimistic(command)

        try:
            record = self._execute(command)
        except StoreUnavailableError as e:
            logger.error("command_failed", collection=command.collection,
                         action=command.action.value, key=command.key, error=str(e))
            self.state.notify(
                "Could not save changes",
                f"{command.details or command.collection}: {e}",
                kind=NotificationType.SYSTEM_ALERT,
            )
            return CommandResult.failure("unavailable", str(e))
        except RecordNotFoundError as e:
            logger.warning("command_target_missing", collection=command.collection, key=command.key)
            return CommandResult.failure("not_found", str(e))
        except DuplicateRecordError as e:
            logger.warning("command_duplicate", collection=command.collection, key=command.key)
            return CommandResult.failure("conflict", str(e))

        logger.info("command_applied", collection=command.collection,
                    action=command.action.value, key=command.key)

        if actor is not None and command.collection != config.AUDIT_LOGS:
            self.audit(actor, audit_action or command.audit_action, command.category, command.details)

        return CommandResult.success(record, message=command.details)

    def audit(self, actor: User, action: AuditAction, category: AuditCategory, details: str) -> None:
        """Append an audit entry. Audit failures are logged, never surfaced."""
        entry = build_entry(actor, action, category, details)
        try:
            self.store.create(config.AUDIT_LOGS, entry)
        except StoreUnavailableError as e:
            logger.error("audit_write_failed", error=str(e), details=details)

    def _apply_optimistic(self, command: Command) -> None:
        if command.key is None:
            return
        if command.action == CommandAction.DELETE:
            self.state.apply_local(command.collection, command.key, None)
            return
        current = self.state.find(command.collection, command.key)
        if command.action == CommandAction.CREATE and current is not None:
            return
        if command.action == CommandAction.UPDATE and current is not None:
            record = {**current.model_dump(mode="json"), **command.data}
        elif command.action == CommandAction.UPDATE:
            return
        else:
            record = dict(command.data)
        record[config.key_field(command.collection)] = command.key
        try:
            self.state.apply_local(command.collection, command.key, record)
        except ValueError as e:
            logger.warning("optimistic_apply_skipped", collection=command.collection, error=str(e))

    def _execute(self, command: Command) -> Optional[Dict[str, Any]]:
        if command.action == CommandAction.CREATE:
            data = dict(command.data)
            if command.key is not None:
                data[config.key_field(command.collection)] = command.key
            return self.store.create(command.collection, data)
        if command.action == CommandAction.SET:
            return self.store.set(command.collection, command.key, command.data)
        if command.action == CommandAction.UPDATE:
            return self.store.update(command.collection, command.key, command.data)
        if command.action == CommandAction.DELETE:
            self.store.delete(command.collection, command.key)
            return None
        raise ValueError(f"Unsupported command action: {command.action}")
