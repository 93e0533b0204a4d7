"""Audit trail: who changed what.

Entries are written by ``CommandIssuer`` after successful writes and by the
user directory on sign-in. Querying happens against the local snapshot.
"""
import uuid
from typing import Any, Dict, List, Optional

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.logging_config import get_logger
from clinicflow.models import AuditAction, AuditActor, AuditCategory, AuditLog, User, utc_now
from clinicflow.store import DocumentStore, StoreUnavailableError

logger = get_logger(__name__)


def build_entry(actor: User, action: AuditAction, category: AuditCategory, details: str) -> Dict[str, Any]:
    """Build a JSON-ready audit record."""
    entry = AuditLog(
        id=uuid.uuid4().hex,
        action=action,
        category=category,
        user=AuditActor(name=actor.name, avatar=actor.avatar),
        details=details,
        timestamp=utc_now(),
    )
    return entry.model_dump(mode="json")


class AuditTrail:
    """Search, filter and sort audit entries."""

    def __init__(self, state: ClinicState, store: Optional[DocumentStore] = None):
        self.state = state
        self.store = store

    def record(self, actor: User, action: AuditAction, category: AuditCategory, details: str) -> AuditLog:
        """Write an entry for an action that is not itself a store write."""
        entry = build_entry(actor, action, category, details)
        if self.store is None:
            raise StoreUnavailableError("Audit trail has no store")
        self.store.create(config.AUDIT_LOGS, entry)
        logger.info("audit_recorded", action=action.value, category=category.value)
        return AuditLog.model_validate(entry)

    def query(
        self,
        search: str = "",
        action: Optional[AuditAction] = None,
        category: Optional[AuditCategory] = None,
        newest_first: bool = True
    ) -> List[AuditLog]:
        """
        Filter audit entries.

        Args:
            search: Case-insensitive match against user name or details
            action: Only entries with this action
            category: Only entries in this category
            newest_first: Sort order by timestamp

        Returns:
            Matching entries
        """
        needle = search.strip().lower()
        entries = []
        for entry in self.state.audit_logs:
            if needle and needle not in entry.user.name.lower() and needle not in entry.details.lower():
                continue
            if action is not None and entry.action != action:
                continue
            if category is not None and entry.category != category:
                continue
            entries.append(entry)
        return sorted(entries, key=lambda e: e.timestamp, reverse=newest_first)
