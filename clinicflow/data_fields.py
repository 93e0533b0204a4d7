"""Patient-record field definitions managed from settings."""
import re
import uuid
from typing import List, Optional

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.commands import Command, CommandAction, CommandIssuer, CommandResult, FieldError
from clinicflow.logging_config import get_logger
from clinicflow.models import AuditCategory, DataField, DataFieldType, User

logger = get_logger(__name__)

DEFAULT_FIELDS = [
    DataField(id="patient-name", label="Patient name", type=DataFieldType.SYSTEM, required=True),
    DataField(id="dob", label="Date of birth", type=DataFieldType.SYSTEM, required=True),
    DataField(id="phone", label="Phone number", type=DataFieldType.SYSTEM, required=True),
    DataField(id="email", label="Email", type=DataFieldType.SYSTEM, required=False),
    DataField(id="blood-type", label="Blood type", type=DataFieldType.CUSTOM, required=False),
]


def slugify(label: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", label.strip().lower()).strip("-")


class DataFieldCatalog:
    """Add, edit and delete custom fields. System fields are permanent."""

    def __init__(self, issuer: CommandIssuer, state: ClinicState):
        self.issuer = issuer
        self.state = state

    def seed_defaults(self) -> int:
        """Write the default fields when the catalog is empty. Returns count written."""
        if self.issuer.store.list(config.DATA_FIELDS):
            return 0
        for data_field in DEFAULT_FIELDS:
            self.issuer.store.set(config.DATA_FIELDS, data_field.id, data_field.model_dump(mode="json"))
        logger.info("data_fields_seeded", count=len(DEFAULT_FIELDS))
        return len(DEFAULT_FIELDS)

    def fields(self) -> List[DataField]:
        return sorted(self.state.data_fields, key=lambda f: (f.type != DataFieldType.SYSTEM, f.label.lower()))

    def add(self, label: str, required: bool = False, actor: Optional[User] = None) -> CommandResult:
        label = (label or "").strip()
        if not label:
            return CommandResult.invalid([FieldError("label", "label is required", "required")])

        field_id = f"custom-{slugify(label) or uuid.uuid4().hex[:8]}"
        if self.state.find(config.DATA_FIELDS, field_id) is not None:
            return CommandResult.invalid([FieldError("label", f"A field named {label} already exists", "duplicate")])

        data_field = DataField(id=field_id, label=label, type=DataFieldType.CUSTOM, required=required)
        return self.issuer.issue(
            Command(
                collection=config.DATA_FIELDS,
                action=CommandAction.CREATE,
                key=data_field.id,
                data=data_field.model_dump(mode="json"),
                category=AuditCategory.SYSTEM,
                details=f"Added data field {label}",
            ),
            actor=actor,
        )

    def edit(self, field_id: str, label: Optional[str] = None, required: Optional[bool] = None,
             actor: Optional[User] = None) -> CommandResult:
        current = self.state.find(config.DATA_FIELDS, field_id)
        if current is None:
            return CommandResult.failure("not_found", f"Data field {field_id} not found")

        changes = {}
        if label is not None:
            if not label.strip():
                return CommandResult.invalid([FieldError("label", "label is required", "required")])
            changes["label"] = label.strip()
        if required is not None:
            changes["required"] = required
        if not changes:
            return CommandResult.success(current.model_dump(mode="json"), "Nothing to change")

        return self.issuer.issue(
            Command(
                collection=config.DATA_FIELDS,
                action=CommandAction.UPDATE,
                key=field_id,
                data=changes,
                category=AuditCategory.SYSTEM,
                details=f"Updated data field {changes.get('label', current.label)}",
            ),
            actor=actor,
        )

    def delete(self, field_id: str, actor: Optional[User] = None) -> CommandResult:
        current = self.state.find(config.DATA_FIELDS, field_id)
        if current is None:
            return CommandResult.failure("not_found", f"Data field {field_id} not found")
        if current.type == DataFieldType.SYSTEM:
            return CommandResult.invalid(
                [FieldError("id", "System fields cannot be deleted", "protected")],
                "System fields cannot be deleted",
            )

        return self.issuer.issue(
            Command(
                collection=config.DATA_FIELDS,
                action=CommandAction.DELETE,
                key=field_id,
                category=AuditCategory.SYSTEM,
                details=f"Deleted data field {current.label}",
            ),
            actor=actor,
        )
