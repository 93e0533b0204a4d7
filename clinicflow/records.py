"""Patient and doctor registries.

Deleting a patient or doctor never touches their appointments; those simply
drop out of enriched listings.
"""
import uuid
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.commands import Command, CommandAction, CommandIssuer, CommandResult, FieldError
from clinicflow.logging_config import get_logger
from clinicflow.models import AuditCategory, Doctor, NotificationType, Patient, User

logger = get_logger(__name__)


def validation_errors(error: ValidationError) -> List[FieldError]:
    """Convert a pydantic ValidationError into field errors."""
    errors = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "__root__"
        code = "required" if item["type"] == "missing" else "invalid"
        errors.append(FieldError(field, item["msg"], code))
    return errors


def _clean(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Strip strings and drop blank optional values."""
    cleaned = {}
    for name, value in fields.items():
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        if value is None:
            continue
        cleaned[name] = value
    return cleaned


def _stripped(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Strip strings; blank values are kept so validation can reject them."""
    return {
        name: value.strip() if isinstance(value, str) else value
        for name, value in changes.items()
        if value is not None
    }


class PatientRegistry:
    """Register, edit, remove and search patients."""

    def __init__(self, issuer: CommandIssuer, state: ClinicState):
        self.issuer = issuer
        self.state = state

    def register(self, fields: Dict[str, Any], actor: Optional[User] = None) -> CommandResult:
        data = _clean(fields)
        data["id"] = data.get("id") or uuid.uuid4().hex
        try:
            patient = Patient.model_validate(data)
        except ValidationError as e:
            return CommandResult.invalid(validation_errors(e))

        result = self.issuer.issue(
            Command(
                collection=config.PATIENTS,
                action=CommandAction.CREATE,
                key=patient.id,
                data=patient.model_dump(mode="json"),
                category=AuditCategory.PATIENT,
                details=f"Registered patient {patient.name}",
            ),
            actor=actor,
        )
        if result.ok:
            self.state.notify(
                "New patient",
                f"{patient.name} was added to the patient list.",
                kind=NotificationType.NEW_PATIENT,
            )
        return result

    def edit(self, patient_id: str, changes: Dict[str, Any], actor: Optional[User] = None) -> CommandResult:
        current = self.state.patient(patient_id)
        if current is None:
            return CommandResult.failure("not_found", f"Patient {patient_id} not found")

        merged = {**current.model_dump(mode="json"), **_stripped(changes), "id": patient_id}
        try:
            patient = Patient.model_validate(merged)
        except ValidationError as e:
            return CommandResult.invalid(validation_errors(e))

        data = patient.model_dump(mode="json")
        data.pop("id")
        return self.issuer.issue(
            Command(
                collection=config.PATIENTS,
                action=CommandAction.UPDATE,
                key=patient_id,
                data=data,
                category=AuditCategory.PATIENT,
                details=f"Updated patient {patient.name}",
            ),
            actor=actor,
        )

    def remove(self, patient_id: str, actor: Optional[User] = None) -> CommandResult:
        current = self.state.patient(patient_id)
        name = current.name if current else patient_id
        return self.issuer.issue(
            Command(
                collection=config.PATIENTS,
                action=CommandAction.DELETE,
                key=patient_id,
                category=AuditCategory.PATIENT,
                details=f"Deleted patient {name}",
            ),
            actor=actor,
        )

    def search(self, query: str = "") -> List[Patient]:
        """Case-insensitive match on name or phone, sorted by name."""
        needle = query.strip().lower()
        patients = [
            p for p in self.state.patients
            if not needle or needle in p.name.lower() or needle in p.phone.lower()
        ]
        return sorted(patients, key=lambda p: p.name.lower())


class DoctorRegistry:
    """Add, edit and remove doctors."""

    def __init__(self, issuer: CommandIssuer, state: ClinicState):
        self.issuer = issuer
        self.state = state

    def add(self, fields: Dict[str, Any], actor: Optional[User] = None) -> CommandResult:
        data = _clean(fields)
        data["id"] = data.get("id") or uuid.uuid4().hex
        try:
            doctor = Doctor.model_validate(data)
        except ValidationError as e:
            return CommandResult.invalid(validation_errors(e))

        return self.issuer.issue(
            Command(
                collection=config.DOCTORS,
                action=CommandAction.CREATE,
                key=doctor.id,
                data=doctor.model_dump(mode="json"),
                category=AuditCategory.DOCTOR,
                details=f"Added doctor {doctor.name}",
            ),
            actor=actor,
        )

    def edit(self, doctor_id: str, changes: Dict[str, Any], actor: Optional[User] = None) -> CommandResult:
        current = self.state.doctor(doctor_id)
        if current is None:
            return CommandResult.failure("not_found", f"Doctor {doctor_id} not found")

        merged = {**current.model_dump(mode="json"), **_stripped(changes), "id": doctor_id}
        try:
            doctor = Doctor.model_validate(merged)
        except ValidationError as e:
            return CommandResult.invalid(validation_errors(e))

        data = doctor.model_dump(mode="json")
        data.pop("id")
        return self.issuer.issue(
            Command(
                collection=config.DOCTORS,
                action=CommandAction.UPDATE,
                key=doctor_id,
                data=data,
                category=AuditCategory.DOCTOR,
                details=f"Updated doctor {doctor.name}",
            ),
            actor=actor,
        )

    def remove(self, doctor_id: str, actor: Optional[User] = None) -> CommandResult:
        current = self.state.doctor(doctor_id)
        name = current.name if current else doctor_id
        return self.issuer.issue(
            Command(
                collection=config.DOCTORS,
                action=CommandAction.DELETE,
                key=doctor_id,
                category=AuditCategory.DOCTOR,
                details=f"Deleted doctor {name}",
            ),
            actor=actor,
        )
