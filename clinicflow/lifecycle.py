"""Appointment lifecycle: create, reschedule, cancel, change status, delete.

Validation failures are returned as ``CommandResult`` objects and never
reach the store. Double-booking is not prevented; ``conflicts`` only reports
overlaps for display.
"""
import uuid
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from clinicflow import config
from clinicflow.app_state import ClinicState
from clinicflow.commands import Command, CommandAction, CommandIssuer, CommandResult, FieldError
from clinicflow.logging_config import get_logger
from clinicflow.models import (
    Appointment,
    AppointmentStatus,
    AuditAction,
    AuditCategory,
    NotificationType,
    User,
)
from clinicflow.records import validation_errors
from clinicflow.state import INITIAL_STATUS, allowed_transitions, validate_transition

logger = get_logger(__name__)

REQUIRED_FIELDS = ["patient_id", "doctor_id", "date", "start_time", "end_time", "reason"]


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_date(value: Any) -> date:
    """Parse YYYY-MM-DD (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip(), config.DATE_FORMAT).date()


def parse_time(value: Any) -> time:
    """Parse HH:MM (or pass a time through)."""
    if isinstance(value, time):
        return value
    return datetime.strptime(str(value).strip(), config.TIME_FORMAT).time()


def _parse_schedule(date_value: Any, start_value: Any, end_value: Any) -> Tuple[Optional[Tuple[date, time, time]], List[FieldError]]:
    errors = []
    parsed_date = parsed_start = parsed_end = None
    try:
        parsed_date = parse_date(date_value)
    except ValueError:
        errors.append(FieldError("date", "Invalid date format. Use YYYY-MM-DD", "format"))
    try:
        parsed_start = parse_time(start_value)
    except ValueError:
        errors.append(FieldError("start_time", "Invalid time format. Use HH:MM", "format"))
    try:
        parsed_end = parse_time(end_value)
    except ValueError:
        errors.append(FieldError("end_time", "Invalid time format. Use HH:MM", "format"))
    if errors:
        return None, errors
    return (parsed_date, parsed_start, parsed_end), []


class AppointmentLifecycle:
    """Orchestrates appointment writes through the command issuer."""

    def __init__(self, issuer: CommandIssuer, state: ClinicState):
        self.issuer = issuer
        self.state = state

    def create(self, fields: Dict[str, Any], actor: Optional[User] = None) -> CommandResult:
        """
        Book a new appointment.

        Args:
            fields: patient_id, doctor_id, date (YYYY-MM-DD), start_time and
                    end_time (HH:MM), reason; optional status and free_return
            actor: Staff member booking it

        Returns:
            CommandResult with the stored record, or validation errors
        """
        errors = [
            FieldError(name, f"{name} is required", "required")
            for name in REQUIRED_FIELDS
            if is_blank(fields.get(name))
        ]
        if errors:
            logger.info("appointment_rejected", missing=[e.field for e in errors])
            return CommandResult.invalid(errors, "Missing required fields")

        schedule, errors = _parse_schedule(fields["date"], fields["start_time"], fields["end_time"])
        if errors:
            return CommandResult.invalid(errors)
        appointment_date, start_time, end_time = schedule

        status = INITIAL_STATUS
        if not is_blank(fields.get("status")):
            try:
                status = AppointmentStatus(fields["status"])
            except ValueError:
                return CommandResult.invalid([FieldError("status", f"Unknown status: {fields['status']}")])

        try:
            appointment = Appointment(
                id=uuid.uuid4().hex,
                patient_id=str(fields["patient_id"]).strip(),
                doctor_id=str(fields["doctor_id"]).strip(),
                date=appointment_date,
                start_time=start_time,
                end_time=end_time,
                status=status,
                reason=str(fields["reason"]).strip(),
                free_return=fields.get("free_return"),
            )
        except ValidationError as e:
            return CommandResult.invalid(validation_errors(e))

        patient = self.state.patient(appointment.patient_id)
        patient_name = patient.name if patient else appointment.patient_id
        result = self.issuer.issue(
            Command(
                collection=config.APPOINTMENTS,
                action=CommandAction.CREATE,
                key=appointment.id,
                data=appointment.model_dump(mode="json"),
                category=AuditCategory.APPOINTMENT,
                details=f"Booked appointment for {patient_name} on {appointment.date.isoformat()}",
            ),
            actor=actor,
        )
        if result.ok:
            self.state.notify(
                "Appointment scheduled",
                f"Appointment booked for {patient_name}.",
                kind=NotificationType.APPOINTMENT_CONFIRMED,
            )
        return result

    def reschedule(self, appointment_id: str, new_date: Any, new_start: Any, new_end: Any,
                   actor: Optional[User] = None) -> CommandResult:
        """Overwrite date and times only; status and other fields are untouched."""
        errors = [
            FieldError(name, f"{name} is required", "required")
            for name, value in (("date", new_date), ("start_time", new_start), ("end_time", new_end))
            if is_blank(value)
        ]
        if errors:
            return CommandResult.invalid(errors, "Missing required fields")

        schedule, errors = _parse_schedule(new_date, new_start, new_end)
        if errors:
            return CommandResult.invalid(errors)
        appointment_date, start_time, end_time = schedule

        return self.issuer.issue(
            Command(
                collection=config.APPOINTMENTS,
                action=CommandAction.UPDATE,
                key=appointment_id,
                data={
                    "date": appointment_date.isoformat(),
                    "start_time": start_time.strftime(config.TIME_FORMAT),
                    "end_time": end_time.strftime(config.TIME_FORMAT),
                },
                category=AuditCategory.APPOINTMENT,
                details=f"Rescheduled appointment {appointment_id} to {appointment_date.isoformat()} "
                        f"{start_time.strftime(config.TIME_FORMAT)}",
            ),
            actor=actor,
        )

    def cancel(self, appointment_id: str, actor: Optional[User] = None) -> CommandResult:
        """Mark an appointment Canceled. The record is kept."""
        result = self.issuer.issue(
            Command(
                collection=config.APPOINTMENTS,
                action=CommandAction.UPDATE,
                key=appointment_id,
                data={"status": AppointmentStatus.CANCELED.value},
                category=AuditCategory.APPOINTMENT,
                details=f"Canceled appointment {appointment_id}",
            ),
            actor=actor,
            audit_action=AuditAction.CANCEL,
        )
        if result.ok:
            self.state.notify(
                "Appointment canceled",
                f"Appointment {appointment_id} was canceled.",
                kind=NotificationType.APPOINTMENT_CANCELED,
            )
        return result

    def change_status(self, appointment_id: str, status: AppointmentStatus,
                      actor: Optional[User] = None) -> CommandResult:
        """
        Move an appointment along the status machine.

        Only transitions offered by the staff UI are accepted; Completed and
        Canceled appointments cannot be moved.
        """
        current = self.state.appointment(appointment_id)
        if current is None:
            return CommandResult.failure("not_found", f"Appointment {appointment_id} not found")

        if not validate_transition(current.status, status):
            allowed = ", ".join(s.value for s in allowed_transitions(current.status)) or "none"
            return CommandResult.invalid(
                [FieldError("status", f"Cannot change {current.status.value} to {status.value} (allowed: {allowed})",
                            "transition")],
                "Invalid status transition",
            )

        return self.issuer.issue(
            Command(
                collection=config.APPOINTMENTS,
                action=CommandAction.UPDATE,
                key=appointment_id,
                data={"status": status.value},
                category=AuditCategory.APPOINTMENT,
                details=f"Appointment {appointment_id} marked {status.value}",
            ),
            actor=actor,
            audit_action=AuditAction.CANCEL if status == AppointmentStatus.CANCELED else None,
        )

    def delete(self, appointment_id: str, actor: Optional[User] = None) -> CommandResult:
        """Remove an appointment permanently. No cascade, no undo."""
        return self.issuer.issue(
            Command(
                collection=config.APPOINTMENTS,
                action=CommandAction.DELETE,
                key=appointment_id,
                category=AuditCategory.APPOINTMENT,
                details=f"Deleted appointment {appointment_id}",
            ),
            actor=actor,
        )

    def conflicts(self, appointment: Appointment) -> List[Appointment]:
        """Other live appointments of the same doctor overlapping ``appointment``."""
        return [
            other
            for other in self.state.appointments
            if other.id != appointment.id
            and other.doctor_id == appointment.doctor_id
            and other.date == appointment.date
            and other.status != AppointmentStatus.CANCELED
            and other.start_time < appointment.end_time
            and appointment.start_time < other.end_time
        ]
