"""Appointment status machine.

Completed and Canceled are terminal as far as staff-facing transitions go.
The store itself accepts any status write, and creation may set an arbitrary
initial status.
"""
from typing import Dict

from clinicflow.models import AppointmentStatus


INITIAL_STATUS = AppointmentStatus.SCHEDULED

# Pattern: Current status → [allowed next statuses]
VALID_TRANSITIONS: Dict[AppointmentStatus, list[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: [
        AppointmentStatus.WAITING,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELED,
    ],
    AppointmentStatus.WAITING: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELED,
    ],
    AppointmentStatus.COMPLETED: [],
    AppointmentStatus.CANCELED: [],
}


def allowed_transitions(status: AppointmentStatus) -> list[AppointmentStatus]:
    """Statuses reachable from ``status`` through the staff UI."""
    return list(VALID_TRANSITIONS.get(status, []))


def is_terminal(status: AppointmentStatus) -> bool:
    return not VALID_TRANSITIONS.get(status)


def validate_transition(
    current: AppointmentStatus,
    intended: AppointmentStatus
) -> bool:
    """
    Validate a status transition.

    Example:
        >>> validate_transition(
        ...     AppointmentStatus.SCHEDULED,
        ...     AppointmentStatus.WAITING
        ... )
        True
    """
    return intended in VALID_TRANSITIONS.get(current, [])
