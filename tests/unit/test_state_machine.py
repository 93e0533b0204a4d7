"""Unit tests for the appointment status machine."""
from clinicflow.models import AppointmentStatus
from clinicflow.state import (
    INITIAL_STATUS,
    VALID_TRANSITIONS,
    allowed_transitions,
    is_terminal,
    validate_transition,
)


def test_every_status_has_transitions_defined():
    for status in AppointmentStatus:
        assert status in VALID_TRANSITIONS


def test_new_appointments_start_scheduled():
    assert INITIAL_STATUS == AppointmentStatus.SCHEDULED


def test_scheduled_can_move_forward():
    assert validate_transition(AppointmentStatus.SCHEDULED, AppointmentStatus.WAITING)
    assert validate_transition(AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED)
    assert validate_transition(AppointmentStatus.SCHEDULED, AppointmentStatus.CANCELED)


def test_waiting_can_complete_or_cancel():
    assert allowed_transitions(AppointmentStatus.WAITING) == [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELED,
    ]
    assert not validate_transition(AppointmentStatus.WAITING, AppointmentStatus.SCHEDULED)


def test_completed_and_canceled_are_terminal():
    for status in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED):
        assert is_terminal(status)
        for target in AppointmentStatus:
            assert not validate_transition(status, target)
