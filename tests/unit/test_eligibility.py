"""Tests for free-return eligibility."""
from datetime import date, timedelta

import pytest

from clinicflow.eligibility import (
    days_since,
    doctor_free_return_days,
    free_return_policy_text,
    is_free_return_eligible,
)
from clinicflow.models import AppointmentStatus, Doctor

VISIT_DAY = date(2024, 7, 10)


class TestFreeReturnWindow:
    """Completed visits qualify for 0 to 7 days after the visit."""

    @pytest.mark.parametrize("offset", [0, 1, 6, 7])
    def test_completed_within_window_is_eligible(self, make_appointment, offset):
        appointment = make_appointment(status=AppointmentStatus.COMPLETED, date=VISIT_DAY)

        assert is_free_return_eligible(appointment, VISIT_DAY + timedelta(days=offset)) is True

    @pytest.mark.parametrize("offset", [8, 30, 365])
    def test_completed_after_window_is_not_eligible(self, make_appointment, offset):
        appointment = make_appointment(status=AppointmentStatus.COMPLETED, date=VISIT_DAY)

        assert is_free_return_eligible(appointment, VISIT_DAY + timedelta(days=offset)) is False

    @pytest.mark.parametrize("offset", [-1, -7, -30])
    def test_future_dated_is_not_eligible(self, make_appointment, offset):
        appointment = make_appointment(status=AppointmentStatus.COMPLETED, date=VISIT_DAY)

        assert is_free_return_eligible(appointment, VISIT_DAY + timedelta(days=offset)) is False

    @pytest.mark.parametrize("status", [
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.WAITING,
        AppointmentStatus.CANCELED,
    ])
    @pytest.mark.parametrize("offset", [-1, 0, 3, 7, 8])
    def test_non_completed_never_eligible(self, make_appointment, status, offset):
        appointment = make_appointment(status=status, date=VISIT_DAY)

        assert is_free_return_eligible(appointment, VISIT_DAY + timedelta(days=offset)) is False

    def test_doctor_period_does_not_extend_window(self, make_appointment):
        """Doctor with a 14-day policy: day 5 eligible, day 10 not."""
        doctor = Doctor(id="d1", name="Dr. D", free_return_period=14)
        appointment = make_appointment(doctor_id=doctor.id, status=AppointmentStatus.COMPLETED, date=VISIT_DAY)

        assert is_free_return_eligible(appointment, VISIT_DAY + timedelta(days=5)) is True
        assert is_free_return_eligible(appointment, VISIT_DAY + timedelta(days=10)) is False
        assert doctor_free_return_days(doctor) == 14


def test_days_since_counts_whole_days(make_appointment):
    appointment = make_appointment(date=VISIT_DAY)

    assert days_since(appointment, date(2024, 7, 17)) == 7
    assert days_since(appointment, date(2024, 7, 9)) == -1


def test_policy_text_with_price_and_period():
    doctor = Doctor(id="d1", name="Dr. D", service_price=200.0, free_return_period=14)

    assert free_return_policy_text(doctor) == "Service price: 200 | Free return within 14 days"


def test_policy_text_single_day():
    doctor = Doctor(id="d1", name="Dr. D", free_return_period=1)

    assert free_return_policy_text(doctor) == "Free return within 1 day"


def test_policy_text_without_configuration():
    doctor = Doctor(id="d2", name="Dr. E")

    assert free_return_policy_text(doctor) == "No pricing policy configured"
    assert doctor_free_return_days(doctor) is None
