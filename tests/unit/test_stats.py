"""Tests for dashboard figures."""
from datetime import date

import pytest

from clinicflow.models import AppointmentStatus, Doctor, EnrichedAppointment, Patient
from clinicflow.stats import TimeRange, appointments_in_range, dashboard_stats, upcoming_appointments

TODAY = date(2024, 7, 31)


def test_empty():
    stats = dashboard_stats([], [])

    assert stats.total_appointments == 0
    assert stats.estimated_revenue == 0.0


def test_revenue_from_completed_only(make_appointment):
    doctors = [Doctor(id="d1", name="Dr. Ben Hanson", service_price=200), Doctor(id="d2", name="Dr. Olivia Chen")]
    appointments = [
        make_appointment(id="a1", status=AppointmentStatus.COMPLETED),
        make_appointment(id="a2", doctor_id="d2", patient_id="p2", status=AppointmentStatus.COMPLETED),
        make_appointment(id="a3", doctor_id="gone", status=AppointmentStatus.COMPLETED),
        make_appointment(id="a4", status=AppointmentStatus.SCHEDULED),
        make_appointment(id="a5", status=AppointmentStatus.CANCELED),
    ]

    stats = dashboard_stats(appointments, doctors)

    assert stats.total_appointments == 5
    assert stats.completed_appointments == 3
    assert stats.unique_patients == 2
    assert stats.estimated_revenue == 200 + 150 + 150


class TestTimeRange:
    """Range filtering keeps dates from today minus N days through today."""

    @pytest.mark.parametrize("time_range,day,expected", [
        (TimeRange.LAST_7_DAYS, date(2024, 7, 24), True),
        (TimeRange.LAST_7_DAYS, date(2024, 7, 23), False),
        (TimeRange.LAST_7_DAYS, TODAY, True),
        (TimeRange.LAST_7_DAYS, date(2024, 8, 1), False),
        (TimeRange.LAST_30_DAYS, date(2024, 7, 1), True),
        (TimeRange.LAST_30_DAYS, date(2024, 6, 30), False),
        (TimeRange.ALL, date(2020, 1, 1), True),
        (TimeRange.ALL, date(2030, 1, 1), True),
    ])
    def test_boundaries(self, make_appointment, time_range, day, expected):
        appointment = make_appointment(date=day)

        assert (appointments_in_range([appointment], time_range, TODAY) == [appointment]) is expected

    def test_range_value_parsing(self):
        assert TimeRange("7d") is TimeRange.LAST_7_DAYS
        assert TimeRange("30d") is TimeRange.LAST_30_DAYS


class TestUpcoming:

    @pytest.fixture
    def enrich(self):
        patient = Patient(id="p1", name="Ahmed Mahmoud")
        doctor = Doctor(id="d1", name="Dr. Ben Hanson")

        def _enrich(appointments):
            return [EnrichedAppointment(appointment=a, patient=patient, doctor=doctor) for a in appointments]
        return _enrich

    def test_only_live_from_today_sorted(self, make_appointment, enrich):
        rows = enrich([
            make_appointment(id="later", date=date(2024, 8, 5)),
            make_appointment(id="waiting", date=TODAY, status=AppointmentStatus.WAITING),
            make_appointment(id="past", date=date(2024, 7, 30)),
            make_appointment(id="done", date=date(2024, 8, 1), status=AppointmentStatus.COMPLETED),
            make_appointment(id="canceled", date=date(2024, 8, 1), status=AppointmentStatus.CANCELED),
            make_appointment(id="soon", date=date(2024, 8, 1)),
        ])

        assert [e.appointment.id for e in upcoming_appointments(rows, TODAY)] == ["waiting", "soon", "later"]

    def test_limited_to_five(self, make_appointment, enrich):
        rows = enrich([make_appointment(id=f"a{i}", date=date(2024, 8, 10 - i)) for i in range(8)])

        upcoming = upcoming_appointments(rows, TODAY)

        assert [e.appointment.id for e in upcoming] == ["a7", "a6", "a5", "a4", "a3"]
