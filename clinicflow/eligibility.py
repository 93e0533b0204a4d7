"""Free follow-up ("free return") rules.

Three separate notions coexist and are never reconciled:
- The fixed eligibility window shown in calendar and table views
  (``is_free_return_eligible``)
- The doctor's configured free-return period, shown when booking
  (``doctor_free_return_days`` / ``free_return_policy_text``)
- The ``free_return`` flag staff set on an appointment at creation
"""
from datetime import date
from typing import Optional

from clinicflow import config
from clinicflow.models import Appointment, AppointmentStatus, Doctor


def days_since(appointment: Appointment, today: date) -> int:
    """Whole days from the appointment date to ``today`` (negative if in the future)."""
    return (today - appointment.date).days


def is_free_return_eligible(appointment: Appointment, today: date) -> bool:
    """
    Whether a completed visit still qualifies for a free follow-up.

    Eligible iff the appointment is Completed and ``today`` falls 0 to 7 days
    after the appointment date, inclusive. Future-dated appointments are not
    eligible. The doctor's own free-return period plays no part here.

    Args:
        appointment: Appointment to check
        today: Reference date

    Returns:
        True if eligible
    """
    if appointment.status != AppointmentStatus.COMPLETED:
        return False
    elapsed = days_since(appointment, today)
    return 0 <= elapsed <= config.FREE_RETURN_WINDOW_DAYS


def doctor_free_return_days(doctor: Doctor) -> Optional[int]:
    """Doctor's configured free-return period in days, if any."""
    return doctor.free_return_period


def free_return_policy_text(doctor: Doctor) -> str:
    """Booking-time description of the doctor's pricing and free-return policy."""
    parts = []
    if doctor.service_price is not None:
        parts.append(f"Service price: {doctor.service_price:g}")
    period = doctor_free_return_days(doctor)
    if period:
        unit = "day" if period == 1 else "days"
        parts.append(f"Free return within {period} {unit}")
    if not parts:
        return "No pricing policy configured"
    return " | ".join(parts)
