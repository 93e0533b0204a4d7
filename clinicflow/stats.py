"""Dashboard figures."""
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Union

from pydantic import BaseModel

from clinicflow import config
from clinicflow.models import Appointment, AppointmentStatus, Doctor, EnrichedAppointment

UPCOMING_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.WAITING)


class TimeRange(str, Enum):
    """Period the dashboard cards summarise."""
    ALL = "all"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"


RANGE_DAYS = {
    TimeRange.LAST_7_DAYS: 7,
    TimeRange.LAST_30_DAYS: 30,
}


class DashboardStats(BaseModel):
    total_appointments: int
    completed_appointments: int
    unique_patients: int
    estimated_revenue: float


def appointments_in_range(
    appointments: Iterable[Appointment],
    time_range: TimeRange,
    today: date
) -> List[Appointment]:
    """
    Appointments dated from ``today`` minus the range up to ``today``, both inclusive.

    ``TimeRange.ALL`` keeps everything, future dates included.
    """
    appointments = list(appointments)
    days = RANGE_DAYS.get(time_range)
    if days is None:
        return appointments
    start = today - timedelta(days=days)
    return [a for a in appointments if start <= a.date <= today]


def dashboard_stats(appointments: Iterable[Appointment], doctors: Iterable[Doctor]) -> DashboardStats:
    """
    Summarise appointments for the dashboard cards.

    Revenue is estimated from completed appointments only, at the doctor's
    service price (or the default price when none is set or the doctor is gone).
    """
    appointments = list(appointments)
    prices: Dict[str, Union[float, None]] = {d.id: d.service_price for d in doctors}

    completed = [a for a in appointments if a.status == AppointmentStatus.COMPLETED]
    revenue = sum(prices.get(a.doctor_id) or config.DEFAULT_SERVICE_PRICE for a in completed)

    return DashboardStats(
        total_appointments=len(appointments),
        completed_appointments=len(completed),
        unique_patients=len({a.patient_id for a in appointments}),
        estimated_revenue=float(revenue),
    )


def upcoming_appointments(
    enriched: Iterable[EnrichedAppointment],
    today: date,
    limit: int = config.UPCOMING_APPOINTMENTS_LIMIT
) -> List[EnrichedAppointment]:
    """Scheduled or Waiting appointments from ``today`` on, soonest first."""
    upcoming = [
        e for e in enriched
        if e.appointment.status in UPCOMING_STATUSES and e.appointment.date >= today
    ]
    upcoming.sort(key=lambda e: (e.appointment.date, e.appointment.start_time))
    return upcoming[:limit]
