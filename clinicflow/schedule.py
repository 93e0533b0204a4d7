"""Weekly calendar layout.

Maps appointments onto a Monday-first, seven-column grid covering a fixed
12-hour window from 08:00. Positions are percentages of that window.
Appointments outside the window keep their out-of-range positions.
"""
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterable, List, Tuple

from clinicflow import config
from clinicflow.models import Appointment


@dataclass
class LayoutItem:
    """One appointment positioned within a day column."""
    appointment: Appointment
    top_percent: float
    height_percent: float


@dataclass
class DayColumn:
    date: date
    items: List[LayoutItem] = field(default_factory=list)


@dataclass
class WeekLayout:
    """Seven day columns, Monday through Sunday."""
    week_start: date
    week_end: date
    days: List[DayColumn]


def week_bounds(anchor: date) -> Tuple[date, date]:
    """Return the Monday and Sunday of the week containing ``anchor``."""
    start = anchor - timedelta(days=anchor.weekday())
    return start, start + timedelta(days=config.DAYS_PER_WEEK - 1)


def shift_anchor(anchor: date, weeks: int = 1) -> date:
    """Move ``anchor`` by whole weeks (negative goes back). Unbounded."""
    return anchor + timedelta(days=config.DAYS_PER_WEEK * weeks)


def _minutes_from_window_start(moment: time) -> int:
    return (moment.hour - config.CALENDAR_START_HOUR) * 60 + moment.minute


def top_percent(start: time) -> float:
    """Vertical offset of ``start`` within the visible window, unclamped."""
    return _minutes_from_window_start(start) / config.CALENDAR_WINDOW_MINUTES * 100


def height_percent(start: time, end: time) -> float:
    """
    Height of the ``start``-``end`` span within the visible window.

    Zero, negative and very short spans get the minimum visible height.
    """
    minutes = (end.hour - start.hour) * 60 + (end.minute - start.minute)
    height = minutes / config.CALENDAR_WINDOW_MINUTES * 100
    return max(height, config.MIN_ITEM_HEIGHT_PERCENT)


def appointments_on(appointments: Iterable[Appointment], day: date) -> List[Appointment]:
    """Appointments whose date is exactly ``day`` (ISO date comparison)."""
    key = day.isoformat()
    return [a for a in appointments if a.date.isoformat() == key]


def layout_week(appointments: Iterable[Appointment], anchor: date) -> WeekLayout:
    """
    Lay out the week containing ``anchor``.

    Args:
        appointments: Candidate appointments (any dates)
        anchor: Any day of the week to show

    Returns:
        WeekLayout with exactly seven day columns; items keep input order
    """
    appointments = list(appointments)
    week_start, week_end = week_bounds(anchor)

    days = []
    for offset in range(config.DAYS_PER_WEEK):
        day = week_start + timedelta(days=offset)
        items = [
            LayoutItem(
                appointment=appointment,
                top_percent=top_percent(appointment.start_time),
                height_percent=height_percent(appointment.start_time, appointment.end_time),
            )
            for appointment in appointments_on(appointments, day)
        ]
        days.append(DayColumn(date=day, items=items))

    return WeekLayout(week_start=week_start, week_end=week_end, days=days)


def hour_labels() -> List[str]:
    """Row labels for the visible window, e.g. ``["08:00", ..., "19:00"]``."""
    return [
        f"{hour:02d}:00"
        for hour in range(config.CALENDAR_START_HOUR,
                          config.CALENDAR_START_HOUR + config.CALENDAR_VISIBLE_HOURS)
    ]
