"""Appointment and calendar endpoints."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from clinicflow.api.dependencies import get_clinic, get_current_user, require_permission, unwrap
from clinicflow.api.models import (
    AppointmentCreate,
    AppointmentView,
    CalendarDay,
    CalendarItem,
    CommandResponse,
    RescheduleRequest,
    StatusChangeRequest,
    WeekResponse,
    appointment_view,
)
from clinicflow.clinic import Clinic
from clinicflow.models import Appointment, AppointmentStatus, User
from clinicflow.schedule import hour_labels, shift_anchor

router = APIRouter(prefix="/api/v1", tags=["Appointments"])


@router.get("/appointments", response_model=List[AppointmentView])
def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    day: Optional[date] = None,
    today: Optional[date] = Query(None, description="Reference date for free-return eligibility"),
    user: User = Depends(get_current_user),
    clinic: Clinic = Depends(get_clinic)
):
    """
    Appointments joined with patient and doctor, newest first.

    Appointments whose patient or doctor was deleted are not listed.
    """
    today = today or date.today()
    return [appointment_view(e, today) for e in clinic.appointment_list(status=status_filter, day=day)]


@router.get("/appointments/{appointment_id}/conflicts", response_model=List[Appointment])
def appointment_conflicts(appointment_id: str, user: User = Depends(get_current_user),
                          clinic: Clinic = Depends(get_clinic)):
    """Other live appointments of the same doctor overlapping this one."""
    appointment = clinic.state.appointment(appointment_id)
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                            detail=f"Appointment {appointment_id} not found")
    return clinic.appointments.conflicts(appointment)


@router.post("/appointments", response_model=CommandResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    request: AppointmentCreate,
    user: User = Depends(require_permission("appointments", "add")),
    clinic: Clinic = Depends(get_clinic)
):
    """
    Book an appointment.

    Raises:
        400: A required field is blank or a date/time is malformed
    """
    return unwrap(clinic.appointments.create(request.model_dump(), actor=user))


@router.patch("/appointments/{appointment_id}/reschedule", response_model=CommandResponse)
def reschedule_appointment(
    appointment_id: str,
    request: RescheduleRequest,
    user: User = Depends(require_permission("appointments", "edit")),
    clinic: Clinic = Depends(get_clinic)
):
    return unwrap(clinic.appointments.reschedule(
        appointment_id, request.date, request.start_time, request.end_time, actor=user
    ))


@router.post("/appointments/{appointment_id}/cancel", response_model=CommandResponse)
def cancel_appointment(
    appointment_id: str,
    user: User = Depends(require_permission("appointments", "cancel")),
    clinic: Clinic = Depends(get_clinic)
):
    return unwrap(clinic.appointments.cancel(appointment_id, actor=user))


@router.patch("/appointments/{appointment_id}/status", response_model=CommandResponse)
def change_appointment_status(
    appointment_id: str,
    request: StatusChangeRequest,
    user: User = Depends(require_permission("appointments", "edit")),
    clinic: Clinic = Depends(get_clinic)
):
    if request.status == AppointmentStatus.CANCELED:
        clinic.permissions.require(user, "appointments", "cancel")
    return unwrap(clinic.appointments.change_status(appointment_id, request.status, actor=user))


@router.delete("/appointments/{appointment_id}", response_model=CommandResponse)
def delete_appointment(
    appointment_id: str,
    user: User = Depends(require_permission("appointments", "delete")),
    clinic: Clinic = Depends(get_clinic)
):
    """Delete permanently. There is no undo."""
    return unwrap(clinic.appointments.delete(appointment_id, actor=user))


@router.get("/calendar/week", response_model=WeekResponse, tags=["Calendar"])
def calendar_week(
    anchor: Optional[date] = Query(None, description="Any day of the week to show (default: today)"),
    today: Optional[date] = Query(None, description="Reference date for free-return eligibility"),
    user: User = Depends(get_current_user),
    clinic: Clinic = Depends(get_clinic)
):
    """Monday-to-Sunday grid with each appointment positioned in the 08:00-20:00 window."""
    anchor = anchor or date.today()
    today = today or date.today()
    layout = clinic.week(anchor)
    enriched = {e.appointment.id: e for e in clinic.state.enriched_appointments()}

    days = [
        CalendarDay(
            date=column.date,
            items=[
                CalendarItem(
                    appointment=appointment_view(enriched[item.appointment.id], today),
                    top_percent=item.top_percent,
                    height_percent=item.height_percent,
                )
                for item in column.items
                if item.appointment.id in enriched
            ],
        )
        for column in layout.days
    ]
    return WeekResponse(
        week_start=layout.week_start,
        week_end=layout.week_end,
        previous_anchor=shift_anchor(anchor, -1),
        next_anchor=shift_anchor(anchor, 1),
        hours=hour_labels(),
        days=days,
    )
