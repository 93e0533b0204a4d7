"""Dashboard, notification and audit log endpoints."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from clinicflow import config
from clinicflow.api.dependencies import get_clinic, get_current_user, require_admin
from clinicflow.api.models import AppointmentView, appointment_view
from clinicflow.clinic import Clinic
from clinicflow.models import AuditAction, AuditCategory, AuditLog, Notification, User
from clinicflow.stats import DashboardStats, TimeRange

router = APIRouter(prefix="/api/v1", tags=["Dashboard"])


@router.get("/dashboard/stats", response_model=DashboardStats)
def stats(
    time_range: TimeRange = Query(TimeRange.LAST_30_DAYS, alias="range"),
    today: Optional[date] = Query(None, description="End of the range (default: today)"),
    user: User = Depends(get_current_user),
    clinic: Clinic = Depends(get_clinic)
):
    """Stats cards for appointments dated within the last 7 or 30 days, or all of them."""
    return clinic.stats(time_range, today or date.today())


@router.get("/dashboard/upcoming", response_model=List[AppointmentView])
def upcoming(
    today: Optional[date] = None,
    limit: int = Query(config.UPCOMING_APPOINTMENTS_LIMIT, ge=1, le=50),
    user: User = Depends(get_current_user),
    clinic: Clinic = Depends(get_clinic)
):
    """Next Scheduled or Waiting appointments, soonest first."""
    today = today or date.today()
    return [appointment_view(e, today) for e in clinic.upcoming(today, limit)]


@router.get("/notifications", response_model=List[Notification])
def notifications(unread_only: bool = False, user: User = Depends(get_current_user),
                  clinic: Clinic = Depends(get_clinic)):
    if unread_only:
        return clinic.state.unread_notifications()
    return clinic.state.notifications


@router.post("/notifications/read-all")
def mark_all_read(user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    clinic.state.mark_all_read()
    return {"ok": True}


@router.post("/notifications/{notification_id}/read")
def mark_read(notification_id: str, user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    if not clinic.state.mark_read(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                            detail=f"Notification {notification_id} not found")
    return {"ok": True}


@router.get("/audit-log", response_model=List[AuditLog], tags=["Audit"])
def audit_log(
    search: str = "",
    action: Optional[AuditAction] = None,
    category: Optional[AuditCategory] = None,
    newest_first: bool = True,
    user: User = Depends(require_admin),
    clinic: Clinic = Depends(get_clinic)
):
    return clinic.audit.query(search=search, action=action, category=category, newest_first=newest_first)
