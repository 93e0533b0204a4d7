"""Pydantic models for API request/response validation.

Request bodies are lenient about field contents: blank or
malformed values reach the domain layer, which reports them as 400 field
errors. Only the JSON shape is enforced here (422).
"""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinicflow.eligibility import is_free_return_eligible
from clinicflow.models import (
    Appointment,
    AppointmentStatus,
    Doctor,
    EnrichedAppointment,
    Patient,
    User,
    UserRole,
)


class LoginRequest(BaseModel):
    """Request schema for /api/v1/auth/login."""
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "emily.carter@clinicflow.com",
                "password": "s3cret-pass"
            }
        }
    )


class LoginResponse(BaseModel):
    token: str = Field(..., description="Send as X-Session-Token on later requests")
    user: User


class PatientCreate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    avatar: Optional[str] = None
    last_visit: Optional[date] = None


class PatientUpdate(PatientCreate):
    pass


class DoctorCreate(BaseModel):
    name: Optional[str] = None
    specialty: Optional[str] = None
    avatar: Optional[str] = None
    service_price: Optional[float] = None
    free_return_period: Optional[int] = None


class DoctorUpdate(DoctorCreate):
    pass


class DoctorView(BaseModel):
    doctor: Doctor
    policy: str = Field(..., description="Pricing and free-return policy shown at booking")


class AppointmentCreate(BaseModel):
    """Request schema for booking. Dates are YYYY-MM-DD, times HH:MM."""
    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None
    status: Optional[str] = None
    free_return: Optional[bool] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "patient_id": "p1",
                "doctor_id": "d1",
                "date": "2024-07-10",
                "start_time": "09:00",
                "end_time": "09:30",
                "reason": "Annual check-up",
                "free_return": False
            }
        }
    )


class RescheduleRequest(BaseModel):
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class StatusChangeRequest(BaseModel):
    status: AppointmentStatus


class AppointmentView(BaseModel):
    """Appointment joined with its patient and doctor."""
    appointment: Appointment
    patient: Patient
    doctor: Doctor
    free_return_eligible: bool


class CalendarItem(BaseModel):
    appointment: AppointmentView
    top_percent: float
    height_percent: float


class CalendarDay(BaseModel):
    date: date
    items: List[CalendarItem]


class WeekResponse(BaseModel):
    week_start: date
    week_end: date
    previous_anchor: date
    next_anchor: date
    hours: List[str]
    days: List[CalendarDay]


class UserCreate(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[UserRole] = None
    password: Optional[str] = None
    avatar: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[UserRole] = None
    avatar: Optional[str] = None


class PermissionUpdate(BaseModel):
    role: UserRole
    resource: str = Field(..., examples=["appointments"])
    action: str = Field(..., examples=["cancel"])
    value: bool


class MessageCreate(BaseModel):
    receiver_email: str
    text: str = ""


class DataFieldCreate(BaseModel):
    label: Optional[str] = None
    required: bool = False


class DataFieldUpdate(BaseModel):
    label: Optional[str] = None
    required: Optional[bool] = None


class ExplainTermRequest(BaseModel):
    term: str = Field(..., min_length=1, max_length=200, examples=["Tachycardia"])

    @field_validator("term")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("term must not be blank")
        return v.strip()


class ReportDraftRequest(BaseModel):
    appointment_notes: str = Field(..., min_length=1, max_length=10000)

    @field_validator("appointment_notes")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("appointment_notes must not be blank")
        return v.strip()


class CommandResponse(BaseModel):
    """Outcome of a successful write."""
    ok: bool = True
    message: str = ""
    record: Optional[Dict[str, Any]] = None


class FieldErrorResponse(BaseModel):
    field: str
    message: str
    code: str


class ErrorResponse(BaseModel):
    """Error response schema."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    code: Optional[str] = Field(None, description="Error code")
    errors: List[FieldErrorResponse] = Field(default_factory=list, description="Field-level errors")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Validation Error",
                "detail": "Missing required fields",
                "code": "VALIDATION_ERROR",
                "errors": [{"field": "reason", "message": "reason is required", "code": "required"}]
            }
        }
    )


def appointment_view(enriched: EnrichedAppointment, today: date) -> AppointmentView:
    return AppointmentView(
        appointment=enriched.appointment,
        patient=enriched.patient,
        doctor=enriched.doctor,
        free_return_eligible=is_free_return_eligible(enriched.appointment, today),
    )
