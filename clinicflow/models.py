"""Domain records for the clinic.

Each model maps to one collection in the document store. Records are stored
as JSON (``model_dump(mode="json")``) and parsed back with ``model_validate``.
"""
from datetime import date, datetime, time, UTC
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states."""
    SCHEDULED = "Scheduled"
    WAITING = "Waiting"
    COMPLETED = "Completed"
    CANCELED = "Canceled"


class UserRole(str, Enum):
    """Staff roles."""
    ADMIN = "Admin"
    DOCTOR = "Doctor"
    RECEPTIONIST = "Receptionist"


class PresenceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class Patient(BaseModel):
    """Registered patient."""
    id: str
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = ""
    age: int = Field(0, ge=0)
    avatar: str = ""
    last_visit: Optional[date] = None


class Doctor(BaseModel):
    """
    Doctor with an optional pricing and free-return policy.

    free_return_period is informational (shown when booking); it does not
    drive the fixed eligibility window used in calendar and table views.
    """
    id: str
    name: str = Field(..., min_length=1, max_length=200)
    specialty: str = ""
    avatar: str = ""
    service_price: Optional[float] = Field(None, gt=0)
    free_return_period: Optional[int] = Field(None, gt=0, description="Days")


class Appointment(BaseModel):
    """Appointment between a patient and a doctor on a given day."""
    id: str
    patient_id: str
    doctor_id: str
    date: date
    start_time: time
    end_time: time
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    reason: str = ""
    free_return: Optional[bool] = None

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: time) -> str:
        """Times are stored and returned as HH:MM."""
        return value.strftime("%H:%M")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "a1",
                "patient_id": "p1",
                "doctor_id": "d1",
                "date": "2024-07-10",
                "start_time": "09:00",
                "end_time": "09:30",
                "status": "Scheduled",
                "reason": "Annual check-up",
                "free_return": False
            }
        }
    )


class EnrichedAppointment(BaseModel):
    """Appointment joined in memory with its patient and doctor."""
    appointment: Appointment
    patient: Patient
    doctor: Doctor


class User(BaseModel):
    """Staff account profile (identity lives with the identity provider)."""
    email: str = Field(..., min_length=3, max_length=254)
    name: str = Field(..., min_length=1, max_length=200)
    role: UserRole
    avatar: str = ""
    status: PresenceStatus = PresenceStatus.OFFLINE


class ResourcePermissions(BaseModel):
    add: bool = False
    edit: bool = False
    delete: bool = False


class AppointmentPermissions(ResourcePermissions):
    cancel: bool = False


class Permissions(BaseModel):
    """Capability matrix for one role."""
    patients: ResourcePermissions = Field(default_factory=ResourcePermissions)
    doctors: ResourcePermissions = Field(default_factory=ResourcePermissions)
    appointments: AppointmentPermissions = Field(default_factory=AppointmentPermissions)
    users: ResourcePermissions = Field(default_factory=ResourcePermissions)


class Message(BaseModel):
    """Internal staff message."""
    id: str
    sender_email: str
    receiver_email: str
    text: str = Field(..., min_length=1)
    timestamp: datetime = Field(default_factory=utc_now)


class AuditAction(str, Enum):
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    CANCEL = "Cancel"
    LOGIN = "Login"


class AuditCategory(str, Enum):
    PATIENT = "Patient"
    DOCTOR = "Doctor"
    APPOINTMENT = "Appointment"
    USER = "User"
    SYSTEM = "System"
    REPORT = "Report"


class AuditActor(BaseModel):
    name: str
    avatar: str = ""


class AuditLog(BaseModel):
    """Who did what, and when."""
    id: str
    action: AuditAction
    category: AuditCategory
    user: AuditActor
    details: str = ""
    timestamp: datetime = Field(default_factory=utc_now)


class DataFieldType(str, Enum):
    SYSTEM = "system"
    CUSTOM = "custom"


class DataField(BaseModel):
    """Patient-record field definition managed from settings."""
    id: str
    label: str = Field(..., min_length=1, max_length=100)
    type: DataFieldType = DataFieldType.CUSTOM
    required: bool = False


class NotificationType(str, Enum):
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_CANCELED = "appointment_canceled"
    NEW_PATIENT = "new_patient"
    SYSTEM_ALERT = "system_alert"


class Notification(BaseModel):
    """One-shot user-visible notice."""
    id: str
    title: str
    description: str = ""
    type: NotificationType = NotificationType.SYSTEM_ALERT
    read: bool = False
    timestamp: datetime = Field(default_factory=utc_now)
