"""Patient endpoints."""
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from clinicflow.api.dependencies import get_clinic, get_current_user, require_permission, unwrap
from clinicflow.api.models import (
    AppointmentView,
    CommandResponse,
    PatientCreate,
    PatientUpdate,
    appointment_view,
)
from clinicflow.clinic import Clinic
from clinicflow.models import Patient, User

router = APIRouter(prefix="/api/v1/patients", tags=["Patients"])


@router.get("", response_model=List[Patient])
def list_patients(q: str = "", user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    """Patients matching ``q`` on name or phone."""
    return clinic.patients.search(q)


@router.get("/{patient_id}", response_model=Patient)
def get_patient(patient_id: str, user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    patient = clinic.state.patient(patient_id)
    if patient is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Patient {patient_id} not found")
    return patient


@router.get("/{patient_id}/appointments", response_model=List[AppointmentView])
def patient_appointments(patient_id: str, user: User = Depends(get_current_user),
                         clinic: Clinic = Depends(get_clinic)):
    """Visit history of one patient, newest first."""
    today = date.today()
    return [appointment_view(e, today) for e in clinic.appointment_list() if e.patient.id == patient_id]


@router.post("", response_model=CommandResponse, status_code=status.HTTP_201_CREATED)
def create_patient(
    request: PatientCreate,
    user: User = Depends(require_permission("patients", "add")),
    clinic: Clinic = Depends(get_clinic)
):
    return unwrap(clinic.patients.register(request.model_dump(mode="json"), actor=user))


@router.patch("/{patient_id}", response_model=CommandResponse)
def update_patient(
    patient_id: str,
    request: PatientUpdate,
    user: User = Depends(require_permission("patients", "edit")),
    clinic: Clinic = Depends(get_clinic)
):
    return unwrap(clinic.patients.edit(patient_id, request.model_dump(mode="json", exclude_unset=True), actor=user))


@router.delete("/{patient_id}", response_model=CommandResponse)
def delete_patient(
    patient_id: str,
    user: User = Depends(require_permission("patients", "delete")),
    clinic: Clinic = Depends(get_clinic)
):
    """Remove a patient. Their appointments stay but drop out of listings."""
    return unwrap(clinic.patients.remove(patient_id, actor=user))
