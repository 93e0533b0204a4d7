"""Doctor endpoints."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from clinicflow.api.dependencies import get_clinic, get_current_user, require_permission, unwrap
from clinicflow.api.models import CommandResponse, DoctorCreate, DoctorUpdate, DoctorView
from clinicflow.clinic import Clinic
from clinicflow.eligibility import free_return_policy_text
from clinicflow.models import User

router = APIRouter(prefix="/api/v1/doctors", tags=["Doctors"])


@router.get("", response_model=List[DoctorView])
def list_doctors(user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    doctors = sorted(clinic.state.doctors, key=lambda d: d.name.lower())
    return [DoctorView(doctor=d, policy=free_return_policy_text(d)) for d in doctors]


@router.get("/{doctor_id}", response_model=DoctorView)
def get_doctor(doctor_id: str, user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    doctor = clinic.state.doctor(doctor_id)
    if doctor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Doctor {doctor_id} not found")
    return DoctorView(doctor=doctor, policy=free_return_policy_text(doctor))


@router.post("", response_model=CommandResponse, status_code=status.HTTP_201_CREATED)
def create_doctor(
    request: DoctorCreate,
    user: User = Depends(require_permission("doctors", "add")),
    clinic: Clinic = Depends(get_clinic)
):
    return unwrap(clinic.doctors.add(request.model_dump(mode="json"), actor=user))


@router.patch("/{doctor_id}", response_model=CommandResponse)
def update_doctor(
    doctor_id: str,
    request: DoctorUpdate,
    user: User = Depends(require_permission("doctors", "edit")),
    clinic: Clinic = Depends(get_clinic)
):
    return unwrap(clinic.doctors.edit(doctor_id, request.model_dump(mode="json", exclude_unset=True), actor=user))


@router.delete("/{doctor_id}", response_model=CommandResponse)
def delete_doctor(
    doctor_id: str,
    user: User = Depends(require_permission("doctors", "delete")),
    clinic: Clinic = Depends(get_clinic)
):
    return unwrap(clinic.doctors.remove(doctor_id, actor=user))
