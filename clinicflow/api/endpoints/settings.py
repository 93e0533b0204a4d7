"""Patient-record field settings."""
from typing import List

from fastapi import APIRouter, Depends, status

from clinicflow.api.dependencies import get_clinic, get_current_user, require_admin, unwrap
from clinicflow.api.models import CommandResponse, DataFieldCreate, DataFieldUpdate
from clinicflow.clinic import Clinic
from clinicflow.models import DataField, User

router = APIRouter(prefix="/api/v1/data-fields", tags=["Settings"])


@router.get("", response_model=List[DataField])
def list_fields(user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    return clinic.data_fields.fields()


@router.post("", response_model=CommandResponse, status_code=status.HTTP_201_CREATED)
def add_field(request: DataFieldCreate, user: User = Depends(require_admin), clinic: Clinic = Depends(get_clinic)):
    return unwrap(clinic.data_fields.add(request.label, request.required, actor=user))


@router.patch("/{field_id}", response_model=CommandResponse)
def edit_field(field_id: str, request: DataFieldUpdate, user: User = Depends(require_admin),
               clinic: Clinic = Depends(get_clinic)):
    return unwrap(clinic.data_fields.edit(field_id, request.label, request.required, actor=user))


@router.delete("/{field_id}", response_model=CommandResponse)
def delete_field(field_id: str, user: User = Depends(require_admin), clinic: Clinic = Depends(get_clinic)):
    """Delete a custom field. System fields are rejected with 400."""
    return unwrap(clinic.data_fields.delete(field_id, actor=user))
