"""Staff user and permission endpoints."""
from typing import Dict, List

from fastapi import APIRouter, Depends, status

from clinicflow.api.dependencies import get_clinic, get_current_user, require_permission, unwrap
from clinicflow.api.models import CommandResponse, PermissionUpdate, UserCreate, UserUpdate
from clinicflow.clinic import Clinic
from clinicflow.models import Permissions, User

router = APIRouter(prefix="/api/v1", tags=["Users"])


@router.get("/users", response_model=List[User])
def list_users(user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    return sorted(clinic.state.users, key=lambda u: u.name.lower())


@router.post("/users", response_model=CommandResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: UserCreate,
    user: User = Depends(require_permission("users", "add")),
    clinic: Clinic = Depends(get_clinic)
):
    return unwrap(clinic.users.add_user(request.model_dump(mode="json"), actor=user))


@router.patch("/users/{email}", response_model=CommandResponse)
def update_user(
    email: str,
    request: UserUpdate,
    user: User = Depends(require_permission("users", "edit")),
    clinic: Clinic = Depends(get_clinic)
):
    """Change name, role or avatar. A new role applies on the user's next request."""
    return unwrap(clinic.users.edit_user(email, request.model_dump(mode="json", exclude_unset=True), actor=user))


@router.delete("/users/{email}", response_model=CommandResponse)
def delete_user(
    email: str,
    user: User = Depends(require_permission("users", "delete")),
    clinic: Clinic = Depends(get_clinic)
):
    return unwrap(clinic.users.delete_user(email, actor=user))


@router.get("/permissions", response_model=Dict[str, Permissions], tags=["Permissions"])
def get_permissions(user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    return clinic.state.permissions


@router.put("/permissions", response_model=CommandResponse, tags=["Permissions"])
def update_permission(
    request: PermissionUpdate,
    user: User = Depends(get_current_user),
    clinic: Clinic = Depends(get_clinic)
):
    """Toggle one capability for a role. Administrators only."""
    return unwrap(clinic.permissions.update_permission(
        user, request.role, request.resource, request.action, request.value
    ))
