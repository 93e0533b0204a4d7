"""Internal messaging endpoints."""
from typing import List

from fastapi import APIRouter, Depends, status

from clinicflow.api.dependencies import get_clinic, get_current_user, unwrap
from clinicflow.api.models import CommandResponse, MessageCreate
from clinicflow.clinic import Clinic
from clinicflow.models import Message, User

router = APIRouter(prefix="/api/v1/messages", tags=["Messages"])


@router.get("/contacts", response_model=List[User])
def contacts(user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    return clinic.messenger.contacts(user)


@router.get("/{other_email}", response_model=List[Message])
def conversation(other_email: str, user: User = Depends(get_current_user), clinic: Clinic = Depends(get_clinic)):
    """Messages between the current user and ``other_email``, oldest first."""
    return clinic.messenger.conversation(user.email, other_email)


@router.post("", response_model=CommandResponse, status_code=status.HTTP_201_CREATED)
def send_message(request: MessageCreate, user: User = Depends(get_current_user),
                 clinic: Clinic = Depends(get_clinic)):
    return unwrap(clinic.messenger.send(user, request.receiver_email, request.text))
