"""Sign-in endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status

from clinicflow.api.dependencies import get_clinic, get_current_user, get_session_token
from clinicflow.api.models import LoginRequest, LoginResponse
from clinicflow.clinic import Clinic
from clinicflow.logging_config import get_logger
from clinicflow.models import User

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, clinic: Clinic = Depends(get_clinic)):
    """
    Sign in with email and password.

    Raises:
        401: Wrong credentials, or no staff profile for the account
    """
    session = clinic.identity.login(request.email, request.password)
    user = clinic.state.user(session.email)
    if user is None:
        clinic.identity.logout(session.token)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No user profile for this account"
        )
    return LoginResponse(token=session.token, user=user)


@router.post("/logout")
def logout(token: str = Depends(get_session_token), clinic: Clinic = Depends(get_clinic)):
    clinic.identity.logout(token)
    return {"ok": True}


@router.get("/me", response_model=User)
def me(user: User = Depends(get_current_user)):
    return user
