"""FastAPI dependency injection functions."""
from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, status

from clinicflow import config
from clinicflow.api.models import CommandResponse
from clinicflow.clinic import Clinic
from clinicflow.commands import CommandResult
from clinicflow.identity import SessionNotFoundError
from clinicflow.models import User, UserRole


class CommandFailedError(Exception):
    """Raised by endpoints when a domain command did not succeed."""

    def __init__(self, result: CommandResult):
        super().__init__(result.message)
        self.result = result


@lru_cache(maxsize=1)
def get_clinic() -> Clinic:
    """
    Get the application context (cached singleton).

    Pattern: Create once, reuse across requests. Started by the app lifespan.
    """
    return Clinic.from_database_url(config.DATABASE_URL)


def get_session_token(x_session_token: Optional[str] = Header(None, description="Session token from login")) -> str:
    if not x_session_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Session-Token header",
            headers={"WWW-Authenticate": "Session"}
        )
    return x_session_token


def get_current_user(
    token: str = Depends(get_session_token),
    clinic: Clinic = Depends(get_clinic)
) -> User:
    """
    FastAPI dependency resolving the signed-in user.

    Raises:
        HTTPException 401: If the token is unknown or has no profile
    """
    try:
        user = clinic.users.user_for_token(token)
    except SessionNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Session"}
        )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No user profile for this session",
            headers={"WWW-Authenticate": "Session"}
        )
    return user


def require_permission(resource: str, action: str) -> Callable[..., User]:
    """
    Build a dependency that checks the current user's role.

    Raises PermissionDeniedError (403) when the role lacks the capability.
    """
    def dependency(
        user: User = Depends(get_current_user),
        clinic: Clinic = Depends(get_clinic)
    ) -> User:
        clinic.permissions.require(user, resource, action)
        return user

    return dependency


def require_admin(
    user: User = Depends(get_current_user),
    clinic: Clinic = Depends(get_clinic)
) -> User:
    if clinic.permissions.current_role(user) != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required"
        )
    return user


def unwrap(result: CommandResult) -> CommandResponse:
    """Turn a successful result into a response; raise CommandFailedError otherwise."""
    if not result.ok:
        raise CommandFailedError(result)
    return CommandResponse(message=result.message, record=result.record)
