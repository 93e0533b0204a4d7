"""API package initialization."""
from clinicflow.api.models import ErrorResponse, LoginRequest, LoginResponse

__all__ = ["ErrorResponse", "LoginRequest", "LoginResponse"]
