"""API routers, one module per area."""
from .appointments import router as appointments
from .auth import router as auth
from .dashboard import router as dashboard
from .doctors import router as doctors
from .messages import router as messages
from .patients import router as patients
from .reports import router as reports
from .settings import router as settings
from .users import router as users

__all__ = [
    "appointments",
    "auth",
    "dashboard",
    "doctors",
    "messages",
    "patients",
    "reports",
    "settings",
    "users",
]
