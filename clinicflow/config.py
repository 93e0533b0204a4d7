"""Configuration for the clinic management service.

Business rules live here as constants; collaborator credentials come from
the environment (optionally via a .env file).
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Free follow-up window after a completed visit (calendar/table views)
FREE_RETURN_WINDOW_DAYS = 7

# Calendar grid: 12 visible hours starting at 08:00
CALENDAR_START_HOUR = 8
CALENDAR_VISIBLE_HOURS = 12
CALENDAR_WINDOW_MINUTES = CALENDAR_VISIBLE_HOURS * 60
DAYS_PER_WEEK = 7

# Smallest height an item may take on the grid (15 minutes)
MIN_ITEM_HEIGHT_PERCENT = 15 / CALENDAR_WINDOW_MINUTES * 100

# Revenue estimate for doctors without a configured price
DEFAULT_SERVICE_PRICE = 150.0

# Rows in the dashboard "upcoming appointments" list
UPCOMING_APPOINTMENTS_LIMIT = 5

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

# Collections
PATIENTS = "patients"
DOCTORS = "doctors"
APPOINTMENTS = "appointments"
USERS = "users"
MESSAGES = "messages"
AUDIT_LOGS = "audit_logs"
PERMISSIONS = "permissions"
DATA_FIELDS = "data_fields"

COLLECTIONS = [
    PATIENTS,
    DOCTORS,
    APPOINTMENTS,
    USERS,
    MESSAGES,
    AUDIT_LOGS,
    PERMISSIONS,
    DATA_FIELDS,
]

# Identifier field per collection (default: "id")
COLLECTION_KEYS = {
    USERS: "email",
    PERMISSIONS: "role",
}

# Collaborators
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///clinicflow.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.3"))
LLM_TIMEOUT_SECONDS = int(os.getenv("LLM_TIMEOUT_SECONDS", "15"))
LLM_MAX_RETRIES = 3

APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))


def key_field(collection: str) -> str:
    """Return the identifier field used by a collection."""
    return COLLECTION_KEYS.get(collection, "id")
