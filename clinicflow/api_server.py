"""FastAPI server for the clinic management service.

Features:
- Session-token authentication and per-role permission checks
- Global exception handling with a uniform ErrorResponse body
- Health check endpoint
- Structured logging with request IDs
- Background task for expired-session cleanup
"""
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from clinicflow import __version__, config
from clinicflow.api import endpoints
from clinicflow.api.dependencies import CommandFailedError, get_clinic
from clinicflow.api.models import ErrorResponse, FieldErrorResponse
from clinicflow.identity import AuthenticationError, SessionNotFoundError
from clinicflow.logging_config import RequestIDMiddleware, get_logger, setup_structured_logging
from clinicflow.permissions import PermissionDeniedError
from clinicflow.store import StoreUnavailableError
from clinicflow.text_generation import TextGenerationError
from clinicflow.tracing import setup_langsmith_tracing

setup_structured_logging(config.LOG_LEVEL)
logger = get_logger(__name__)

# CommandResult.code -> (HTTP status, error title, error code)
COMMAND_FAILURES = {
    "validation": (status.HTTP_400_BAD_REQUEST, "Validation Error", "VALIDATION_ERROR"),
    "not_found": (status.HTTP_404_NOT_FOUND, "Not Found", "NOT_FOUND"),
    "conflict": (status.HTTP_409_CONFLICT, "Conflict", "CONFLICT"),
    "forbidden": (status.HTTP_403_FORBIDDEN, "Permission Denied", "PERMISSION_DENIED"),
    "unavailable": (status.HTTP_503_SERVICE_UNAVAILABLE, "Service Unavailable", "STORE_UNAVAILABLE"),
}


async def cleanup_sessions_periodically(clinic):
    """Background task to cleanup expired sessions every hour."""
    while True:
        try:
            await asyncio.sleep(3600)
            deleted = clinic.identity.cleanup_expired_sessions(max_age_hours=48)
            logger.info("sessions_cleaned", deleted=deleted)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("session_cleanup_failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    logger.info("server_starting")
    setup_langsmith_tracing()

    clinic = app.dependency_overrides.get(get_clinic, get_clinic)()
    try:
        clinic.start()
    except StoreUnavailableError as e:
        logger.error("startup_failed", error=str(e))
        raise

    cleanup_task = asyncio.create_task(cleanup_sessions_periodically(clinic))

    yield

    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        logger.info("session_cleanup_cancelled")

    clinic.close()
    logger.info("server_stopped")


app = FastAPI(
    title="ClinicFlow API",
    description="Clinic scheduling, records and staff messaging",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestIDMiddleware)

for router in (
    endpoints.auth,
    endpoints.patients,
    endpoints.doctors,
    endpoints.appointments,
    endpoints.users,
    endpoints.messages,
    endpoints.dashboard,
    endpoints.settings,
    endpoints.reports,
):
    app.include_router(router)


def error_response(status_code: int, error: str, detail: str, code: str, errors=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail, code=code, errors=errors or []).model_dump()
    )


# Global exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors consistently."""
    logger.warning("request_validation_failed", errors=str(exc.errors()))
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation Error",
        str(exc.errors()),
        "REQUEST_VALIDATION_ERROR",
    )


@app.exception_handler(CommandFailedError)
async def command_failed_handler(request: Request, exc: CommandFailedError):
    result = exc.result
    status_code, error, code = COMMAND_FAILURES.get(
        result.code, (status.HTTP_400_BAD_REQUEST, "Request Failed", "COMMAND_FAILED")
    )
    errors = [FieldErrorResponse(field=e.field, message=e.message, code=e.code) for e in result.errors]
    return error_response(status_code, error, result.message, code, errors)


@app.exception_handler(AuthenticationError)
async def authentication_handler(request: Request, exc: AuthenticationError):
    return error_response(status.HTTP_401_UNAUTHORIZED, "Authentication Failed", str(exc), "AUTHENTICATION_FAILED")


@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
    return error_response(status.HTTP_401_UNAUTHORIZED, "Session Not Found", str(exc), "SESSION_NOT_FOUND")


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
    return error_response(status.HTTP_403_FORBIDDEN, "Permission Denied", str(exc), "PERMISSION_DENIED")


@app.exception_handler(TextGenerationError)
async def text_generation_handler(request: Request, exc: TextGenerationError):
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE, "Text Generation Unavailable", str(exc), "TEXT_GENERATION_UNAVAILABLE"
    )


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error("store_unavailable", error=str(exc))
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Service Unavailable", str(exc), "STORE_UNAVAILABLE")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    codes = {
        status.HTTP_401_UNAUTHORIZED: ("Unauthorized", "UNAUTHORIZED"),
        status.HTTP_403_FORBIDDEN: ("Permission Denied", "PERMISSION_DENIED"),
        status.HTTP_404_NOT_FOUND: ("Not Found", "NOT_FOUND"),
    }
    error, code = codes.get(exc.status_code, ("HTTP Error", "HTTP_ERROR"))
    response = error_response(exc.status_code, error, str(exc.detail), code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected exceptions."""
    logger.exception("unexpected_error", error=str(exc))
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "An unexpected error occurred. Please try again later.",
        "INTERNAL_ERROR",
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "service": "clinicflow-api",
        "version": __version__
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API info."""
    return {
        "message": "ClinicFlow API",
        "docs": "/docs",
        "health": "/health"
    }


def main():
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "clinicflow.api_server:app",
        host=config.APP_HOST,
        port=config.APP_PORT,
        log_level=config.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
