"""taskflow-notify - task reminders, multi-channel notifications and assignment confirmation."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.errors import ErrorCode, ErrorResponse, NotificationCoreError, classify_error_with_response
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.scheduler import JOB_NAMES, ReminderScheduler
from src.core.scheduler_tracker import job_tracker
from src.interface.confirmation_router import router as confirmation_router
from src.interface.reminder_router import router as reminder_router


logger = logging.getLogger(__name__)

# (settings field, service name) required when notification_mode is "live"
LIVE_CREDENTIALS = [
    ("mailjet_api_key", "Mailjet API key"),
    ("mailjet_secret_key", "Mailjet secret key"),
    ("twilio_account_sid", "Twilio account SID"),
    ("twilio_auth_token", "Twilio auth token"),
    ("twilio_phone_number", "Twilio phone number"),
]


async def validate_startup_configuration() -> None:
    """Validate provider credentials, failing fast with a clear message.

    In simulated mode nothing is contacted, so no credential is required.
    """
    logger.info("startup_validation_begin", extra={"notification_mode": settings.notification_mode})

    if not settings.is_live:
        logger.info("startup_validation_complete", extra={"status": "simulated"})
        return

    try:
        for field_name, service_name in LIVE_CREDENTIALS:
            settings.require_credential(field_name, service_name)
        logger.info("startup_validation_complete", extra={"status": "ok"})
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()

    await validate_startup_configuration()

    await init_db()
    logger.info("Database initialized")

    reminder_scheduler = ReminderScheduler()
    app.state.reminder_scheduler = reminder_scheduler
    reminder_scheduler.start()
    yield
    reminder_scheduler.stop()
    await close_connection()


app = FastAPI(
    title="taskflow-notify",
    description="Task reminders, multi-channel notifications and assignment confirmation",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(confirmation_router)
app.include_router(reminder_router)


@app.exception_handler(NotificationCoreError)
async def notification_error_handler(_request: Request, exc: NotificationCoreError) -> JSONResponse:
    status_code, body = classify_error_with_response(exc)
    logger.info("Request rejected", extra={"code": body.error, "status_code": status_code})
    return JSONResponse(content=body.model_dump(), status_code=status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Request validation failed", extra={"errors": str(exc.errors())})
    body = ErrorResponse(error=ErrorCode.ERR_INVALID_REQUEST, message="Requête invalide")
    return JSONResponse(content=body.model_dump(), status_code=400)


@app.exception_handler(Exception)
async def unexpected_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"error": str(exc)})
    status_code, body = classify_error_with_response(exc)
    return JSONResponse(content=body.model_dump(), status_code=status_code)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with job statuses."""
    job_statuses = {job_name: await job_tracker.get_job_status(job_name) for job_name in JOB_NAMES}

    dlq = job_tracker.get_dead_letter_queue()

    has_failures = any(status["consecutive_failures"] > 0 for status in job_statuses.values())

    overall_status = "degraded" if has_failures else "healthy"
    if len(dlq) > 0:
        overall_status = "critical"

    return JSONResponse(
        content={
            "status": overall_status,
            "jobs": job_statuses,
            "dead_letter_queue_size": len(dlq),
            "dead_letter_queue": dlq,
        },
        status_code=200 if overall_status == "healthy" else 503,
    )
