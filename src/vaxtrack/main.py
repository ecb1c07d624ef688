import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from src.vaxtrack.api.v1.routes_ai import router as ai_router_v1
from src.vaxtrack.api.v1.routes_appointments import router as appointments_router_v1
from src.vaxtrack.api.v1.routes_auth import router as auth_router_v1
from src.vaxtrack.api.v1.routes_children import router as children_router_v1
from src.vaxtrack.api.v1.routes_clinics import router as clinics_router_v1
from src.vaxtrack.api.v1.routes_messages import router as messages_router_v1
from src.vaxtrack.api.v1.routes_notifications import router as notifications_router_v1
from src.vaxtrack.api.v1.routes_realtime import router as realtime_router_v1
from src.vaxtrack.api.v1.routes_system import router as system_router_v1
from src.vaxtrack.api.v1.routes_vaccinations import router as vaccinations_router_v1
from src.vaxtrack.config import settings
from src.vaxtrack.domain.errors import ConflictError, DomainError, ForbiddenError, NotFoundError
from src.vaxtrack.infra.db.bootstrap import init_sql_repositories
from src.vaxtrack.services.notifications.service import notification_service
from src.vaxtrack.services.reminders.scheduler import reminder_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown.

    Switches to SQL repositories when USE_SQL_REPOS and DATABASE_URL are set,
    purges expired notifications and owns the reminder scheduler task.
    """

    init_sql_repositories()
    purged = notification_service.purge_expired()
    if purged:
        logger.info("Purged %d expired notifications", purged)
    if settings.reminder_scheduler_enabled:
        reminder_scheduler.start()
    try:
        yield
    finally:
        await reminder_scheduler.stop()


app = FastAPI(title="VaxTrack API", lifespan=lifespan)


_DOMAIN_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_400_BAD_REQUEST,
}


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    code = _DOMAIN_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=code, content={"detail": exc.detail})


@app.exception_handler(ValidationError)
async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    # Raised when a partial update produces an invalid record.
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(include_url=False, include_context=False, include_input=False)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal server error"})


# CORS configuration. The browser client origin comes from CORS_ALLOW_ORIGINS.
allow_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    """Basic liveness probe for the API root."""
    return {"status": "ok"}


# Uploaded child photos; URLs are produced by LocalPhotoStorageBackend.
app.mount(
    "/uploads/children",
    StaticFiles(directory=settings.photo_upload_dir, check_dir=False),
    name="child-photos",
)

# Versioned API routers
API_PREFIX = f"/api/{settings.api_version}"
app.include_router(system_router_v1, prefix=API_PREFIX)
app.include_router(auth_router_v1, prefix=API_PREFIX)
app.include_router(children_router_v1, prefix=API_PREFIX)
app.include_router(vaccinations_router_v1, prefix=API_PREFIX)
app.include_router(clinics_router_v1, prefix=API_PREFIX)
app.include_router(appointments_router_v1, prefix=API_PREFIX)
app.include_router(messages_router_v1, prefix=API_PREFIX)
app.include_router(notifications_router_v1, prefix=API_PREFIX)
app.include_router(ai_router_v1, prefix=API_PREFIX)
app.include_router(realtime_router_v1, prefix=API_PREFIX)
