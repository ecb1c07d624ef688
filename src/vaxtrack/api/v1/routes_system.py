from fastapi import APIRouter

from src.vaxtrack.config import settings
from src.vaxtrack.services.reminders.scheduler import reminder_scheduler

router = APIRouter(prefix="", tags=["system"])


@router.get("/health")
async def health_check_v1() -> dict:
    """API v1 health endpoint."""
    return {
        "status": "ok",
        "version": settings.api_version,
        "reminder_scheduler": "running" if reminder_scheduler.running else "stopped",
    }
