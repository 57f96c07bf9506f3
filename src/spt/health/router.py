"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from spt.config import get_settings
from spt.database import get_session

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: checks DB connectivity and reports the scheduler state."""
    checks: dict[str, object] = {}

    # Database check
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    # Scheduler state
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None or not get_settings().scheduler_enabled:
        checks["scheduler"] = "disabled"
    elif scheduler.is_running:
        checks["scheduler"] = "ok"
    else:
        checks["scheduler"] = "stopped"

    next_run = scheduler.next_fire_time() if scheduler is not None else None
    all_ok = all(v in ("ok", "disabled") for v in checks.values())
    return {
        "status": "ready" if all_ok else "degraded",
        "checks": checks,
        "schedule": scheduler.schedule if scheduler is not None else None,
        "next_run": next_run.isoformat() if next_run else None,
    }


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
