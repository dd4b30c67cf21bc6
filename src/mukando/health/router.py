"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends, Request

from mukando.config import Settings
from mukando.database import Database, get_database

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check. Returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    database: Database = Depends(get_database),  # noqa: B008
) -> dict[str, object]:
    """Readiness check. Checks the mirror database."""
    checks: dict[str, object] = {}

    try:
        await database.init_schema()
        checks["database"] = "ok" if await database.ping() else "error: unexpected result"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version(request: Request) -> dict[str, str]:
    """Return API version and environment."""
    settings: Settings = request.app.state.settings
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
