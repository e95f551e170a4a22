"""
Health check endpoints for the load balancer and container healthcheck.

- GET /health       - liveness (200 whenever the process serves requests)
- GET /health/ready - readiness: database reachable and lead pipeline wired
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from leadsync.database import get_db, ping
from leadsync.schemas.api_responses import HealthResponse, ReadinessResponse

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return {"status": "ok", "timestamp": _now()}


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Degraded when the store is unreachable or no processor is attached yet."""
    checks = {
        "database": await ping(db),
        "lead_processor": getattr(request.app.state, "lead_processor", None) is not None,
    }
    return {
        "status": "ready" if all(checks.values()) else "degraded",
        "checks": checks,
        "timestamp": _now(),
    }
