"""Health check endpoints for load balancer and monitoring."""

from fastapi import APIRouter
from pydantic import BaseModel

from geoscore.core.config import get_settings
from geoscore.engines.recommendations.engine import RECOMMENDATION_RULES

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    checks: dict[str, str]


@router.get("", response_model=HealthResponse, include_in_schema=False)
async def health_check() -> HealthResponse:
    settings = get_settings()

    # Stateless service: the only dependency is the loaded rule table
    checks = {
        "recommendation_rules": "healthy" if RECOMMENDATION_RULES else "unhealthy: empty rule table",
    }
    overall = "healthy" if all("unhealthy" not in v for v in checks.values()) else "degraded"

    return HealthResponse(
        status=overall,
        version=settings.APP_VERSION,
        checks=checks,
    )


@router.get("/ready", include_in_schema=False)
async def readiness() -> dict:
    """Kubernetes readiness probe."""
    return {"ready": True}


@router.get("/live", include_in_schema=False)
async def liveness() -> dict:
    """Kubernetes liveness probe."""
    return {"alive": True}
