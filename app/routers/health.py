# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# Health endpoints for monitoring and load balancers. Readiness checks the
# three backends the API depends on: Postgres (via PostgREST), Storage and
# Redis (rate limits, user state, realtime fan-out).
# =============================================================================

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings
from lib.redis_client import get_redis_client
from lib.supabase_client import SupabaseClient

router = APIRouter()

API_VERSION = "1.0.0"


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    version: str


class ChecksResponse(BaseModel):
    database: str = "unknown"
    storage: str = "unknown"
    redis: str = "unknown"


class ReadinessResponse(BaseModel):
    status: str
    checks: ChecksResponse
    timestamp: str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _failure(e: Exception) -> str:
    return f"unhealthy: {str(e)[:50]}"


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic liveness plus environment and version."""
    return HealthResponse(
        status="healthy",
        timestamp=_now(),
        environment=settings.ENVIRONMENT,
        version=API_VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check():
    """
    Readiness check.

    "ready" only when the products table, the storage API and Redis all
    answer; otherwise "degraded" with the failing checks.
    """
    checks = ChecksResponse()

    try:
        SupabaseClient.get_client().table("products").select("id").limit(1).execute()
        checks.database = "healthy"
    except Exception as e:
        checks.database = _failure(e)

    try:
        SupabaseClient.get_client().storage.list_buckets()
        checks.storage = "healthy"
    except Exception as e:
        checks.storage = _failure(e)

    try:
        get_redis_client().ping()
        checks.redis = "healthy"
    except Exception as e:
        checks.redis = _failure(e)

    all_healthy = all(v == "healthy" for v in checks.model_dump().values())

    return ReadinessResponse(
        status="ready" if all_healthy else "degraded",
        checks=checks,
        timestamp=_now(),
    )
