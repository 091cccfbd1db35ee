"""Health check endpoints for liveness and readiness checks."""
from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from redis import asyncio as aioredis
from sqlalchemy import text

from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.api.deps import get_stripe_adapter
from studio_payments.config import settings
from studio_payments.database import engine
from studio_payments.exceptions import ServiceError

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health", status_code=status.HTTP_200_OK, tags=["Health"])
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns basic health status if the process is running. Does not check
    external dependencies.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": "0.1.0",
    }


@router.get("/health/ready", tags=["Health"])
async def readiness_check(stripe_adapter: StripeAdapter = Depends(get_stripe_adapter)) -> JSONResponse:
    """
    Readiness check.

    Checks database and Redis connectivity (critical) and Stripe
    configuration and reachability (reported, not critical). Webhook signing
    is reported as ``degraded`` when no signing secret is configured.
    """
    checks = {
        "database": "unknown",
        "redis": "unknown",
        "stripe": "unknown",
        "webhook_signing": "enabled" if settings.stripe_webhook_secret else "degraded",
    }
    ready = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "connected"
    except Exception as exc:
        logger.error("database_health_check_failed", error=str(exc))
        checks["database"] = "disconnected"
        ready = False

    try:
        redis_client = aioredis.from_url(str(settings.redis_url), encoding="utf-8", decode_responses=True)
        await redis_client.ping()
        checks["redis"] = "connected"
        await redis_client.aclose()
    except Exception as exc:
        logger.error("redis_health_check_failed", error=str(exc))
        checks["redis"] = "disconnected"
        ready = False

    if not stripe_adapter.configured:
        checks["stripe"] = "not_configured"
    else:
        try:
            await stripe_adapter.check_connectivity()
            checks["stripe"] = "reachable"
        except ServiceError as exc:
            logger.warning("stripe_health_check_failed", error=exc.message)
            checks["stripe"] = "unreachable"

    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "ready": ready,
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
