from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import redis

from bakery_pos.database import engine
from bakery_pos.utils.cache import cache_service

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "/",
    summary="Health check",
    description="Liveness check; does not touch the database."
)
def health_check():
    return {"status": "healthy"}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Report whether the registers can take orders."
)
def readiness_check(response: Response):
    """
    Checkout needs the database. Redis only backs the product cache and the
    low-stock task queue, so losing it degrades the service without
    stopping sales.
    """
    checks = {"database": True, "redis": True}

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        checks["database"] = False
        checks["database_error"] = str(e)

    try:
        cache_service.client.ping()
    except redis.RedisError as e:
        checks["redis"] = False
        checks["redis_error"] = str(e)

    if not checks["database"]:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        state = "not_ready"
    elif not checks["redis"]:
        state = "degraded"
    else:
        state = "ready"

    return {"status": state, "checks": checks}
