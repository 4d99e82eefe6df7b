"""
Liveness, readiness and gateway breaker state for the load balancer and on-call.
"""
import redis
from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.services.circuit_breaker import get_breaker_states


router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok", "environment": settings.cashfree_env}


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)) -> dict:
    """
    Readiness probe - 503 unless both the order store and Redis answer.
    An open gateway breaker is reported but does not fail readiness: polls degrade to "pending".
    """
    checks = {"database": "ok", "redis": "ok"}
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        checks["database"] = str(e)
    try:
        redis.Redis.from_url(settings.redis_url, decode_responses=True).ping()
    except redis.RedisError as e:
        checks["redis"] = str(e)

    body = {"checks": checks, "breakers": get_breaker_states()}
    if any(v != "ok" for v in checks.values()):
        response.status_code = 503
        return {"status": "not_ready", **body}
    return {"status": "ready", **body}
