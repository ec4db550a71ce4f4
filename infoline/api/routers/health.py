"""Health probes.

``/health`` and ``/health/live`` never touch a dependency. ``/health/ready``
pings the database, and the Celery broker when notifications are queued.
"""

import logging
from typing import Any, Callable, Dict

import redis
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from infoline import __version__
from infoline.api.deps import get_db
from infoline.core.approval.records import utcnow
from infoline.core.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

PROBE_TIMEOUT_SECONDS = 2


def _probe(name: str, ping: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    try:
        return {"status": "healthy", **ping()}
    except Exception as exc:
        logger.warning("Readiness check %s failed: %s", name, exc)
        return {"status": "unhealthy", "error": str(exc)}


def check_database(db: Session) -> Dict[str, Any]:
    def ping():
        db.execute(text("SELECT 1")).scalar()
        return {}
    return _probe("database", ping)


def check_redis(url: str) -> Dict[str, Any]:
    def ping():
        client = redis.from_url(
            url,
            socket_connect_timeout=PROBE_TIMEOUT_SECONDS,
            socket_timeout=PROBE_TIMEOUT_SECONDS,
        )
        try:
            client.ping()
            return {"version": client.info("server").get("redis_version", "unknown")}
        finally:
            client.close()
    return _probe("redis", ping)


def _respond(code: int, state: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content={"status": state, "timestamp": utcnow().isoformat(), **extra},
    )


@router.get("/health")
async def health_check():
    return {"status": "healthy", "version": __version__, "timestamp": utcnow().isoformat()}


@router.get("/health/live")
async def liveness_probe():
    """Answers as long as the process can serve requests."""
    return _respond(status.HTTP_200_OK, "alive")


@router.get("/health/ready")
async def readiness_probe(db: Session = Depends(get_db)):
    settings = get_settings()
    checks = {"database": check_database(db)}
    if settings.notification_transport == "queue":
        checks["redis"] = check_redis(settings.celery_broker)

    failed = [name for name, result in checks.items() if result["status"] != "healthy"]
    if failed:
        return _respond(status.HTTP_503_SERVICE_UNAVAILABLE, "not_ready", checks=checks, failed=failed)
    return _respond(status.HTTP_200_OK, "ready", checks=checks)
