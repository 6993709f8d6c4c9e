"""
Health Check Endpoints.

Provides liveness, readiness, and detailed health checks.

Endpoints:
- /health: Liveness check (process running)
- /health/ready: Readiness check (note store reachable)
- /health/detailed: Component status and application identity (for debugging)
"""

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from modules.backend.core.config import get_app_config
from modules.backend.core.database import get_session_factory
from modules.backend.core.logging import get_logger
from modules.backend.core.utils import utc_now

router = APIRouter()
logger = get_logger(__name__)


async def check_database() -> dict[str, Any]:
    """
    Check database connectivity.

    Returns:
        Dict with status, latency, and optional error type
    """
    timeout = get_app_config().application.timeouts.database
    start = utc_now()
    try:
        async with asyncio.timeout(timeout):
            async with get_session_factory()() as session:
                await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(
            "Database health check failed",
            extra={"error_type": type(e).__name__},
        )
        return {"status": "unhealthy", "error": type(e).__name__}

    latency_ms = int((utc_now() - start).total_seconds() * 1000)
    return {"status": "healthy", "latency_ms": latency_ms}


@router.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns 200 if the process is running.
    No dependency checks - this endpoint should always respond quickly.
    """
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    """
    Readiness check.

    Returns 200 if ready to serve traffic, 503 if the note store
    cannot be reached.
    """
    checks = {"database": await check_database()}

    unhealthy_checks = [
        name for name, check in checks.items()
        if check.get("status") != "healthy"
    ]

    if unhealthy_checks:
        logger.warning(
            "Readiness check failed",
            extra={"unhealthy": unhealthy_checks},
        )
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "checks": checks,
                "timestamp": utc_now().isoformat(),
            },
        )

    return {
        "status": "healthy",
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health_check() -> dict[str, Any]:
    """
    Detailed health check.

    Returns dependency checks plus application identity. Never returns
    503; callers read the status field.
    """
    checks = {"database": await check_database()}

    app_settings = get_app_config().application
    app_info = {
        "name": app_settings.name,
        "env": app_settings.environment,
        "debug": app_settings.debug,
        "version": app_settings.version,
    }

    statuses = [check.get("status") for check in checks.values()]
    overall_status = "healthy" if all(s == "healthy" for s in statuses) else "unhealthy"

    return {
        "status": overall_status,
        "application": app_info,
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }
