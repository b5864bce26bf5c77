from datetime import datetime, timezone
from typing import Any, Optional
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field
from common.config import get_config, is_configured
from common.logger import get_app_logger
from common.logger.log_backends import get_all_metrics
from common.logger.persistence import get_persistence_metrics
from clinic.db import DbManager

logger = get_app_logger(name=__name__, track_timing=True)

system_router = APIRouter(tags=["system"])


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="Current system health status")
    timestamp: datetime = Field(..., description="Server time in ISO 8601 format")
    version: str
    logging_configured: bool
    log_level: str
    database: Optional[dict[str, Any]] = Field(
        None, description="Result of a SELECT 1 round trip"
    )


class ErrorResponse(BaseModel):
    error: str
    timestamp: datetime


def _db_manager(request: Request) -> Optional[DbManager]:
    return getattr(request.app.state, "db_manager", None)


def _fail(status_code: int, message: str) -> HTTPException:
    err = ErrorResponse(error=message, timestamp=datetime.now(tz=timezone.utc))
    return HTTPException(status_code=status_code, detail=err.model_dump(mode="json"))


@system_router.get(
    "/health",
    response_model=HealthCheckResponse,
    responses={
        503: {"description": "Database unreachable", "model": ErrorResponse},
        500: {"description": "Unexpected server error", "model": ErrorResponse},
    },
)
async def check_health(request: Request) -> HealthCheckResponse:
    config = get_config()
    db_manager = _db_manager(request)

    try:
        database = await db_manager.health_check() if db_manager else None
    except Exception as e:
        logger.critical("Health check crashed", exc_info=True, error=str(e))
        raise _fail(500, f"Unexpected error: {e}")

    if database is not None and not database["healthy"]:
        logger.error("Database unhealthy", endpoint="/health", **database)
        raise _fail(503, "database unavailable")

    return HealthCheckResponse(
        status="Healthy",
        timestamp=datetime.now(tz=timezone.utc),
        version=config.app_version,
        logging_configured=is_configured(),
        log_level=str(config.logging.level),
        database=database,
    )


@system_router.get("/metrics")
async def metrics(request: Request) -> dict[str, Any]:
    """Logger timings, persistence and backend counters, pool settings."""
    db_manager = _db_manager(request)
    return {
        "logger": logger.get_timing_stats(),
        "persistence": get_persistence_metrics(),
        "backends": get_all_metrics(),
        "database": db_manager.get_config_snapshot() if db_manager else None,
    }


__all__ = ["system_router"]
