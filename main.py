# main.py
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from common.api_error import AppError, ConfigurationError, ValidationError
from common.config import get_config, initialize_config
from common.logger import get_app_logger
from common.logger.persistence import shutdown_persistence
from common.logger.logger_middleware import RequestLoggingMiddleware
from clinic.api.system_router import system_router
from clinic.db import DbManager

load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    # structlog is configured by initialize_config, so stdout is all there is
    print(f"FATAL: Configuration error:\n{e}")
    sys.exit(1)

config = get_config()
logger = get_app_logger(name=__name__, track_timing=True, persist=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.database is None:
        raise RuntimeError("Database configuration required (set DB_DRIVER)")

    logger.info("Database configuration", **config.database.to_dict_safe())
    db_manager = DbManager.from_config(config.database)
    await db_manager.verify_connection()

    try:
        await db_manager.verify_migrations_current()
    except RuntimeError as e:
        logger.error("Migration check failed", error=str(e))
        logger.error("Run 'alembic upgrade head' before starting the API")
        await db_manager.dispose()
        raise
    logger.info("Schema is at the latest migration")

    app.state.db_manager = db_manager
    yield

    logger.info("Shutting down, disposing database engine")
    await db_manager.dispose()
    shutdown_persistence()


app = FastAPI(
    title=config.app_title,
    version=config.app_version,
    description=f"Clinic booking API ({config.environment})",
    lifespan=lifespan,
)
app.add_middleware(
    RequestLoggingMiddleware,
    # Server-Timing and X-Response-Time leak query counts, keep them off in prod
    expose_performance_headers=not config.is_production,
    slow_query_threshold=(
        config.database.slow_query_threshold if config.database else 500.0
    ),
)
app.include_router(system_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Every AppError becomes {error, message, timestamp[, field]}."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request failed",
        path=request.url.path,
        method=request.method,
        error_code=exc.code,
        message=exc.message,
    )

    body: dict[str, Any] = {
        "error": exc.code,
        "message": exc.message,
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
    }
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=body)


__all__ = ["app", "config"]
