"""
Shapes of the per-request log line written by RequestLoggingMiddleware.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, computed_field
from .request_timer import RequestTimer

# More statements than this in one request usually means a lazy load in a loop
N_PLUS_ONE_QUERY_COUNT = 10
HIGH_QUERY_COUNT = 5


class PerformanceBreakdown(BaseModel):
    total_ms: float
    app_logic_ms: float
    db_session_total_ms: float
    sql_execution_total_ms: float
    query_count: int = 0

    @classmethod
    def from_timer(cls, timer: RequestTimer, total_ms: float) -> "PerformanceBreakdown":
        def timing(name: str) -> float:
            return round(timer.timings.get(name, 0), 2)

        return cls(
            total_ms=round(total_ms, 2),
            app_logic_ms=timing("app"),
            db_session_total_ms=timing("db"),
            sql_execution_total_ms=timing("sql"),
            query_count=int(timer.timings.get("query_count", 0)),
        )

    @computed_field
    def db_overhead_ms(self) -> float:
        """Pool checkout and commit time, i.e. session time not spent in SQL."""
        return round(self.db_session_total_ms - self.sql_execution_total_ms, 2)


class RequestMetadata(BaseModel):
    method: str
    path: str
    status_code: int = Field(..., ge=100, le=599)
    duration_ms: float = Field(..., ge=0)

    model_config = {"frozen": True}


class RequestDetails(BaseModel):
    """Who asked for what. Off when the middleware runs with log_details=False."""

    request_id: Optional[str] = None
    client_host: Optional[str] = None
    user_agent: Optional[str] = None
    actor_role: Optional[str] = Field(None, description="X-Actor-Role header")
    actor_id: Optional[str] = Field(None, description="X-Actor-Id header")
    query_params: Optional[Dict[str, Any]] = None
    path_params: Optional[Dict[str, Any]] = None
    content_length: Optional[int] = Field(None, ge=0)

    model_config = {"frozen": True}


class RequestLogEntry(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    metadata: RequestMetadata
    details: Optional[RequestDetails] = None
    performance: Optional[PerformanceBreakdown] = None
    slow_request_ms: float = Field(1000.0, exclude=True)
    slow_query_ms: float = Field(500.0, exclude=True)

    model_config = {"frozen": True}

    @computed_field
    def is_slow(self) -> bool:
        return self.metadata.duration_ms > self.slow_request_ms

    @computed_field
    def is_error(self) -> bool:
        return self.metadata.status_code >= 500

    @computed_field
    def optimization_warnings(self) -> List[str]:
        perf = self.performance
        if perf is None:
            return []

        found: List[str] = []
        if perf.query_count > N_PLUS_ONE_QUERY_COUNT:
            found.append(f"N+1_QUERY_SUSPECTED: {perf.query_count} queries")
        elif perf.query_count > HIGH_QUERY_COUNT:
            found.append(f"HIGH_QUERY_COUNT: {perf.query_count} queries")

        if perf.sql_execution_total_ms > self.slow_query_ms:
            found.append(f"SLOW_SQL: {perf.sql_execution_total_ms:.0f}ms executing SQL")

        # a high DB share is normal for fast requests
        total = self.metadata.duration_ms
        if total > 200 and perf.db_session_total_ms / total > 0.8:
            found.append(
                f"DB_DOMINATED_REQUEST: {perf.db_session_total_ms / total:.0%} of {total:.0f}ms"
            )
        return found


__all__ = [
    "RequestMetadata",
    "RequestDetails",
    "RequestLogEntry",
    "PerformanceBreakdown",
]
