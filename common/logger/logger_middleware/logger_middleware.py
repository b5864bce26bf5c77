"""
One structured log line per HTTP request, plus optional Server-Timing.

    app.add_middleware(
        RequestLoggingMiddleware,
        expose_performance_headers=True,
        slow_query_threshold=500,
    )
"""

import time
import uuid
from typing import Awaitable, Callable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from common.context_vars import request_timer_context_var
from ..logger import get_app_logger
from .middleware_types import (
    PerformanceBreakdown,
    RequestDetails,
    RequestLogEntry,
    RequestMetadata,
)
from .request_timer import RequestTimer


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Installs a RequestTimer in request_timer_context_var while the request
    runs. DbManager cursor events and get_db add "sql", "query_count" and
    "db" to it; the middleware itself records "app".
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        expose_performance_headers: bool = False,
        log_details: bool = True,
        slow_request_threshold: float = 1000.0,
        slow_query_threshold: float = 500.0,
        logger_name: Optional[str] = None,
    ):
        super().__init__(app)
        self.expose_performance_headers = expose_performance_headers
        self.log_details = log_details
        self.slow_request_threshold = slow_request_threshold
        self.slow_query_threshold = slow_query_threshold
        self.logger = get_app_logger(
            name=logger_name or __name__, persist=True, track_timing=True
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        timer = RequestTimer()
        token = request_timer_context_var.set(timer)
        started = time.perf_counter()
        try:
            with timer.capture("app"):
                response = await call_next(request)
        finally:
            request_timer_context_var.reset(token)
        total_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Request-ID"] = request_id
        if self.expose_performance_headers:
            response.headers["Server-Timing"] = (
                f"{timer.format_server_timing()}, total;dur={total_ms:.2f}"
            )

        entry = RequestLogEntry(
            metadata=RequestMetadata(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(total_ms, 2),
            ),
            details=self._details(request, response, request_id),
            performance=PerformanceBreakdown.from_timer(timer, total_ms),
            slow_request_ms=self.slow_request_threshold,
            slow_query_ms=self.slow_query_threshold,
        )
        self._emit(entry)
        return response

    def _details(
        self, request: Request, response: Response, request_id: str
    ) -> Optional[RequestDetails]:
        if not self.log_details:
            return None
        headers = request.headers
        return RequestDetails(
            request_id=request_id,
            client_host=request.client.host if request.client else None,
            user_agent=headers.get("user-agent"),
            actor_role=headers.get("x-actor-role"),
            actor_id=headers.get("x-actor-id"),
            query_params=dict(request.query_params) or None,
            path_params=request.path_params or None,
            content_length=int(response.headers.get("content-length", 0)) or None,
        )

    def _emit(self, entry: RequestLogEntry) -> None:
        fields = entry.model_dump(mode="json", exclude_none=True)
        status = entry.metadata.status_code

        if entry.is_error:
            self.logger.error("Request failed with server error", **fields)
        elif entry.is_slow:
            self.logger.warning(
                f"Slow request ({entry.metadata.duration_ms}ms)", **fields
            )
        elif status >= 400:
            self.logger.warning("Request failed with client error", **fields)
        else:
            self.logger.info("Request completed", **fields)


__all__ = [
    "RequestLoggingMiddleware",
]
