from contextvars import ContextVar
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from common.logger.logger_middleware.request_timer import RequestTimer

# Set by RequestLoggingMiddleware for the lifetime of one request
request_timer_context_var: "ContextVar[Optional[RequestTimer]]" = ContextVar(
    "request_timer", default=None
)

__all__ = ["request_timer_context_var"]
