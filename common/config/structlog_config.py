"""
Process-wide structlog setup.

configure_structlog() runs once per process from initialize_config().
uvicorn reload and worker processes each get their own call, so the
guard below is keyed by pid rather than a plain flag.
"""
import os
import sys
import threading
from typing import Any, List, Optional, Tuple
import structlog
from rich.traceback import install as install_rich_traceback

install_rich_traceback(show_locals=False, width=None, extra_lines=3)

_lock = threading.Lock()
# (pid, level) of the last successful configure_structlog() call
_configured_as: Optional[Tuple[int, int]] = None

_QUIET_TRACEBACK_MODULES = ["starlette", "uvicorn", "fastapi", "sqlalchemy"]


def _processors(json_logs: bool) -> List[Any]:
    chain: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        return chain + [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return chain + [
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.RichTracebackFormatter(
                show_locals=False, width=None, suppress=_QUIET_TRACEBACK_MODULES
            ),
        ),
    ]


def configure_structlog(log_level: int, json_logs: bool = False) -> None:
    """
    Install the processor chain and level filter for this process.

    Production renders one JSON object per line; elsewhere the console
    renderer with rich tracebacks is used. Calling again with the same
    level is a no-op, a different level raises RuntimeError.
    """
    global _configured_as

    with _lock:
        if is_configured():
            current_level = _configured_as[1]
            if current_level == log_level:
                return
            raise RuntimeError(
                f"structlog already configured in this process at level "
                f"{current_level}, refusing to switch to {log_level}"
            )

        structlog.configure(
            processors=_processors(json_logs),
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
            cache_logger_on_first_use=True,
        )
        _configured_as = (os.getpid(), log_level)


def is_configured() -> bool:
    return _configured_as is not None and _configured_as[0] == os.getpid()


def get_logger(name: str = "app") -> structlog.BoundLogger:
    if not is_configured():
        raise RuntimeError(
            "structlog not configured. Call initialize_config() at startup."
        )
    return structlog.get_logger(name)


__all__ = [
    "configure_structlog",
    "get_logger",
    "is_configured",
]
