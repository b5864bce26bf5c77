"""
Application logger: structlog for the console, optional persistence to
the LOG_BACKENDS sinks.

    logger = get_app_logger(__name__)
    logger.info("Slot reserved", booking_id=booking_id)

    audit = get_app_logger(__name__, persist=True).bind(doctor_id=doctor_id)
    audit.warning("Slot conflict", booking_time="09:00")
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import structlog
from common.config.structlog_config import get_logger as _get_structlog_logger
from common.logger.persistence import persist_log


@dataclass
class TimingStats:
    """Latency of the log calls themselves, in seconds."""

    total_calls: int = 0
    total_time: float = 0.0
    max_time: float = 0.0
    min_time: float = float("inf")

    def record(self, elapsed: float) -> None:
        self.total_calls += 1
        self.total_time += elapsed
        self.max_time = max(self.max_time, elapsed)
        self.min_time = min(self.min_time, elapsed)

    def get_stats(self) -> Dict[str, Any]:
        if not self.total_calls:
            return {"total_calls": 0, "avg_time_ms": 0, "max_time_ms": 0, "min_time_ms": 0}
        return {
            "total_calls": self.total_calls,
            "avg_time_ms": self.total_time / self.total_calls * 1000,
            "max_time_ms": self.max_time * 1000,
            "min_time_ms": self.min_time * 1000,
        }


class AppLogger:
    """
    Wraps a structlog BoundLogger that is looked up on first use, so
    module-level loggers may exist before initialize_config() has run.
    Loggers returned by bind() share the parent's TimingStats.
    """

    def __init__(
        self,
        name: str = "app",
        persist: bool = False,
        track_timing: bool = False,
        context: Optional[Dict[str, Any]] = None,
        timing_stats: Optional[TimingStats] = None,
    ) -> None:
        self._name = name
        self._persist = persist
        self._context: Dict[str, Any] = dict(context or {})
        self._structlog: Optional[structlog.BoundLogger] = None
        if timing_stats is None and track_timing:
            timing_stats = TimingStats()
        self._timing_stats = timing_stats

    @property
    def _logger(self) -> structlog.BoundLogger:
        if self._structlog is None:
            self._structlog = _get_structlog_logger(self._name)
        return self._structlog

    def bind(self, **context: Any) -> "AppLogger":
        return AppLogger(
            name=self._name,
            persist=self._persist,
            context={**self._context, **context},
            timing_stats=self._timing_stats,
        )

    def _persisted_entry(self, level: str, msg: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        entry = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "level": level.upper(),
            "logger": self._name,
            "message": msg,
        }
        entry.update((k, v) for k, v in fields.items() if k != "exc_info")
        return entry

    def _log(self, level: str, msg: str, **kwargs: Any) -> None:
        started = time.perf_counter()
        fields = {**self._context, **kwargs}
        try:
            getattr(self._logger, level)(msg, **fields)
            if self._persist:
                persist_log(self._persisted_entry(level, msg, fields))
        finally:
            if self._timing_stats is not None:
                self._timing_stats.record(time.perf_counter() - started)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log("debug", msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log("info", msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log("warning", msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log("error", msg, **kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        self._log("critical", msg, **kwargs)

    def get_timing_stats(self) -> Dict[str, Any]:
        if self._timing_stats is None:
            return {"error": "Timing tracking not enabled"}
        return self._timing_stats.get_stats()


def get_app_logger(
    name: str = "app", persist: bool = False, track_timing: bool = False
) -> AppLogger:
    """
    Args:
        name: structlog logger name, usually __name__
        persist: also queue every entry for the LOG_BACKENDS sinks
        track_timing: keep latency stats, exposed on /metrics
    """
    return AppLogger(name=name, persist=persist, track_timing=track_timing)


# Module-wide logger for code that has no better name (no persistence)
logger = get_app_logger()

__all__ = ["logger", "AppLogger", "get_app_logger"]
