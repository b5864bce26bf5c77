"""Base class for log persistence backends."""

from abc import ABC, abstractmethod
from typing import Any, Dict


class LogBackend(ABC):
    """
    A destination for persisted log entries.

    Entries always carry `timestamp` (ISO string), `level`, `logger` and
    `message`; any structured context follows as extra keys.
    """

    def __init__(self, **config: Any):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for identification."""

    @abstractmethod
    def write(self, log_entry: Dict[str, Any]) -> bool:
        """Write one entry. Returns False instead of raising on failure."""

    @abstractmethod
    def get_metrics(self) -> Dict[str, Any]:
        """Backend-specific health/perf counters."""

    def shutdown(self, timeout: float = 5.0) -> None:
        """Flush and release resources. No-op by default."""


__all__ = ["LogBackend"]
