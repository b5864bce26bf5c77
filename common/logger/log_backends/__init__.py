"""
Log persistence backends, selected with LOG_BACKENDS (comma-separated).
"""

from .base import LogBackend
from .file_backend import FileBackend
from .registry import (
    get_active_backends,
    get_all_metrics,
    shutdown_all_backends,
)

__all__ = [
    "LogBackend",
    "FileBackend",
    "get_active_backends",
    "get_all_metrics",
    "shutdown_all_backends",
]
