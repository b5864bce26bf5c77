"""
Builds the persistence backends named in LOG_BACKENDS (default "file").
LOG_DIR is handed to the file backend.
"""

import sys
import threading
from typing import Any, Dict, List, Type
from common.config import get_env, get_list_env
from .base import LogBackend
from .file_backend import FileBackend

_BACKENDS: Dict[str, Type[LogBackend]] = {
    "file": FileBackend,
}

_active: List[LogBackend] = []
_ready = False
_lock = threading.Lock()


def _build(name: str) -> None:
    backend_class = _BACKENDS.get(name)
    if backend_class is None:
        print(
            f"Warning: Unknown log backend '{name}'. Available: {', '.join(_BACKENDS)}",
            file=sys.stderr,
        )
        return
    try:
        _active.append(backend_class(log_dir=get_env("LOG_DIR")))
    except OSError as e:
        print(f"Failed to initialize log backend '{name}': {e}", file=sys.stderr)


def get_active_backends() -> List[LogBackend]:
    global _ready

    if _ready:
        return _active
    with _lock:
        if not _ready:
            for name in get_list_env("LOG_BACKENDS", "file"):
                _build(name)
            if not _active:
                _active.append(FileBackend(log_dir=get_env("LOG_DIR")))
            _ready = True
    return _active


def shutdown_all_backends(timeout: float = 5.0) -> None:
    for backend in _active:
        backend.shutdown(timeout)


def get_all_metrics() -> Dict[str, Any]:
    return {backend.name: backend.get_metrics() for backend in get_active_backends()}


__all__ = [
    "get_active_backends",
    "shutdown_all_backends",
    "get_all_metrics",
]
