"""
Background persistence for AppLogger(persist=True).

persist_log() only enqueues. A daemon thread drains the queue in
batches of up to 100 and hands every entry to each active backend.
"""

import queue
import sys
import threading
import time
from typing import Any, Dict, List, Optional
from .log_backends import get_active_backends, shutdown_all_backends

Entry = Dict[str, Any]


class LogPersistenceHandler:
    _instance: Optional["LogPersistenceHandler"] = None
    _instance_lock = threading.Lock()

    batch_size = 100

    def __init__(self, max_queue_size: int = 10_000) -> None:
        self._queue: "queue.Queue[Entry]" = queue.Queue(maxsize=max_queue_size)
        self._stopping = threading.Event()
        self._written = 0
        self._failed = 0
        self._write_seconds = 0.0
        self._worker = threading.Thread(
            target=self._run, name="LogPersistenceWorker", daemon=True
        )
        self._worker.start()

    @classmethod
    def instance(cls) -> "LogPersistenceHandler":
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def enqueue(self, entry: Entry) -> bool:
        """False when the queue is full; the entry is dropped and counted."""
        try:
            self._queue.put_nowait(entry)
        except queue.Full:
            self._failed += 1
            return False
        return True

    def _take_batch(self) -> List[Entry]:
        try:
            batch = [self._queue.get(timeout=0.5)]
        except queue.Empty:
            return []
        while len(batch) < self.batch_size:
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return batch

    def _run(self) -> None:
        while not (self._stopping.is_set() and self._queue.empty()):
            batch = self._take_batch()
            if not batch:
                continue
            started = time.perf_counter()
            try:
                for backend in get_active_backends():
                    self._failed += sum(not backend.write(entry) for entry in batch)
                self._written += len(batch)
            except Exception as e:
                # stderr, since logging from here would re-enter this queue
                print(f"LogPersistenceWorker error: {e}", file=sys.stderr)
                self._failed += len(batch)
            finally:
                self._write_seconds += time.perf_counter() - started
                for _ in batch:
                    self._queue.task_done()

    def get_metrics(self) -> Dict[str, Any]:
        avg = self._write_seconds / self._written if self._written else 0
        return {
            "total_logs": self._written,
            "failed_logs": self._failed,
            "queue_size": self._queue.qsize(),
            "avg_write_time_ms": avg * 1000,
            "worker_alive": self._worker.is_alive(),
        }

    def shutdown(self, timeout: float) -> None:
        self._stopping.set()
        self._worker.join(timeout=timeout)


def persist_log(entry: Entry) -> bool:
    return LogPersistenceHandler.instance().enqueue(entry)


def get_persistence_metrics() -> Dict[str, Any]:
    return LogPersistenceHandler.instance().get_metrics()


def shutdown_persistence(timeout: float = 5.0) -> None:
    """Drain what is queued (bounded by `timeout`), then close the backends."""
    handler = LogPersistenceHandler._instance
    if handler is not None:
        handler.shutdown(timeout)
    shutdown_all_backends(timeout)


__all__ = [
    "persist_log",
    "get_persistence_metrics",
    "shutdown_persistence",
]
