"""Weekly JSON-lines file backend."""
import json
import sys
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict
from common.scripts import get_week_date_range, get_project_root
from .base import LogBackend


class FileBackend(LogBackend):
    """
    Appends one JSON object per line to `<log_dir>/wkNN_<monday>--<sunday>.json`.

    Config:
        log_dir: target directory (default: <project_root>/logs)
    """

    def __init__(self, **config: Any):
        super().__init__(**config)

        self._log_dir = Path(config.get("log_dir") or get_project_root() / "logs")
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.Lock()

        self._total_writes = 0
        self._failed_writes = 0

    @property
    def name(self) -> str:
        return "file"

    def write(self, log_entry: Dict[str, Any]) -> bool:
        try:
            file_path = self._log_dir / self._get_filename(self._entry_date(log_entry))
            # default=str covers UUIDs, dates and enums in structured context
            payload = json.dumps(log_entry, ensure_ascii=False, default=str)

            with self._write_lock, file_path.open(mode="a", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")

            self._total_writes += 1
            return True

        except (OSError, TypeError, ValueError) as e:
            print(f"FileBackend write failed: {e}", file=sys.stderr)
            self._failed_writes += 1
            return False

    @staticmethod
    def _entry_date(log_entry: Dict[str, Any]) -> date:
        timestamp = log_entry.get("timestamp")
        if isinstance(timestamp, str):
            try:
                return datetime.fromisoformat(timestamp).date()
            except ValueError:
                pass
        return date.today()

    @staticmethod
    def _get_filename(log_date: date) -> str:
        week_start, week_end, week_number = get_week_date_range(log_date)
        return f"wk{week_number:02d}_{week_start.isoformat()}--{week_end.isoformat()}.json"

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "backend": self.name,
            "total_writes": self._total_writes,
            "failed_writes": self._failed_writes,
            "log_directory": str(self._log_dir),
        }


__all__ = ["FileBackend"]
