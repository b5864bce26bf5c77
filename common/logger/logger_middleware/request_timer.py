import time
from contextlib import contextmanager


class RequestTimer:
    """Accumulates named durations (ms) and counters for one request."""

    def __init__(self):
        self.timings: dict[str, float] = {}

    @contextmanager
    def capture(self, name: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            self.add(name, (time.perf_counter() - start) * 1000)

    def add(self, name: str, value: float) -> None:
        self.timings[name] = self.timings.get(name, 0) + value

    def increment(self, name: str) -> None:
        self.add(name, 1)

    def format_server_timing(self) -> str:
        # db;dur=10.50, sql;dur=4.20
        return ", ".join(
            f"{name};dur={dur:.2f}"
            for name, dur in self.timings.items()
            if name != "query_count"
        )


__all__ = ["RequestTimer"]
