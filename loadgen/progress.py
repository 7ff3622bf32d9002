from __future__ import annotations

import logging
import sys
import threading
import time
from typing import Callable, TextIO

from .collector import RunStats, StatsCollector
from .config import PROGRESS_INTERVAL_S

LOGGER = logging.getLogger("loadgen.progress")


def format_progress(stats: RunStats, elapsed_s: int, duration_s: int) -> str:
    qps = stats.total_requests / elapsed_s if elapsed_s > 0 else 0.0
    return (
        f"\r[{elapsed_s}/{duration_s}s] Requests: {stats.total_requests} "
        f"| QPS: {qps:.2f} | Success: {stats.success_rate:.1f}%"
    )


class ProgressReporter:
    """Periodically write a one-line live summary while the run is active.

    Writes share ``output_lock`` with the final report. Once :meth:`stop`
    returns, no further progress line is written.
    """

    def __init__(
        self,
        collector: StatsCollector,
        duration_s: int,
        started_at: float,
        stream: TextIO | None = None,
        output_lock: threading.Lock | None = None,
        interval_s: float = PROGRESS_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._collector = collector
        self._duration_s = duration_s
        self._started_at = started_at
        self._stream = stream or sys.stdout
        self._output_lock = output_lock or threading.Lock()
        self._interval_s = interval_s
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.lines_written = 0

    def start(self) -> None:
        thread = threading.Thread(target=self._runner, name="loadgen-progress", daemon=True)
        thread.start()
        self._thread = thread

    def stop(self, timeout_s: float = 1.0) -> None:
        with self._output_lock:
            self._stop_event.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout_s)

    def elapsed_seconds(self) -> int:
        elapsed = int(self._clock() - self._started_at)
        return max(min(elapsed, self._duration_s), 0)

    def emit(self) -> bool:
        stats = self._collector.snapshot()
        line = format_progress(stats, self.elapsed_seconds(), self._duration_s)
        with self._output_lock:
            if self._stop_event.is_set():
                return False
            self._stream.write(line)
            self._stream.flush()
            self.lines_written += 1
        return True

    def _runner(self) -> None:
        while not self._stop_event.wait(self._interval_s):
            try:
                self.emit()
            except Exception:  # noqa: BLE001
                LOGGER.exception("failed to write progress line")


__all__ = ["ProgressReporter", "format_progress"]
