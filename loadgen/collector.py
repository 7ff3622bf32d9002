from __future__ import annotations

import collections
import copy
import math
import threading
from dataclasses import dataclass, field

import pandas as pd

from .endpoints import HEALTH_ROUTE, ORDER_ROUTE
from .executor import RequestOutcome

DEFAULT_MAX_SAMPLES = 1_000_000
SAMPLE_COLUMNS = ["route", "status", "latency_ms", "succeeded"]


@dataclass
class RunStats:
    total_requests: int = 0
    total_successes: int = 0
    total_errors: int = 0
    health_check_count: int = 0
    order_count: int = 0
    sum_latency_ms: int = 0
    min_latency_ms: float = math.inf
    max_latency_ms: int = 0
    status_codes: dict[str, int] = field(default_factory=dict)
    route_attempts: dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_successes / self.total_requests * 100.0

    @property
    def average_latency_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.sum_latency_ms / self.total_requests

    @property
    def reported_min_latency_ms(self) -> int:
        if math.isinf(self.min_latency_ms):
            return 0
        return int(self.min_latency_ms)

    def apply(self, outcome: RequestOutcome) -> None:
        self.total_requests += 1
        self.sum_latency_ms += outcome.latency_ms
        self.min_latency_ms = min(self.min_latency_ms, outcome.latency_ms)
        self.max_latency_ms = max(self.max_latency_ms, outcome.latency_ms)

        label = outcome.status_label
        self.status_codes[label] = self.status_codes.get(label, 0) + 1
        self.route_attempts[outcome.route] = self.route_attempts.get(outcome.route, 0) + 1

        if outcome.succeeded:
            self.total_successes += 1
            if outcome.route == HEALTH_ROUTE:
                self.health_check_count += 1
            elif outcome.route == ORDER_ROUTE:
                self.order_count += 1
        else:
            self.total_errors += 1


class StatsCollector:
    """Thread-safe sink for request outcomes reported by every worker."""

    def __init__(self, max_samples: int = DEFAULT_MAX_SAMPLES) -> None:
        self._lock = threading.Lock()
        self._stats = RunStats()
        self._samples: collections.deque[tuple[str, str, int, bool]] = collections.deque(
            maxlen=max_samples
        )

    def record(self, outcome: RequestOutcome) -> None:
        with self._lock:
            self._stats.apply(outcome)
            self._samples.append(
                (outcome.route, outcome.status_label, outcome.latency_ms, outcome.succeeded)
            )

    def snapshot(self) -> RunStats:
        with self._lock:
            return copy.deepcopy(self._stats)

    def snapshot_with_samples(self) -> tuple[RunStats, pd.DataFrame]:
        """Counters and sample frame taken under the same lock."""
        with self._lock:
            stats = copy.deepcopy(self._stats)
            rows = list(self._samples)
        return stats, _samples_frame(rows)

    def build_dataframe(self) -> pd.DataFrame:
        with self._lock:
            rows = list(self._samples)
        return _samples_frame(rows)


def _samples_frame(rows: list[tuple[str, str, int, bool]]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=SAMPLE_COLUMNS)
    return pd.DataFrame(rows, columns=SAMPLE_COLUMNS)


__all__ = ["RunStats", "StatsCollector"]
