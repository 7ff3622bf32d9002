from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .config import RunConfig
from .endpoints import select_endpoint
from .executor import RequestExecutor, RequestOutcome
from .throttle import Throttle

LOGGER = logging.getLogger("loadgen.load")

ExecutorFactory = Callable[[RunConfig], RequestExecutor]


@dataclass
class LoadStatistics:
    produced: int
    started_at: float
    finished_at: float

    @property
    def duration_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)

    @property
    def throughput_per_second(self) -> float:
        if self.duration_s == 0:
            return 0.0
        return self.produced / self.duration_s


def default_executor_factory(config: RunConfig) -> RequestExecutor:
    return RequestExecutor(config.target_url)


class LoadGenerator:
    """Pool of request loops sharing a single deadline.

    Each worker thread owns its own executor and random source and reports
    every outcome through ``collector_callback``; nothing else is shared.
    """

    def __init__(
        self,
        config: RunConfig,
        collector_callback: Callable[[RequestOutcome], None],
        executor_factory: ExecutorFactory = default_executor_factory,
        rng_factory: Callable[[int], random.Random] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._collector_callback = collector_callback
        self._executor_factory = executor_factory
        self._rng_factory = rng_factory or (lambda worker_id: random.Random())
        self._clock = clock
        self._throttle = Throttle(config.qps, config.concurrency)
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._produced_lock = threading.Lock()
        self._produced = 0
        self.started_at: float | None = None
        self.deadline: float | None = None
        self.finished_at: float | None = None

    @property
    def throttle(self) -> Throttle:
        return self._throttle

    @property
    def produced(self) -> int:
        with self._produced_lock:
            return self._produced

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("LoadGenerator already started")
        self.started_at = self._clock()
        self.deadline = self.started_at + self._config.duration_seconds
        LOGGER.info(
            "Starting %d worker(s), throttle delay %d ms",
            self._config.concurrency,
            self._throttle.delay_ms,
        )
        for worker_id in range(self._config.concurrency):
            thread = threading.Thread(
                target=self._worker,
                args=(worker_id,),
                name=f"loadgen-worker-{worker_id}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

    def wait(self, timeout_s: float | None = None) -> bool:
        """Block until every worker has exited; return True once drained."""
        end = None if timeout_s is None else self._clock() + timeout_s
        for thread in self._threads:
            remaining = None if end is None else max(end - self._clock(), 0.0)
            thread.join(timeout=remaining)
            if thread.is_alive():
                return False
        if self.finished_at is None:
            self.finished_at = self._clock()
        return True

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> LoadStatistics:
        self.start()
        self.wait()
        return self.statistics()

    def statistics(self) -> LoadStatistics:
        started_at = self.started_at if self.started_at is not None else self._clock()
        finished_at = self.finished_at if self.finished_at is not None else self._clock()
        return LoadStatistics(
            produced=self.produced,
            started_at=started_at,
            finished_at=finished_at,
        )

    def _worker(self, worker_id: int) -> None:
        executor = self._executor_factory(self._config)
        rng = self._rng_factory(worker_id)
        try:
            while self._clock() < self.deadline and not self._stop_event.is_set():
                spec = select_endpoint(self._config.endpoint, rng)
                outcome = executor.execute(spec)
                self._collector_callback(outcome)
                with self._produced_lock:
                    self._produced += 1
                if self._throttle.wait(self._stop_event):
                    break
        except Exception:  # noqa: BLE001
            LOGGER.exception("worker %d failed", worker_id)
        finally:
            executor.close()
        LOGGER.debug("worker %d exited", worker_id)


__all__ = ["LoadGenerator", "LoadStatistics", "default_executor_factory"]
