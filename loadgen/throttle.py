from __future__ import annotations

import math
import threading


def throttle_delay_ms(qps: int, concurrency: int) -> int:
    """Per-worker pause that spreads ``qps`` evenly over ``concurrency`` workers."""
    if qps < 1 or concurrency < 1:
        raise ValueError("qps and concurrency must be >= 1")
    return math.floor(1000 / qps * concurrency)


class Throttle:
    """Fixed pause taken by a worker after every completed request.

    The pause does not subtract the request latency, so a target whose
    latency approaches the delay receives fewer than ``qps`` requests per
    second in aggregate.
    """

    def __init__(self, qps: int, concurrency: int) -> None:
        self.delay_ms = throttle_delay_ms(qps, concurrency)

    @property
    def delay_s(self) -> float:
        return self.delay_ms / 1000.0

    def wait(self, stop_event: threading.Event) -> bool:
        """Sleep for the delay; return True if ``stop_event`` fired meanwhile."""
        if self.delay_ms <= 0:
            return stop_event.is_set()
        return stop_event.wait(timeout=self.delay_s)


__all__ = ["Throttle", "throttle_delay_ms"]
