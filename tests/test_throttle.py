import threading
import time

import pytest

from loadgen.throttle import Throttle, throttle_delay_ms


@pytest.mark.parametrize(
    "qps, concurrency, expected",
    [
        (20, 10, 500),
        (1, 1, 1000),
        (3, 1, 333),
        (7, 3, 428),
        (100, 20, 200),
        (2000, 1, 0),
    ],
)
def test_delay_is_floored_share_of_aggregate_interval(qps, concurrency, expected):
    assert throttle_delay_ms(qps, concurrency) == expected
    assert Throttle(qps, concurrency).delay_ms == expected


@pytest.mark.parametrize("qps, concurrency", [(0, 1), (1, 0), (-5, 2)])
def test_invalid_inputs_rejected(qps, concurrency):
    with pytest.raises(ValueError):
        throttle_delay_ms(qps, concurrency)


def test_wait_sleeps_for_delay():
    throttle = Throttle(qps=10, concurrency=1)
    started = time.monotonic()
    stopped = throttle.wait(threading.Event())
    assert stopped is False
    assert time.monotonic() - started >= 0.09


def test_wait_is_interrupted_by_stop_event():
    throttle = Throttle(qps=1, concurrency=10)
    stop = threading.Event()
    threading.Timer(0.05, stop.set).start()
    started = time.monotonic()
    assert throttle.wait(stop) is True
    assert time.monotonic() - started < 2.0


def test_zero_delay_returns_immediately():
    throttle = Throttle(qps=5000, concurrency=1)
    assert throttle.wait(threading.Event()) is False
    stop = threading.Event()
    stop.set()
    assert throttle.wait(stop) is True
