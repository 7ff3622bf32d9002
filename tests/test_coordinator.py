import signal
import threading

import pytest

from loadgen.coordinator import RunState, ShutdownCoordinator


def test_finalize_runs_once():
    calls = []
    coordinator = ShutdownCoordinator(on_finalize=calls.append)

    assert coordinator.state is RunState.RUNNING
    assert coordinator.finalize("completed") is True
    assert coordinator.finalize("SIGINT") is False
    assert calls == ["completed"]
    assert coordinator.state is RunState.FINISHED
    assert coordinator.finalize_reason == "completed"


def test_state_is_finishing_while_callback_runs():
    observed = []
    coordinator = None

    def on_finalize(reason):
        observed.append(coordinator.state)

    coordinator = ShutdownCoordinator(on_finalize=on_finalize)
    coordinator.finalize("completed")
    assert observed == [RunState.FINISHING]


def test_concurrent_finalize_reports_once():
    calls = []
    release = threading.Event()

    def on_finalize(reason):
        calls.append(reason)
        release.wait(1.0)

    coordinator = ShutdownCoordinator(on_finalize=on_finalize)
    start = threading.Barrier(10)
    results = []

    def trigger(n):
        start.wait()
        results.append(coordinator.finalize("completed" if n % 2 else "SIGINT"))

    threads = [threading.Thread(target=trigger, args=(n,)) for n in range(10)]
    for thread in threads:
        thread.start()
    release.set()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert results.count(True) == 1
    assert coordinator.state is RunState.FINISHED


def test_failed_callback_still_finishes():
    def on_finalize(reason):
        raise RuntimeError("boom")

    coordinator = ShutdownCoordinator(on_finalize=on_finalize)
    with pytest.raises(RuntimeError):
        coordinator.finalize("completed")
    assert coordinator.state is RunState.FINISHED
    assert coordinator.finalize("completed") is False


def test_cancel_keeps_first_reason():
    coordinator = ShutdownCoordinator(on_finalize=lambda reason: None)
    assert coordinator.cancelled is False
    coordinator.cancel("SIGINT")
    coordinator.cancel("SIGTERM")
    assert coordinator.cancelled is True
    assert coordinator.cancel_event.is_set()
    assert coordinator.cancel_reason == "SIGINT"


def test_signal_is_bridged_to_cancel():
    coordinator = ShutdownCoordinator(on_finalize=lambda reason: None)
    previous = signal.getsignal(signal.SIGINT)

    with coordinator.handle_signals():
        signal.raise_signal(signal.SIGINT)
        assert coordinator.cancel_event.wait(1.0)

    assert coordinator.cancel_reason == "SIGINT"
    assert signal.getsignal(signal.SIGINT) is previous


def test_signal_handlers_skipped_off_main_thread():
    coordinator = ShutdownCoordinator(on_finalize=lambda reason: None)
    previous = signal.getsignal(signal.SIGTERM)
    seen = []

    def body():
        with coordinator.handle_signals():
            seen.append(signal.getsignal(signal.SIGTERM))

    thread = threading.Thread(target=body)
    thread.start()
    thread.join()
    assert seen == [previous]
