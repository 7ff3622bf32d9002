from __future__ import annotations

import contextlib
import enum
import logging
import signal
import threading
from typing import Callable, Iterator

LOGGER = logging.getLogger("loadgen.coordinator")

DEFAULT_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class RunState(enum.Enum):
    RUNNING = "running"
    FINISHING = "finishing"
    FINISHED = "finished"


class ShutdownCoordinator:
    """Ends a run exactly once, on deadline or on external cancellation.

    ``cancel`` only flips an event, so it is safe to call from a signal
    handler. ``finalize`` runs ``on_finalize`` for the first caller and is a
    no-op for every later one.
    """

    def __init__(self, on_finalize: Callable[[str], None]) -> None:
        self._on_finalize = on_finalize
        self._lock = threading.Lock()
        self._state = RunState.RUNNING
        self._cancel_event = threading.Event()
        self.cancel_reason: str | None = None
        self.finalize_reason: str | None = None

    @property
    def state(self) -> RunState:
        with self._lock:
            return self._state

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._cancel_event.is_set():
            self.cancel_reason = reason
        self._cancel_event.set()

    def finalize(self, reason: str) -> bool:
        with self._lock:
            if self._state is not RunState.RUNNING:
                LOGGER.debug("finalize(%s) ignored, run is %s", reason, self._state.value)
                return False
            self._state = RunState.FINISHING
            self.finalize_reason = reason
        LOGGER.info("Finalizing run (%s)", reason)
        try:
            self._on_finalize(reason)
        finally:
            with self._lock:
                self._state = RunState.FINISHED
        return True

    @contextlib.contextmanager
    def handle_signals(
        self, signals: tuple[signal.Signals, ...] = DEFAULT_SIGNALS
    ) -> Iterator[None]:
        """Route ``signals`` to :meth:`cancel` for the duration of the block.

        Handlers can only be installed from the main thread; elsewhere the
        block runs without them.
        """
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = {}

        def handler(signum, frame) -> None:
            self.cancel(signal.Signals(signum).name)

        for sig in signals:
            previous[sig] = signal.signal(sig, handler)
        try:
            yield
        finally:
            for sig, old in previous.items():
                signal.signal(sig, old)


__all__ = ["RunState", "ShutdownCoordinator"]
