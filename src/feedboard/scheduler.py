from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class Timer(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_every(self, interval: float, callback: Callable[[], None]) -> Timer:
        ...

    def spawn(self, target: Callable[[], None], name: str) -> None:
        ...


class _RepeatingTimer(threading.Thread):
    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        super().__init__(daemon=True, name=f"timer-{interval:g}s")
        self.interval = interval
        self.callback = callback
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Timer callback failed")

    def cancel(self) -> None:
        self._stopped.set()


class ThreadScheduler:
    """Repeating timers and fire-and-forget work on daemon threads."""

    def call_every(self, interval: float, callback: Callable[[], None]) -> Timer:
        timer = _RepeatingTimer(interval, callback)
        timer.start()
        return timer

    def spawn(self, target: Callable[[], None], name: str) -> None:
        threading.Thread(target=target, name=name, daemon=True).start()
