"""Periodic driver that ticks every tracked identity once per interval."""

from __future__ import annotations

import threading
from typing import Callable

from loguru import logger


class Ticker:
    """Calls ``on_tick`` every ``interval`` seconds on a daemon thread."""

    def __init__(self, on_tick: Callable[[], None], interval: float = 1.0):
        self.on_tick = on_tick
        self.interval = max(0.01, float(interval))
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="edge-status-ticker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.on_tick()
            except Exception:
                logger.exception("Tick handler failed")
            self.ticks += 1
