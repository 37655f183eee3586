"""
Cancelable per-identity timers.

Timers are logical: they hold remaining seconds and are advanced one
second at a time by the periodic driver. Each identity owns exactly one
timer of each kind.
"""

from __future__ import annotations

from ..errors import TimerConflictError


class _Timer:
    def __init__(self, name: str):
        self.name = name
        self.remaining = -1
        self.active = False
        self.starts = 0

    def start(self, seconds: int) -> None:
        if self.active:
            raise TimerConflictError(self.name, self.remaining)
        self.remaining = seconds
        self.active = True
        self.starts += 1

    def cancel(self) -> None:
        self.active = False

    def __repr__(self) -> str:
        state = "active" if self.active else "idle"
        return f"{type(self).__name__}({self.name!r}, {state}, remaining={self.remaining})"


class CountdownTimer(_Timer):
    """Per-second countdown. Stays active at zero until canceled."""

    def tick(self) -> int:
        if self.active and self.remaining > 0:
            self.remaining -= 1
        return self.remaining


class DeadlineTimer(_Timer):
    """One-shot deadline. Deactivates itself when it fires."""

    def tick(self) -> bool:
        """Advance one second. Returns True exactly once, when the deadline elapses."""
        if not self.active:
            return False
        self.remaining -= 1
        if self.remaining <= 0:
            self.remaining = 0
            self.active = False
            return True
        return False
