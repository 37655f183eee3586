"""
Per-identity MFA timeout state machine.

Each tracker owns a min-timeout countdown (the soon-to-expire warning)
and a max-timeout deadline (session expiry). Both run only while MFA is
enabled and authenticated, and both are restarted together whenever the
identity re-enters AUTHENTICATED_STABLE.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

from loguru import logger

from ..errors import TimerConflictError
from .countdown import WARNING_WINDOW, is_timing_out, soonest_remaining, timeout_message
from .timers import CountdownTimer, DeadlineTimer


class SessionState(Enum):
    STABLE = "stable"  # MFA disabled, nothing to track
    AUTHENTICATED_STABLE = "authenticated_stable"
    AUTHENTICATED_WARNING = "authenticated_warning"
    UNAUTHENTICATED = "unauthenticated"


class TimeoutTracker:
    """Drives the min/max timeout transitions for one identity."""

    def __init__(
        self,
        name: str,
        mfa_enabled: bool,
        authenticated: bool,
        min_timeout: int = -1,
        max_timeout: int = -1,
        service_remaining: Sequence[int] = (),
        warning_window: int = WARNING_WINDOW,
        strict: bool = False,
    ):
        self.name = name
        self.mfa_enabled = mfa_enabled
        self.authenticated = authenticated
        self.min_timeout = min_timeout
        self.max_timeout = max_timeout
        self.service_remaining = list(service_remaining)
        self.warning_window = warning_window
        self.strict = strict
        self.countdown = CountdownTimer(f"{name}:min-timeout")
        self.deadline = DeadlineTimer(f"{name}:max-timeout")
        self.timed_out = False
        self.stopped = True
        self._reported_authenticated = authenticated

        if self.mfa_enabled and self.authenticated:
            self.start_timers()

    # --- Derived state ---

    @property
    def running(self) -> bool:
        return self.mfa_enabled and self.authenticated and not self.stopped

    @property
    def remaining(self) -> int | None:
        """Seconds until the first service times out, if anything counts down."""
        if not self.running:
            return None
        candidates = list(self.service_remaining)
        if self.countdown.active:
            candidates.append(self.countdown.remaining)
        return soonest_remaining(candidates)

    @property
    def timing_out(self) -> bool:
        remaining = self.remaining
        if remaining is None:
            return False
        return is_timing_out(self.mfa_enabled, self.authenticated, [remaining], self.warning_window)

    @property
    def timeout_message(self) -> str:
        return timeout_message(self.remaining, timed_out=self.timed_out)

    @property
    def state(self) -> SessionState:
        if not self.mfa_enabled:
            return SessionState.STABLE
        if not self.authenticated:
            return SessionState.UNAUTHENTICATED
        if self.timing_out:
            return SessionState.AUTHENTICATED_WARNING
        return SessionState.AUTHENTICATED_STABLE

    # --- Timer control ---

    def start_timers(self) -> None:
        """Arm both timers. A timer that is still active is a conflict."""
        self.stopped = False
        self._arm(self.countdown, self.min_timeout)
        self._arm(self.deadline, self.max_timeout)

    def _arm(self, timer: CountdownTimer | DeadlineTimer, seconds: int) -> None:
        if seconds <= 0:
            return
        try:
            timer.start(seconds)
        except TimerConflictError as exc:
            if self.strict:
                raise
            logger.error("Identity {}: {}; force-canceling and restarting", self.name, exc)
            timer.cancel()
            timer.start(seconds)

    def stop(self) -> None:
        self.countdown.cancel()
        self.deadline.cancel()
        self.stopped = True

    def reset(self) -> None:
        """Enter AUTHENTICATED_STABLE with fresh timers."""
        before = self.state
        self.stop()
        self.authenticated = True
        self.timed_out = False
        if self.mfa_enabled:
            self.start_timers()
        self._log_transition(before, "reset")

    def resume(self) -> None:
        """Restart timers after stop(), if the session is still authenticated."""
        if self.stopped and self.mfa_enabled and self.authenticated:
            self.reset()

    # --- Events ---

    def tick(self) -> SessionState:
        """Advance one second."""
        before = self.state
        if self.running:
            self.countdown.tick()
            self.service_remaining = [r - 1 if r > 0 else r for r in self.service_remaining]
            if self.deadline.tick():
                self._expire()
        self._log_transition(before, "tick")
        return self.state

    def _expire(self) -> None:
        self.stop()
        self.authenticated = False
        self.timed_out = True

    def authentication_succeeded(self) -> None:
        """Re-auth: fresh timers, and local service countdowns no longer apply."""
        self._reported_authenticated = True
        self.service_remaining = [-1 for _ in self.service_remaining]
        self.reset()

    def authentication_lost(self) -> None:
        before = self.state
        self.stop()
        self.authenticated = False
        self.timed_out = False
        self._log_transition(before, "authentication lost")

    def sync(
        self,
        mfa_enabled: bool,
        authenticated: bool,
        min_timeout: int,
        max_timeout: int,
        service_remaining: Sequence[int],
        fresh: bool = True,
    ) -> None:
        """Fold a rebuilt snapshot into the tracker, preserving timer progress."""
        auth_changed = authenticated != self._reported_authenticated
        self._reported_authenticated = authenticated
        config_changed = (
            mfa_enabled != self.mfa_enabled
            or min_timeout != self.min_timeout
            or max_timeout != self.max_timeout
        )
        self.mfa_enabled = mfa_enabled
        self.min_timeout = min_timeout
        self.max_timeout = max_timeout

        if not mfa_enabled:
            self.stop()
            self.timed_out = False
        elif auth_changed:
            if authenticated:
                self.authentication_succeeded()
            else:
                self.authentication_lost()
        elif config_changed and self.authenticated:
            self.reset()

        # a strictly newer snapshot reports service times from after any re-auth above
        if fresh:
            self.service_remaining = list(service_remaining)

    def _log_transition(self, before: SessionState, cause: str) -> None:
        after = self.state
        if after is not before:
            logger.info("Identity {} {} -> {} ({})", self.name, before.value, after.value, cause)

    def snapshot(self) -> dict[str, object]:
        return {
            "state": self.state.value,
            "timing_out": self.timing_out,
            "timeout_message": self.timeout_message,
            "countdown_remaining": self.countdown.remaining if self.countdown.active else None,
            "deadline_remaining": self.deadline.remaining if self.deadline.active else None,
        }
