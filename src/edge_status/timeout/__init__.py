"""MFA timeout tracking for EdgeStatus."""

from .countdown import format_duration, parse_duration, timeout_message, WARNING_WINDOW
from .timers import CountdownTimer, DeadlineTimer
from .tracker import SessionState, TimeoutTracker
from .driver import Ticker

__all__ = [
    "format_duration",
    "parse_duration",
    "timeout_message",
    "WARNING_WINDOW",
    "CountdownTimer",
    "DeadlineTimer",
    "SessionState",
    "TimeoutTracker",
    "Ticker",
]
