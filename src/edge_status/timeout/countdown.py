"""
Countdown rendering and timing-out derivation.

Pure functions shared by the snapshot builder and the timeout tracker so
both derive ``timing_out`` and the countdown message the same way.
"""

from __future__ import annotations

import re
from typing import Iterable

WARNING_WINDOW = 1260  # 21 minutes

COUNTDOWN_PREFIX = "Some or all of the services will be timing out in "
TIMED_OUT_MESSAGE = "Some or all of the services have timed out."

_UNITS = (("days", 86400), ("hours", 3600), ("minutes", 60), ("seconds", 1))
_PART = re.compile(r"(\d+) (days|hours|minutes|seconds)\b")


def format_duration(seconds: int) -> str:
    """Render seconds at the coarsest nonzero unit, always ending in seconds.

    >>> format_duration(3700)
    '1 hours 1 minutes 40 seconds'
    """
    if seconds < 0:
        raise ValueError(f"duration must not be negative: {seconds}")
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)

    if days > 0:
        return f"{days} days {hours} hours {minutes} minutes {secs} seconds"
    if hours > 0:
        return f"{hours} hours {minutes} minutes {secs} seconds"
    if minutes > 0:
        return f"{minutes} minutes {secs} seconds"
    return f"{secs} seconds"


def parse_duration(text: str) -> int:
    """Inverse of format_duration. Accepts a full countdown message too."""
    parts = _PART.findall(text)
    if not parts:
        raise ValueError(f"no duration found in {text!r}")
    scale = dict(_UNITS)
    return sum(int(n) * scale[unit] for n, unit in parts)


def soonest_remaining(remaining: Iterable[int]) -> int | None:
    """Smallest applicable remaining time; -1 entries mean not applicable."""
    applicable = [r for r in remaining if r >= 0]
    return min(applicable) if applicable else None


def is_timing_out(
    mfa_enabled: bool,
    authenticated: bool,
    remaining: Iterable[int],
    window: int = WARNING_WINDOW,
) -> bool:
    if not (mfa_enabled and authenticated):
        return False
    soonest = soonest_remaining(remaining)
    return soonest is not None and soonest < window


def timeout_message(remaining: int | None, timed_out: bool = False) -> str:
    if timed_out:
        return TIMED_OUT_MESSAGE
    if remaining is None:
        return ""
    if remaining > 0:
        return COUNTDOWN_PREFIX + format_duration(remaining)
    return TIMED_OUT_MESSAGE
