"""Error types for EdgeStatus."""

from __future__ import annotations


class EdgeStatusError(Exception):
    """Base class for all EdgeStatus errors."""


class BuildError(EdgeStatusError):
    """A raw control-plane identity record could not be normalized."""


class ServiceError(EdgeStatusError):
    """The control plane rejected a request.

    Carries the control plane's message and any additional detail so
    callers can surface both verbatim.
    """

    def __init__(self, message: str, additional_info: str = ""):
        super().__init__(message)
        self.message = message
        self.additional_info = additional_info

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "additional_info": self.additional_info}


class TimerConflictError(EdgeStatusError):
    """A timer was started while its previous instance was still active."""

    def __init__(self, timer_name: str, remaining: int):
        super().__init__(f"timer {timer_name!r} started while active ({remaining}s remaining)")
        self.timer_name = timer_name
        self.remaining = remaining
