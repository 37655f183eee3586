"""Display status derivation for EdgeStatus."""

from .presenter import DisplayStatus, present, present_identity

__all__ = ["DisplayStatus", "present", "present_identity"]
