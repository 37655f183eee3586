"""Posture-check aggregation for EdgeStatus."""

from .aggregator import PostureAggregator, has_failing_posture_check

__all__ = ["PostureAggregator", "has_failing_posture_check"]
