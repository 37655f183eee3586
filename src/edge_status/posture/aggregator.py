"""
Posture-check aggregation.

An identity is flagged when any of its services fails a posture check.
The aggregate is recomputed from the current service list on every
rebuild and published only when it flips.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from loguru import logger

from ..events import EventBus, PostureChange

if TYPE_CHECKING:
    from ..identity.models import Identity, Service


def has_failing_posture_check(services: Iterable[Service]) -> bool:
    return any(svc.is_failing_posture_check() for svc in services)


class PostureAggregator:
    """Tracks the last posture aggregate per identity and reports flips."""

    def __init__(self, events: EventBus | None = None):
        self.events = events or EventBus()
        self.last: dict[str, bool] = {}

    def update(self, identity: Identity) -> bool:
        failing = has_failing_posture_check(identity.services)
        identity.has_failing_posture_check = failing

        previous = self.last.get(identity.fingerprint, False)
        self.last[identity.fingerprint] = failing
        if failing != previous:
            logger.info("Identity: {} posture change. is a posture check failing: {}", identity.name, failing)
            self.events.publish(PostureChange(identity.fingerprint, identity.name, failing))
        return failing

    def forget(self, fingerprint: str) -> None:
        self.last.pop(fingerprint, None)

    def failing_identities(self) -> list[str]:
        return [fp for fp, failing in self.last.items() if failing]
