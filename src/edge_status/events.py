"""
Change notifications published by the identity registry.

Subscribers (views, audit sinks) register plain callables; the registry
never knows who is listening. Handler failures are logged and isolated
so one bad subscriber cannot stall the others.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from loguru import logger

if TYPE_CHECKING:
    from .identity.models import Service
    from .status.presenter import DisplayStatus

ADDED = "added"
REMOVED = "removed"


@dataclass(frozen=True)
class StatusChange:
    fingerprint: str
    status: DisplayStatus


@dataclass(frozen=True)
class PostureChange:
    fingerprint: str
    name: str
    failing: bool


@dataclass(frozen=True)
class ServiceChange:
    operation: str  # added, removed
    fingerprint: str
    service: Service


@dataclass(frozen=True)
class IdentityChange:
    operation: str  # added, removed
    fingerprint: str


class EventBus:
    """Synchronous in-process publish/subscribe for registry events."""

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: dict[type, list[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        if not callable(handler):
            raise ValueError("handler must be callable")
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type, handler: Callable[[Any], None]) -> bool:
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def subscribe_status(self, handler: Callable[[StatusChange], None]) -> None:
        self.subscribe(StatusChange, handler)

    def subscribe_posture(self, handler: Callable[[PostureChange], None]) -> None:
        self.subscribe(PostureChange, handler)

    def subscribe_services(self, handler: Callable[[ServiceChange], None]) -> None:
        self.subscribe(ServiceChange, handler)

    def subscribe_identities(self, handler: Callable[[IdentityChange], None]) -> None:
        self.subscribe(IdentityChange, handler)

    def publish(self, event: Any) -> int:
        """Deliver to every handler of the event's type. Returns handlers called."""
        with self._lock:
            handlers = list(self._handlers.get(type(event), []))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler {!r} failed for {}", handler, type(event).__name__)
        return len(handlers)
