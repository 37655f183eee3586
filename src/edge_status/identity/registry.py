"""
Identity registry.

Owns the current Identity per fingerprint together with its timeout
tracker. Every write to one identity (snapshot, tick, authentication
result, enable toggle, removal) happens under that identity's lock;
different identities never contend.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Mapping

from loguru import logger

from ..client import ControlPlaneClient
from ..config import Settings
from ..errors import BuildError, ServiceError
from ..events import ADDED, REMOVED, EventBus, IdentityChange, ServiceChange, StatusChange
from ..posture.aggregator import PostureAggregator
from ..status.presenter import DisplayStatus, present_identity
from ..timeout.tracker import SessionState, TimeoutTracker
from .builder import build_identity
from .models import Identity


class IdentityRegistry:
    """Current identities, their trackers, and the control-plane calls that change them."""

    def __init__(
        self,
        client: ControlPlaneClient | None = None,
        settings: Settings | None = None,
        events: EventBus | None = None,
    ):
        self.client = client
        self.settings = settings or Settings()
        self.events = events or EventBus()
        self.posture = PostureAggregator(self.events)
        self.identities: dict[str, Identity] = {}
        self.trackers: dict[str, TimeoutTracker] = {}
        self.statuses: dict[str, DisplayStatus] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, self.settings.auth_workers), thread_name_prefix="edge-status-auth"
        )

    def _lock_for(self, fingerprint: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(fingerprint)
            if lock is None:
                lock = self._locks[fingerprint] = threading.RLock()
            return lock

    # --- Snapshots ---

    def apply_snapshot(self, raw: Mapping[str, Any]) -> Identity:
        """Rebuild one identity from a raw record. Raises BuildError on a bad record."""
        identity = build_identity(raw, self.settings.warning_window)
        fp = identity.fingerprint

        with self._lock_for(fp):
            previous = self.identities.get(fp)
            if previous is not None and identity.last_updated < previous.last_updated:
                logger.debug(
                    "Identity {}: ignoring stale snapshot ({} < {})",
                    identity.name, identity.last_updated, previous.last_updated,
                )
                return previous

            service_remaining = [s.timeout_remaining for s in identity.services]
            tracker = self.trackers.get(fp)
            if tracker is None:
                tracker = TimeoutTracker(
                    name=identity.name,
                    mfa_enabled=identity.mfa_enabled,
                    authenticated=identity.mfa.authenticated,
                    min_timeout=identity.min_timeout,
                    max_timeout=identity.max_timeout,
                    service_remaining=service_remaining,
                    warning_window=self.settings.warning_window,
                    strict=self.settings.strict_timers,
                )
                self.trackers[fp] = tracker
            else:
                tracker.name = identity.name
                fresh = previous is None or identity.last_updated > previous.last_updated
                tracker.sync(
                    mfa_enabled=identity.mfa_enabled,
                    authenticated=identity.mfa.authenticated,
                    min_timeout=identity.min_timeout,
                    max_timeout=identity.max_timeout,
                    service_remaining=service_remaining,
                    fresh=fresh,
                )

            if identity.enabled:
                tracker.resume()
            else:
                tracker.stop()

            self.identities[fp] = identity
            self._derive(identity, tracker)
            self.posture.update(identity)

            if previous is None:
                logger.info("Identity {} added ({} services)", identity.name, identity.service_count)
                self.events.publish(IdentityChange(ADDED, fp))
            self._publish_service_changes(previous, identity)
            self._publish_status(identity)
            return identity

    def refresh(self) -> list[Identity]:
        """Pull every identity from the client; drop the ones it no longer reports."""
        if self.client is None:
            raise RuntimeError("registry has no control-plane client")
        seen = set()
        applied = []
        for raw in self.client.fetch_identities():
            try:
                identity = self.apply_snapshot(raw)
            except BuildError as exc:
                logger.warning("Skipping identity record: {}", exc)
                continue
            seen.add(identity.fingerprint)
            applied.append(identity)

        for fp in list(self.identities):
            if fp not in seen:
                self.remove_identity(fp)
        return applied

    def remove_identity(self, fingerprint: str) -> bool:
        with self._lock_for(fingerprint):
            tracker = self.trackers.pop(fingerprint, None)
            if tracker is not None:
                tracker.stop()
            identity = self.identities.pop(fingerprint, None)
            self.statuses.pop(fingerprint, None)
            self.posture.forget(fingerprint)
        # lock entries live as long as the registry; one fingerprint never maps to two locks
        if identity is None:
            return False
        logger.info("Identity {} removed", identity.name)
        self.events.publish(IdentityChange(REMOVED, fingerprint))
        return True

    # --- Derived state ---

    def _derive(self, identity: Identity, tracker: TimeoutTracker) -> None:
        """Recompute every tracker-owned field of the identity in one place."""
        identity.mfa.authenticated = tracker.authenticated
        identity.timing_out = tracker.timing_out
        identity.timeout_message = tracker.timeout_message

    def _publish_status(self, identity: Identity) -> None:
        status = present_identity(identity)
        if self.statuses.get(identity.fingerprint) != status:
            self.statuses[identity.fingerprint] = status
            self.events.publish(StatusChange(identity.fingerprint, status))

    def _publish_service_changes(self, previous: Identity | None, identity: Identity) -> None:
        before = {s.service_id or s.name: s for s in previous.services} if previous else {}
        after = {s.service_id or s.name: s for s in identity.services}
        for key, svc in after.items():
            if key not in before:
                self.events.publish(ServiceChange(ADDED, identity.fingerprint, svc))
        for key, svc in before.items():
            if key not in after:
                self.events.publish(ServiceChange(REMOVED, identity.fingerprint, svc))

    # --- Timers ---

    def tick(self) -> None:
        """Advance every identity's timers by one second."""
        for fp in list(self.trackers):
            with self._lock_for(fp):
                tracker = self.trackers.get(fp)
                identity = self.identities.get(fp)
                if tracker is None or identity is None:
                    continue
                tracker.tick()
                self._derive(identity, tracker)
                self._publish_status(identity)

    # --- Control-plane requests ---

    def set_enabled(self, fingerprint: str, enabled: bool) -> Identity:
        """Toggle an identity. ServiceError from the client propagates unchanged."""
        if fingerprint not in self.identities:
            raise KeyError(fingerprint)
        if self.client is None:
            raise RuntimeError("registry has no control-plane client")

        try:
            raw = self.client.set_identity_enabled(fingerprint, enabled)
        except ServiceError as exc:
            logger.warning("Identity {}: enable={} rejected: {} ({})", fingerprint, enabled, exc.message, exc.additional_info)
            raise
        # applying the confirmed record stops or resumes the timers under the identity lock
        return self.apply_snapshot(raw)

    def request_authentication(self, fingerprint: str, code: str = "") -> Future:
        """Ask the control plane to authenticate; the result arrives as an event."""
        if fingerprint not in self.identities:
            raise KeyError(fingerprint)
        if self.client is None:
            raise RuntimeError("registry has no control-plane client")

        client = self.client

        def _authenticate() -> bool:
            try:
                success = bool(client.authenticate(fingerprint, code))
            except ServiceError as exc:
                logger.warning("Identity {}: authentication request failed: {} ({})", fingerprint, exc.message, exc.additional_info)
                raise
            self.handle_authentication_result(fingerprint, success)
            return success

        return self._executor.submit(_authenticate)

    def handle_authentication_result(self, fingerprint: str, success: bool) -> None:
        with self._lock_for(fingerprint):
            tracker = self.trackers.get(fingerprint)
            identity = self.identities.get(fingerprint)
            if tracker is None or identity is None:
                logger.debug("Authentication result for unknown identity {}", fingerprint)
                return
            logger.info("Identity {}: authentication {}", identity.name, "succeeded" if success else "failed")
            if not success:
                return
            tracker.authentication_succeeded()
            if not identity.enabled:
                tracker.stop()
            self._derive(identity, tracker)
            self._publish_status(identity)

    # --- Queries ---

    def get_identity(self, fingerprint: str) -> Identity | None:
        return self.identities.get(fingerprint)

    def list_identities(self) -> list[Identity]:
        return list(self.identities.values())

    def get_tracker(self, fingerprint: str) -> TimeoutTracker | None:
        return self.trackers.get(fingerprint)

    def status(self, fingerprint: str) -> DisplayStatus:
        identity = self.identities.get(fingerprint)
        if identity is None:
            raise KeyError(fingerprint)
        return present_identity(identity)

    def summary(self) -> dict[str, Any]:
        states = [t.state for t in self.trackers.values()]
        return {
            "total_identities": len(self.identities),
            "enabled_identities": sum(1 for i in self.identities.values() if i.enabled),
            "mfa_enabled": sum(1 for i in self.identities.values() if i.mfa_enabled),
            "timing_out": sum(1 for i in self.identities.values() if i.timing_out),
            "failing_posture": sum(1 for i in self.identities.values() if i.has_failing_posture_check),
            "total_services": sum(i.service_count for i in self.identities.values()),
            "states": {s.value: states.count(s) for s in SessionState},
        }

    def close(self) -> None:
        for fp in list(self.trackers):
            with self._lock_for(fp):
                tracker = self.trackers.get(fp)
                if tracker is not None:
                    tracker.stop()
        self._executor.shutdown(wait=False)
