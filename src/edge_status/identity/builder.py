"""
Snapshot builder.

Turns a raw control-plane identity record (camelCase keys, as the
tunneler service reports them) into a normalized Identity. Building is
pure: the same record always yields an equal Identity.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from loguru import logger

from ..errors import BuildError
from ..posture.aggregator import has_failing_posture_check
from ..timeout.countdown import WARNING_WINDOW, is_timing_out, soonest_remaining, timeout_message
from .models import NO_TIMEOUT, Identity, MFAState, PostureCheck, Service


def _parse_timestamp(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError as exc:
            raise BuildError(f"invalid lastUpdated timestamp: {value!r}") from exc
    raise BuildError(f"invalid lastUpdated timestamp: {value!r}")


def _timeout(value: Any) -> int:
    """Missing or negative timeouts mean no timeout."""
    if value is None:
        return NO_TIMEOUT
    seconds = int(value)
    return seconds if seconds >= 0 else NO_TIMEOUT


def build_service(raw: Mapping[str, Any]) -> Service:
    """Build one Service. Raises ValueError on a malformed entry."""
    if not isinstance(raw, Mapping):
        raise ValueError(f"service entry must be a mapping, got {type(raw).__name__}")
    name = raw.get("name")
    if not name:
        raise ValueError("service entry has no name")

    checks = []
    for pc in raw.get("postureChecks") or []:
        if not isinstance(pc, Mapping):
            raise ValueError(f"posture check for {name} must be a mapping")
        checks.append(PostureCheck(
            check_id=str(pc.get("id", "")),
            query_type=str(pc.get("queryType", "")),
            passing=bool(pc.get("isPassing", True)),
        ))

    return Service(
        name=str(name),
        service_id=str(raw.get("id", "")),
        intercept_host=str(raw.get("interceptHost", "")),
        intercept_port=int(raw.get("interceptPort", -1)),
        assigned_ip=str(raw.get("assignedIP", "")),
        owns_intercept=bool(raw.get("ownsIntercept", True)),
        timeout_remaining=_timeout(raw.get("timeoutRemaining")),
        posture_checks=checks,
    )


def build_identity(raw: Mapping[str, Any], warning_window: int = WARNING_WINDOW) -> Identity:
    """Normalize a raw identity record. Raises BuildError if it cannot be identified."""
    if not isinstance(raw, Mapping):
        raise BuildError(f"identity record must be a mapping, got {type(raw).__name__}")

    fingerprint = str(raw.get("fingerprint") or "").strip()
    if not fingerprint:
        raise BuildError("identity record has a blank fingerprint")

    controller = str(raw.get("controller") or "")
    version = raw.get("controllerVersion")
    controller_url = f"{controller} at {version}" if controller and version else controller

    try:
        min_timeout = _timeout(raw.get("minTimeout"))
        max_timeout = _timeout(raw.get("maxTimeout"))
    except (TypeError, ValueError) as exc:
        raise BuildError(f"identity {fingerprint} has an invalid timeout: {exc}") from exc

    identity = Identity(
        fingerprint=fingerprint,
        name=raw.get("name") or fingerprint,
        controller_url=controller_url,
        enabled=bool(raw.get("active", True)),
        enrollment_status=str(raw.get("enrollmentStatus") or "Enrolled"),
        status=str(raw.get("status") or "Available"),
        mfa_enabled=bool(raw.get("mfaEnabled", False)),
        mfa=MFAState(authenticated=not raw.get("mfaNeeded", False)),
        min_timeout=min_timeout,
        max_timeout=max_timeout,
        last_updated=_parse_timestamp(raw.get("lastUpdated")),
    )

    for index, svc in enumerate(raw.get("services") or []):
        if svc is None:
            continue
        try:
            identity.services.append(build_service(svc))
        except (TypeError, ValueError) as exc:
            logger.warning("Identity {}: skipping malformed service #{}: {}", identity.name, index, exc)

    identity.has_failing_posture_check = has_failing_posture_check(identity.services)
    remaining = [s.timeout_remaining for s in identity.services]
    identity.timing_out = is_timing_out(
        identity.mfa_enabled, identity.mfa.authenticated, remaining, warning_window
    )
    if identity.timing_out:
        identity.timeout_message = timeout_message(soonest_remaining(remaining))
    return identity
