"""Identity and service data models."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

NO_TIMEOUT = -1


@dataclass
class PostureCheck:
    """A compliance check the controller evaluates against this device."""
    check_id: str
    query_type: str = ""  # OS, PROCESS, DOMAIN, MAC, MFA
    passing: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "check_id": self.check_id,
            "query_type": self.query_type,
            "passing": self.passing,
        }


@dataclass
class Service:
    """A service reachable through an identity."""
    name: str
    service_id: str = ""
    intercept_host: str = ""
    intercept_port: int = -1
    assigned_ip: str = ""
    owns_intercept: bool = True
    timeout_remaining: int = NO_TIMEOUT
    posture_checks: list[PostureCheck] = field(default_factory=list)

    def is_failing_posture_check(self) -> bool:
        return any(not pc.passing for pc in self.posture_checks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "service_id": self.service_id,
            "intercept_host": self.intercept_host,
            "intercept_port": self.intercept_port,
            "assigned_ip": self.assigned_ip,
            "owns_intercept": self.owns_intercept,
            "timeout_remaining": self.timeout_remaining,
            "failing_posture_check": self.is_failing_posture_check(),
            "posture_checks": [pc.to_dict() for pc in self.posture_checks],
        }


@dataclass
class MFAState:
    authenticated: bool = False


@dataclass
class Identity:
    """A tunneler identity and the services it exposes."""
    fingerprint: str
    name: str
    controller_url: str = ""
    enabled: bool = True
    enrollment_status: str = "Enrolled"
    status: str = "Available"
    mfa_enabled: bool = False
    mfa: MFAState = field(default_factory=MFAState)
    min_timeout: int = NO_TIMEOUT
    max_timeout: int = NO_TIMEOUT
    last_updated: float = field(default_factory=time.time)
    services: list[Service] = field(default_factory=list)
    # Derived on every rebuild and tick, never patched directly by callers
    timing_out: bool = False
    timeout_message: str = ""
    has_failing_posture_check: bool = False

    @property
    def service_count(self) -> int:
        return len(self.services)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "name": self.name,
            "controller_url": self.controller_url,
            "enabled": self.enabled,
            "enrollment_status": self.enrollment_status,
            "status": self.status,
            "mfa_enabled": self.mfa_enabled,
            "mfa_authenticated": self.mfa.authenticated,
            "min_timeout": self.min_timeout,
            "max_timeout": self.max_timeout,
            "last_updated": self.last_updated,
            "timing_out": self.timing_out,
            "timeout_message": self.timeout_message,
            "has_failing_posture_check": self.has_failing_posture_check,
            "services": [s.to_dict() for s in self.services],
        }
