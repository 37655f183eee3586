"""Maps identity state to the small set of values a view displays."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..identity.models import Identity

BADGE_NORMAL = "normal"
BADGE_REQUIRES_AUTH = "requires authorization"
TOGGLE_ENABLED = "ENABLED"
TOGGLE_DISABLED = "DISABLED"


@dataclass(frozen=True)
class DisplayStatus:
    service_count_label: str | None  # None when the count area is hidden
    badge_text: str
    toggle_label: str
    show_countdown: bool = False
    posture_warning: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_count_label": self.service_count_label,
            "badge_text": self.badge_text,
            "toggle_label": self.toggle_label,
            "show_countdown": self.show_countdown,
            "posture_warning": self.posture_warning,
        }


def present(
    enabled: bool,
    mfa_enabled: bool,
    authenticated: bool,
    timing_out: bool,
    failing_posture: bool = False,
    service_count: int = 0,
) -> DisplayStatus:
    toggle = TOGGLE_ENABLED if enabled else TOGGLE_DISABLED

    if mfa_enabled and not authenticated:
        return DisplayStatus(
            service_count_label=None,
            badge_text=BADGE_REQUIRES_AUTH,
            toggle_label=toggle,
        )

    return DisplayStatus(
        service_count_label=str(service_count),
        badge_text=BADGE_NORMAL,
        toggle_label=toggle,
        show_countdown=mfa_enabled and timing_out,
        posture_warning=failing_posture,
    )


def present_identity(identity: Identity) -> DisplayStatus:
    return present(
        enabled=identity.enabled,
        mfa_enabled=identity.mfa_enabled,
        authenticated=identity.mfa.authenticated,
        timing_out=identity.timing_out,
        failing_posture=identity.has_failing_posture_check,
        service_count=identity.service_count,
    )
