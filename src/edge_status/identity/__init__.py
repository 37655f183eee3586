"""Identity model, snapshot builder and registry for EdgeStatus."""

from .models import Identity, MFAState, PostureCheck, Service
from .builder import build_identity, build_service
from .registry import IdentityRegistry

__all__ = [
    "Identity",
    "MFAState",
    "PostureCheck",
    "Service",
    "build_identity",
    "build_service",
    "IdentityRegistry",
]
