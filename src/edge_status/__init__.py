"""
EdgeStatus: identity session timeout and posture tracking

Derives enabled, MFA, timing-out and posture-check status for
tunneler identities from control-plane snapshots and a per-second tick.
"""

__version__ = "0.1.0"
